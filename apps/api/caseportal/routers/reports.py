"""Case reports router: clinician findings on a case."""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from caseportal.core.deps import get_current_user, get_db, require_csrf_header
from caseportal.db.enums import AuditAction, AuditResource, CaseStatus
from caseportal.db.models import User
from caseportal.schemas.report import ReportCreate, ReportCreateResponse, ReportRead
from caseportal.services import audit_service, notification_service, report_service, user_service
from caseportal.services.case_service import CaseWorkflowError

router = APIRouter()


@router.get("/{case_id}/reports", response_model=list[ReportRead])
def list_reports(
    case_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Reports newest first. Clinicians and admins see any case; patients their own."""
    try:
        case = report_service.get_case_for_reports(db, case_id, user)
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return report_service.list_reports(db, case)


@router.post(
    "/{case_id}/reports",
    response_model=ReportCreateResponse,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_report(
    case_id: UUID,
    data: ReportCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Write a report on a case under review.

    The patient is emailed that a report is ready, and again when the
    report completes the case.
    """
    try:
        report, case = report_service.create_report(db, case_id, user, data, request=request)
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    patient = user_service.get_user(db, case.user_id)
    if patient:
        background_tasks.add_task(
            notification_service.send_report_ready_notification,
            patient_email=patient.email,
            patient_name=patient.display_name,
            case_number=case.case_number,
            case_id=str(case.id),
            report_type=report.report_type,
        )
        if case.status == CaseStatus.COMPLETED.value:
            background_tasks.add_task(
                notification_service.send_case_completed_notification,
                patient_email=patient.email,
                patient_name=patient.display_name,
                case_number=case.case_number,
                case_id=str(case.id),
            )

    return ReportCreateResponse(
        report=ReportRead.model_validate(report),
        case_status=case.status,
    )


@router.get("/{case_id}/reports/{report_id}", response_model=ReportRead)
def get_report(
    case_id: UUID,
    report_id: UUID,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        case = report_service.get_case_for_reports(db, case_id, user)
        report = report_service.get_report(db, case, report_id)
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    result = ReportRead.model_validate(report)
    audit_service.log_event_best_effort(
        db,
        AuditAction.VIEW_REPORT,
        AuditResource.REPORT,
        user_id=user.id,
        resource_id=report.id,
        details={"case_id": str(case.id), "report_type": report.report_type},
        request=request,
    )
    return result
