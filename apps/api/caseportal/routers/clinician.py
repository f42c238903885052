"""Clinician router: claiming cases, case lists, authored reports and dashboard."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from caseportal.core.deps import get_db, require_approved_clinician, require_csrf_header
from caseportal.db.models import User
from caseportal.schemas.case import CaseWithPatient
from caseportal.schemas.dashboard import ClinicianCaseBoard, ClinicianCaseGroups, ClinicianDashboard
from caseportal.schemas.report import AuthoredReport
from caseportal.services import case_service, dashboard_service, report_service
from caseportal.services.case_service import CaseWorkflowError

router = APIRouter()


@router.post(
    "/cases/{case_id}/assign",
    response_model=CaseWithPatient,
    dependencies=[Depends(require_csrf_header)],
)
def assign_case(
    case_id: UUID,
    request: Request,
    clinician: User = Depends(require_approved_clinician),
    db: Session = Depends(get_db),
):
    """
    Claim an unassigned case.

    Of two clinicians claiming the same case at once, exactly one succeeds;
    the other gets 400.
    """
    try:
        return case_service.assign_case(db, case_id, clinician, request=request)
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.get("/clinician/cases", response_model=ClinicianCaseGroups)
def list_my_cases(
    clinician: User = Depends(require_approved_clinician),
    db: Session = Depends(get_db),
):
    return case_service.list_assigned_cases(db, clinician)


@router.get("/clinician/cases/all", response_model=ClinicianCaseBoard)
def list_case_board(
    clinician: User = Depends(require_approved_clinician),
    db: Session = Depends(get_db),
):
    """Unassigned active cases, my cases and other clinicians' cases."""
    return case_service.list_case_board(db, clinician)


@router.get("/clinician/reports", response_model=list[AuthoredReport])
def list_my_reports(
    clinician: User = Depends(require_approved_clinician),
    db: Session = Depends(get_db),
):
    return report_service.list_authored_reports(db, clinician)


@router.get("/clinician/dashboard", response_model=ClinicianDashboard)
def clinician_dashboard(
    clinician: User = Depends(require_approved_clinician),
    db: Session = Depends(get_db),
):
    return dashboard_service.get_clinician_dashboard(db, clinician)
