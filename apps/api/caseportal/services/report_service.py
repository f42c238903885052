"""Case report service - clinician findings and case completion."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session, joinedload

from caseportal.core.case_access import can_read_reports, can_write_report
from caseportal.db.enums import AuditAction, AuditResource, CaseStatus, ReportType, Role
from caseportal.db.models import Case, CaseReport, User
from caseportal.schemas.report import ReportCreate
from caseportal.services import audit_service
from caseportal.services.case_service import (
    CaseForbiddenError,
    CaseNotFoundError,
    CaseWorkflowError,
    get_case,
)

logger = logging.getLogger(__name__)


def get_case_for_reports(db: Session, case_id: UUID, user: User) -> Case:
    """
    Case whose reports the user may read.

    Raises:
        CaseNotFoundError: missing, or a patient asking about someone else's case
    """
    case = get_case(db, case_id)
    if not case or not can_read_reports(case, user):
        raise CaseNotFoundError()
    return case


def list_reports(db: Session, case: Case) -> list[CaseReport]:
    """Reports on the case, newest first, with authors."""
    return (
        db.query(CaseReport)
        .options(joinedload(CaseReport.author))
        .filter(CaseReport.case_id == case.id)
        .order_by(CaseReport.created_at.desc())
        .all()
    )


def get_report(db: Session, case: Case, report_id: UUID) -> CaseReport:
    report = (
        db.query(CaseReport)
        .options(joinedload(CaseReport.author))
        .filter(CaseReport.id == report_id, CaseReport.case_id == case.id)
        .first()
    )
    if not report:
        raise CaseNotFoundError("Report not found")
    return report


def create_report(
    db: Session,
    case_id: UUID,
    author: User,
    data: ReportCreate,
    request: Request | None = None,
) -> tuple[CaseReport, Case]:
    """
    Write a report on a reviewable case.

    An EXPERT_REVIEW report on an UNDER_REVIEW case moves it to EXPERT_REVIEW.
    mark_as_completed closes the case.

    Raises:
        CaseWorkflowError: invalid type or status (400)
        CaseNotFoundError: case missing (404)
        CaseForbiddenError: wrong role or not the assigned clinician (403)
    """
    if author.role not in (Role.CLINICIAN.value, Role.ADMIN.value):
        raise CaseForbiddenError("Forbidden")

    if not ReportType.has_value(data.report_type):
        raise CaseWorkflowError("Invalid report type")

    case = get_case(db, case_id)
    if not case:
        raise CaseNotFoundError()

    allowed, error = can_write_report(case, author)
    if not allowed:
        raise CaseForbiddenError(error)

    if case.status not in CaseStatus.reviewable():
        raise CaseWorkflowError("Case is not in a reviewable status")

    report = CaseReport(
        case_id=case.id,
        author_id=author.id,
        report_type=data.report_type,
        content=data.content or {},
        reviewer_notes=data.reviewer_notes,
    )
    db.add(report)

    now = datetime.now(timezone.utc)
    if data.mark_as_completed:
        case.status = CaseStatus.COMPLETED.value
        case.completed_at = now
    elif (
        data.report_type == ReportType.EXPERT_REVIEW.value
        and case.status == CaseStatus.UNDER_REVIEW.value
    ):
        case.status = CaseStatus.EXPERT_REVIEW.value
    case.updated_at = now
    db.flush()

    audit_service.log_event(
        db,
        AuditAction.CREATE_REPORT,
        AuditResource.REPORT,
        user_id=author.id,
        resource_id=report.id,
        details={
            "case_id": str(case.id),
            "report_type": data.report_type,
            "marked_as_completed": data.mark_as_completed,
        },
        request=request,
    )
    db.commit()
    db.refresh(report)
    db.refresh(case)
    return report, case


def list_authored_reports(db: Session, author: User) -> list[CaseReport]:
    """Reports the clinician wrote, newest first, with their case."""
    return (
        db.query(CaseReport)
        .options(joinedload(CaseReport.case), joinedload(CaseReport.author))
        .filter(CaseReport.author_id == author.id)
        .order_by(CaseReport.created_at.desc())
        .all()
    )
