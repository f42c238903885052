"""Admin router: clinician approvals, user and case overviews, audit trail."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from caseportal.core.deps import get_db, require_csrf_header, require_roles
from caseportal.db.enums import Role
from caseportal.db.models import User
from caseportal.schemas.admin import (
    AdminUserRead,
    ApprovalAction,
    ApprovalResult,
    AuditLogPage,
    AuditLogRead,
)
from caseportal.schemas.case import CaseWithPatient
from caseportal.schemas.dashboard import AdminStats
from caseportal.services import admin_service, audit_service, case_service, dashboard_service
from caseportal.services.admin_service import ApprovalError
from caseportal.utils.pagination import PaginatedResponse, PaginationParams, get_pagination, paginate_query

router = APIRouter()

require_admin = require_roles([Role.ADMIN])


# =============================================================================
# Clinician Approvals
# =============================================================================

@router.get("/approvals", response_model=list[AdminUserRead])
def list_pending_approvals(
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Clinicians waiting for approval, oldest first."""
    return admin_service.list_pending_clinicians(db)


@router.post(
    "/approvals/{user_id}",
    response_model=ApprovalResult,
    dependencies=[Depends(require_csrf_header)],
)
def decide_approval(
    user_id: UUID,
    data: ApprovalAction,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Approve or reject a pending clinician.

    Approval activates the account; rejection deletes it.
    """
    try:
        if data.action == "approve":
            admin_service.approve_clinician(db, user_id, admin, request=request)
            return ApprovalResult(message="Clinician approved successfully")
        admin_service.reject_clinician(db, user_id, admin, request=request)
        return ApprovalResult(message="Clinician rejected and account removed")
    except ApprovalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


# =============================================================================
# Overviews
# =============================================================================

@router.get("/users", response_model=list[AdminUserRead])
def list_users(
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return admin_service.list_users(db)


@router.get("/cases", response_model=list[CaseWithPatient])
def list_cases(
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Latest 100 cases by update time."""
    return case_service.list_recent_cases(db, limit=100)


@router.get("/dashboard", response_model=AdminStats)
def admin_dashboard(
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return dashboard_service.get_admin_stats(db)


@router.get("/audit-logs", response_model=AuditLogPage)
def list_audit_logs(
    action: str | None = None,
    user_id: UUID | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Audit trail, newest first. Optional action and user filters."""
    query = audit_service.audit_log_query(db, action=action, user_id=user_id)
    items, total = paginate_query(query, pagination)
    page = PaginatedResponse.create(
        [AuditLogRead.model_validate(item) for item in items],
        total,
        pagination,
    )
    return AuditLogPage(
        items=page.items,
        total=page.total,
        page=page.page,
        per_page=page.per_page,
        pages=page.pages,
    )
