"""Admin service - clinician approvals and user listings."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from caseportal.db.enums import AuditAction, AuditResource, Role
from caseportal.db.models import User
from caseportal.services import audit_service

logger = logging.getLogger(__name__)


class ApprovalError(Exception):
    """Approval request that cannot be applied. Carries an HTTP status."""

    def __init__(self, detail: str, status_code: int = 400):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


def list_pending_clinicians(db: Session) -> list[User]:
    return (
        db.query(User)
        .filter(User.role == Role.CLINICIAN.value, User.is_approved.is_(False))
        .order_by(User.created_at.asc())
        .all()
    )


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.created_at.desc()).all()


def _get_pending_clinician(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise ApprovalError("User not found", status_code=404)
    if user.role != Role.CLINICIAN.value:
        raise ApprovalError("User is not a clinician")
    if user.is_approved:
        raise ApprovalError("Clinician is already approved")
    return user


def approve_clinician(
    db: Session,
    user_id: UUID,
    admin: User | None,
    request: Request | None = None,
) -> User:
    """Activate a pending clinician. admin is None when run from the CLI."""
    clinician = _get_pending_clinician(db, user_id)
    clinician.is_approved = True
    clinician.approved_at = datetime.now(timezone.utc)
    clinician.approved_by_id = admin.id if admin else None

    audit_service.log_event(
        db,
        AuditAction.CLINICIAN_APPROVED,
        AuditResource.USER,
        user_id=admin.id if admin else None,
        resource_id=clinician.id,
        details={"clinician_email": audit_service.hash_email(clinician.email)},
        request=request,
    )
    db.commit()
    db.refresh(clinician)
    logger.info("Clinician approved", extra={"clinician_id": str(clinician.id)})
    return clinician


def reject_clinician(
    db: Session,
    user_id: UUID,
    admin: User,
    request: Request | None = None,
) -> None:
    """Reject a pending clinician by deleting the account."""
    clinician = _get_pending_clinician(db, user_id)
    clinician_id, clinician_email = clinician.id, clinician.email
    db.delete(clinician)
    audit_service.log_event(
        db,
        AuditAction.CLINICIAN_REJECTED,
        AuditResource.USER,
        user_id=admin.id,
        resource_id=clinician_id,
        details={"clinician_email": audit_service.hash_email(clinician_email)},
        request=request,
    )
    db.commit()
    logger.info("Clinician rejected", extra={"clinician_id": str(clinician_id)})
