"""Case service - business logic for the case lifecycle.

    DRAFT --submit--> SUBMITTED --assign--> UNDER_REVIEW --report--> COMPLETED

Transitions that race (submit, assign) are single conditional UPDATEs so two
concurrent requests cannot both succeed.
"""

import logging
import secrets
import string
from datetime import datetime, timezone
from uuid import UUID

from fastapi import Request
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from caseportal.core.case_access import can_view_case
from caseportal.db.enums import AuditAction, AuditResource, CaseStatus
from caseportal.db.models import Case, CaseReport, User
from caseportal.schemas.case import CaseCreate, CaseUpdate
from caseportal.services import audit_service

logger = logging.getLogger(__name__)

CASE_NUMBER_PREFIX = "MF"
CASE_NUMBER_SUFFIX_LENGTH = 6
_CASE_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


# =============================================================================
# Errors
# =============================================================================

class CaseWorkflowError(Exception):
    """A case rule was violated. Carries the HTTP status routers should use."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class CaseNotFoundError(CaseWorkflowError):
    status_code = 404

    def __init__(self, detail: str = "Case not found"):
        super().__init__(detail)


class CaseForbiddenError(CaseWorkflowError):
    status_code = 403


# =============================================================================
# Case numbers
# =============================================================================

def generate_case_number(now: datetime | None = None) -> str:
    """MF-YYMMDD-XXXXXX with a random uppercase alphanumeric suffix."""
    now = now or datetime.now(timezone.utc)
    suffix = "".join(
        secrets.choice(_CASE_NUMBER_ALPHABET) for _ in range(CASE_NUMBER_SUFFIX_LENGTH)
    )
    return f"{CASE_NUMBER_PREFIX}-{now:%y%m%d}-{suffix}"


def _is_case_number_conflict(error: IntegrityError) -> bool:
    message = str(error.orig) if error.orig else str(error)
    return "case_number" in message


# =============================================================================
# Queries
# =============================================================================

def _detail_options():
    return (
        joinedload(Case.owner),
        joinedload(Case.assigned_clinician),
        selectinload(Case.documents),
        selectinload(Case.reports).joinedload(CaseReport.author),
    )


def get_case(db: Session, case_id: UUID, *, with_details: bool = False) -> Case | None:
    query = db.query(Case)
    if with_details:
        query = query.options(*_detail_options())
    return query.filter(Case.id == case_id).first()


def get_case_for_viewer(db: Session, case_id: UUID, user: User) -> Case:
    """
    Case with documents and reports for its owner, assigned clinician or an admin.

    Raises:
        CaseNotFoundError: missing, or the user may not see it
    """
    case = get_case(db, case_id, with_details=True)
    if not case or not can_view_case(case, user):
        raise CaseNotFoundError()
    return case


def get_owned_case(db: Session, case_id: UUID, user: User) -> Case:
    """
    Case owned by the user.

    Raises:
        CaseNotFoundError: missing or owned by someone else
    """
    case = db.query(Case).filter(Case.id == case_id, Case.user_id == user.id).first()
    if not case:
        raise CaseNotFoundError()
    return case


def list_owned_cases(db: Session, user: User, status: CaseStatus | None = None) -> list[Case]:
    """The patient's own cases, most recently updated first."""
    query = db.query(Case).filter(Case.user_id == user.id)
    if status:
        query = query.filter(Case.status == status.value)
    return query.order_by(Case.updated_at.desc()).all()


# =============================================================================
# Patient operations
# =============================================================================

def create_case(
    db: Session,
    owner: User,
    data: CaseCreate,
    request: Request | None = None,
) -> Case:
    """Create a DRAFT case with a fresh case number (retried on collision)."""
    case = None
    for attempt in range(3):
        case = Case(
            case_number=generate_case_number(),
            user_id=owner.id,
            title=data.title.strip(),
            case_type=data.case_type.value,
            status=CaseStatus.DRAFT.value,
        )
        db.add(case)
        try:
            db.flush()
            break
        except IntegrityError as exc:
            db.rollback()
            if _is_case_number_conflict(exc) and attempt < 2:
                continue
            raise

    audit_service.log_event(
        db,
        AuditAction.CREATE_CASE,
        AuditResource.CASE,
        user_id=owner.id,
        resource_id=case.id,
        details={"case_number": case.case_number, "case_type": case.case_type},
        request=request,
    )
    db.commit()
    db.refresh(case)
    return case


def _require_draft(case: Case, detail: str) -> None:
    if case.status != CaseStatus.DRAFT.value:
        raise CaseWorkflowError(detail)


def update_case(
    db: Session,
    case: Case,
    user: User,
    data: CaseUpdate,
    request: Request | None = None,
) -> Case:
    """Apply a partial update to a draft case."""
    _require_draft(case, "Only draft cases can be edited")

    changes = data.model_dump(exclude_unset=True)
    if "title" in changes and changes["title"] is not None:
        changes["title"] = changes["title"].strip()
    if changes.get("case_type") is not None:
        changes["case_type"] = changes["case_type"].value
    # title and case_type are required columns
    for required in ("title", "case_type"):
        if required in changes and changes[required] is None:
            changes.pop(required)

    for field, value in changes.items():
        setattr(case, field, value)

    audit_service.log_event(
        db,
        AuditAction.UPDATE_CASE,
        AuditResource.CASE,
        user_id=user.id,
        resource_id=case.id,
        details={"fields": sorted(changes.keys())},
        request=request,
    )
    db.commit()
    db.refresh(case)
    return case


def delete_case(
    db: Session,
    case: Case,
    user: User,
    request: Request | None = None,
) -> list[str]:
    """
    Delete a draft case with its documents.

    Returns the storage keys of removed documents so the caller can delete files
    after the commit.
    """
    _require_draft(case, "Only draft cases can be deleted")

    storage_keys = [doc.storage_key for doc in case.documents]
    case_id, case_number = case.id, case.case_number
    db.delete(case)
    audit_service.log_event(
        db,
        AuditAction.DELETE_CASE,
        AuditResource.CASE,
        user_id=user.id,
        resource_id=case_id,
        details={"case_number": case_number},
        request=request,
    )
    db.commit()
    return storage_keys


def submit_case(
    db: Session,
    case_id: UUID,
    user: User,
    request: Request | None = None,
) -> Case:
    """
    Move the user's draft to SUBMITTED.

    Raises:
        CaseNotFoundError: not the user's case
        CaseWorkflowError: no longer a draft
    """
    now = datetime.now(timezone.utc)
    result = db.execute(
        update(Case)
        .where(
            Case.id == case_id,
            Case.user_id == user.id,
            Case.status == CaseStatus.DRAFT.value,
        )
        .values(status=CaseStatus.SUBMITTED.value, submitted_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        get_owned_case(db, case_id, user)
        raise CaseWorkflowError("Only draft cases can be submitted")

    case = db.query(Case).populate_existing().filter(Case.id == case_id).one()
    audit_service.log_event(
        db,
        AuditAction.SUBMIT_CASE,
        AuditResource.CASE,
        user_id=user.id,
        resource_id=case.id,
        details={"case_number": case.case_number},
        request=request,
    )
    db.commit()
    db.refresh(case)
    return case


# =============================================================================
# Clinician operations
# =============================================================================

def assign_case(
    db: Session,
    case_id: UUID,
    clinician: User,
    request: Request | None = None,
) -> Case:
    """
    Claim an unassigned case for an approved clinician.

    The conditional UPDATE is the guard: of two concurrent claims exactly one
    matches the "unassigned and assignable" predicate.

    Raises:
        CaseNotFoundError: case missing
        CaseWorkflowError: wrong status or already assigned
    """
    now = datetime.now(timezone.utc)
    result = db.execute(
        update(Case)
        .where(
            Case.id == case_id,
            Case.assigned_clinician_id.is_(None),
            Case.status.in_(CaseStatus.assignable()),
        )
        .values(
            assigned_clinician_id=clinician.id,
            assigned_at=now,
            status=CaseStatus.UNDER_REVIEW.value,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        case = get_case(db, case_id)
        if not case:
            raise CaseNotFoundError()
        if case.status not in CaseStatus.assignable():
            raise CaseWorkflowError("Case cannot be assigned in its current status")
        raise CaseWorkflowError("Case is already assigned to a clinician")

    case = db.query(Case).populate_existing().filter(Case.id == case_id).one()
    audit_service.log_event(
        db,
        AuditAction.CASE_ASSIGNED,
        AuditResource.CASE,
        user_id=clinician.id,
        resource_id=case.id,
        details={"case_number": case.case_number, "clinician_id": str(clinician.id)},
        request=request,
    )
    db.commit()
    db.refresh(case)
    return case


def _with_people(query):
    return query.options(joinedload(Case.owner), joinedload(Case.assigned_clinician))


def list_assigned_cases(db: Session, clinician: User) -> dict[str, list[Case]]:
    """Cases assigned to the clinician, split into active and completed."""
    cases = (
        _with_people(db.query(Case))
        .filter(Case.assigned_clinician_id == clinician.id)
        .order_by(Case.updated_at.desc())
        .all()
    )
    return {
        "active": [c for c in cases if c.status in CaseStatus.active()],
        "completed": [c for c in cases if c.status == CaseStatus.COMPLETED.value],
    }


def list_case_board(db: Session, clinician: User) -> dict[str, list[Case]]:
    """Unassigned active cases (50), mine (50), and other clinicians' (30)."""
    unassigned = (
        _with_people(db.query(Case))
        .filter(
            Case.assigned_clinician_id.is_(None),
            Case.status.in_(CaseStatus.active()),
        )
        .order_by(Case.updated_at.desc())
        .limit(50)
        .all()
    )
    mine = (
        _with_people(db.query(Case))
        .filter(
            Case.assigned_clinician_id == clinician.id,
            Case.status.in_(CaseStatus.on_board()),
        )
        .order_by(Case.updated_at.desc())
        .limit(50)
        .all()
    )
    others = (
        _with_people(db.query(Case))
        .filter(
            Case.assigned_clinician_id.is_not(None),
            Case.assigned_clinician_id != clinician.id,
            Case.status.in_(CaseStatus.on_board()),
        )
        .order_by(Case.updated_at.desc())
        .limit(30)
        .all()
    )
    return {"unassigned": unassigned, "mine": mine, "others": others}


def list_recent_cases(db: Session, limit: int = 100) -> list[Case]:
    """Latest cases by update time with patient and clinician (admin view)."""
    return (
        _with_people(db.query(Case))
        .order_by(Case.updated_at.desc())
        .limit(limit)
        .all()
    )

