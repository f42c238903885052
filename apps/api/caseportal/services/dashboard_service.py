"""Dashboard aggregates for patients, clinicians and admins."""

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from caseportal.db.enums import CaseStatus, Role
from caseportal.db.models import Case, CaseReport, User
from caseportal.services import trial_service


def _count_cases(db: Session, *filters) -> int:
    return db.query(func.count(Case.id)).filter(*filters).scalar() or 0


def get_patient_dashboard(db: Session, user: User) -> dict:
    """Five most recent cases plus per-status counts for the patient."""
    recent = (
        db.query(Case)
        .filter(Case.user_id == user.id)
        .order_by(Case.updated_at.desc())
        .limit(5)
        .all()
    )
    owned = Case.user_id == user.id
    stats = {
        "total": _count_cases(db, owned),
        "draft": _count_cases(db, owned, Case.status == CaseStatus.DRAFT.value),
        "active": _count_cases(db, owned, Case.status.in_(CaseStatus.active())),
        "completed": _count_cases(db, owned, Case.status == CaseStatus.COMPLETED.value),
        "saved_trials": trial_service.count_saved_trials(db, user),
    }
    return {"recent_cases": recent, "stats": stats}


def get_clinician_dashboard(db: Session, clinician: User) -> dict:
    """Five most recent assigned cases plus review counts."""
    assigned = Case.assigned_clinician_id == clinician.id
    recent = (
        db.query(Case)
        .options(joinedload(Case.owner), joinedload(Case.assigned_clinician))
        .filter(assigned)
        .order_by(Case.updated_at.desc())
        .limit(5)
        .all()
    )
    stats = {
        "total_assigned": _count_cases(db, assigned),
        "active_reviews": _count_cases(db, assigned, Case.status.in_(CaseStatus.active())),
        "completed_reviews": _count_cases(
            db, assigned, Case.status == CaseStatus.COMPLETED.value
        ),
        "reports_written": (
            db.query(func.count(CaseReport.id))
            .filter(CaseReport.author_id == clinician.id)
            .scalar()
            or 0
        ),
        "pending_cases": _count_cases(
            db,
            Case.assigned_clinician_id.is_(None),
            Case.status.in_(CaseStatus.assignable()),
        ),
    }
    return {"recent_cases": recent, "stats": stats}


def get_admin_stats(db: Session) -> dict:
    def count_users(*filters) -> int:
        return db.query(func.count(User.id)).filter(*filters).scalar() or 0

    return {
        "total_users": count_users(),
        "pending_approvals": count_users(
            User.role == Role.CLINICIAN.value, User.is_approved.is_(False)
        ),
        "total_cases": _count_cases(db),
        "active_cases": _count_cases(db, Case.status.in_(CaseStatus.active())),
        "total_clinicians": count_users(
            User.role == Role.CLINICIAN.value, User.is_approved.is_(True)
        ),
        "total_patients": count_users(User.role == Role.PATIENT.value),
    }
