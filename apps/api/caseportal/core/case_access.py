"""Case access control - centralized permission checks for case operations.

Rules:
- Patients: only cases they own
- Clinicians: cases assigned to them (read access to reports is wider,
  see can_read_reports)
- Admins: every case
"""

from fastapi import HTTPException, status

from caseportal.db.enums import Role
from caseportal.db.models import Case, User


def is_case_participant(case: Case, user: User) -> bool:
    """Owner, assigned clinician, or admin."""
    if user.role == Role.ADMIN.value:
        return True
    if case.user_id == user.id:
        return True
    return case.assigned_clinician_id is not None and case.assigned_clinician_id == user.id


def check_case_access(case: Case, user: User) -> None:
    """
    Raise 403 unless the user participates in the case.

    Raises:
        HTTPException: 403 if access denied
    """
    if not is_case_participant(case, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have access to this case",
        )


def can_view_case(case: Case, user: User) -> bool:
    """Non-raising variant used where a miss should look like 404."""
    return is_case_participant(case, user)


def can_read_reports(case: Case, user: User) -> bool:
    """Clinicians and admins may read reports on any case; patients only their own."""
    if user.role in (Role.CLINICIAN.value, Role.ADMIN.value):
        return True
    return case.user_id == user.id


def can_write_report(case: Case, user: User) -> tuple[bool, str]:
    """
    Check report authoring rights.

    Returns:
        (allowed, error)
    """
    if user.role not in (Role.CLINICIAN.value, Role.ADMIN.value):
        return False, "Only clinicians can create reports"
    if user.role == Role.CLINICIAN.value and case.assigned_clinician_id != user.id:
        return False, "You are not assigned to this case"
    return True, ""
