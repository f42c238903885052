"""Patient portal router."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from caseportal.core.deps import get_db, require_roles
from caseportal.db.enums import Role
from caseportal.db.models import User
from caseportal.schemas.dashboard import PatientDashboard
from caseportal.services import dashboard_service

router = APIRouter()


@router.get("/dashboard", response_model=PatientDashboard)
def patient_dashboard(
    user: User = Depends(require_roles([Role.PATIENT])),
    db: Session = Depends(get_db),
):
    """Five most recent cases and case/trial counts."""
    return dashboard_service.get_patient_dashboard(db, user)
