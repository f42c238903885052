"""Saved clinical trials router."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from caseportal.core.deps import get_current_user, get_db, require_csrf_header
from caseportal.db.models import User
from caseportal.schemas.trial import SavedTrialCreate, SavedTrialRead
from caseportal.services import trial_service

router = APIRouter()


@router.get("/saved", response_model=list[SavedTrialRead])
def list_saved_trials(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return trial_service.list_saved_trials(db, user)


@router.post(
    "/saved",
    response_model=SavedTrialRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def save_trial(
    data: SavedTrialCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return trial_service.save_trial(db, user, data)
    except trial_service.TrialAlreadySavedError:
        raise HTTPException(status_code=409, detail="Trial already saved")


@router.delete("/saved/{trial_id}", dependencies=[Depends(require_csrf_header)])
def remove_saved_trial(
    trial_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not trial_service.remove_saved_trial(db, user, trial_id):
        raise HTTPException(status_code=404, detail="Saved trial not found")
    return {"success": True}
