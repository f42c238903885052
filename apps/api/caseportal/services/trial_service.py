"""Saved clinical trials for patients."""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from caseportal.db.models import SavedTrial, User
from caseportal.schemas.trial import SavedTrialCreate


class TrialAlreadySavedError(Exception):
    pass


def list_saved_trials(db: Session, user: User) -> list[SavedTrial]:
    return (
        db.query(SavedTrial)
        .filter(SavedTrial.user_id == user.id)
        .order_by(SavedTrial.saved_at.desc())
        .all()
    )


def save_trial(db: Session, user: User, data: SavedTrialCreate) -> SavedTrial:
    """
    Bookmark a trial.

    Raises:
        TrialAlreadySavedError: (user, trial_id) already saved
    """
    existing = (
        db.query(SavedTrial)
        .filter(SavedTrial.user_id == user.id, SavedTrial.trial_id == data.trial_id)
        .first()
    )
    if existing:
        raise TrialAlreadySavedError(data.trial_id)

    trial = SavedTrial(
        user_id=user.id,
        trial_id=data.trial_id,
        trial_title=data.trial_title,
        trial_data=data.trial_data,
        notes=data.notes,
    )
    db.add(trial)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise TrialAlreadySavedError(data.trial_id)
    db.refresh(trial)
    return trial


def remove_saved_trial(db: Session, user: User, trial_id: str) -> bool:
    """Delete a bookmark. Returns False if it did not exist."""
    trial = (
        db.query(SavedTrial)
        .filter(SavedTrial.user_id == user.id, SavedTrial.trial_id == trial_id)
        .first()
    )
    if not trial:
        return False
    db.delete(trial)
    db.commit()
    return True


def count_saved_trials(db: Session, user: User) -> int:
    return db.query(SavedTrial).filter(SavedTrial.user_id == user.id).count()
