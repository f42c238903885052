"""Users router: self-service registration and own-profile access."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from caseportal.core.deps import get_current_user, get_db, require_csrf_header
from caseportal.core.rate_limit import AUTH_LIMIT, limiter
from caseportal.db.models import User
from caseportal.schemas.user import UserCreated, UserRead, UserRegister, UserUpdate
from caseportal.services import user_service

router = APIRouter()


def _require_self(user_id: UUID, user: User) -> None:
    if user.id != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")


@router.post("", response_model=UserCreated, status_code=201)
@limiter.limit(AUTH_LIMIT)
def register(
    request: Request,
    data: UserRegister,
    db: Session = Depends(get_db),
):
    """Create a patient (active immediately) or clinician (pending approval) account."""
    try:
        return user_service.register_user(db, data, request=request)
    except user_service.EmailAlreadyExistsError:
        raise HTTPException(status_code=409, detail="User with this email already exists")


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: UUID,
    user: User = Depends(get_current_user),
):
    _require_self(user_id, user)
    return user


@router.patch("/{user_id}", response_model=UserRead, dependencies=[Depends(require_csrf_header)])
def update_user(
    user_id: UUID,
    data: UserUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update own profile. Specialty and institution only apply to clinicians."""
    _require_self(user_id, user)
    return user_service.update_profile(db, user, data, request=request)
