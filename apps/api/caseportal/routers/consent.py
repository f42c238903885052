"""Consent router: terms and medical-data consent acceptance."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from caseportal.core.deps import get_current_user, get_db, require_csrf_header
from caseportal.db.models import User
from caseportal.schemas.auth import ConsentRequest
from caseportal.schemas.user import UserRead
from caseportal.services import user_service

router = APIRouter()


@router.post("", response_model=UserRead, dependencies=[Depends(require_csrf_header)])
def accept_consent(
    data: ConsentRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Both the terms and the consent must be accepted in one request."""
    if not (data.has_accepted_terms and data.has_accepted_consent):
        raise HTTPException(
            status_code=400,
            detail="You must accept both the terms and the consent to continue",
        )
    return user_service.accept_consent(db, user, request=request)
