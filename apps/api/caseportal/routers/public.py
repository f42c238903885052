"""Public forms router: contact, newsletter and captcha verification.

These endpoints accept anonymous traffic and are rate limited per client.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from caseportal.core.deps import get_db, get_optional_user
from caseportal.core.rate_limit import PUBLIC_LIMIT, limiter
from caseportal.db.models import User
from caseportal.schemas.forms import CaptchaVerify, ContactCreate, NewsletterSubscribe
from caseportal.services import audit_service, captcha_service, contact_service

router = APIRouter()


@router.post("/contact")
@limiter.limit(PUBLIC_LIMIT)
def submit_contact(
    request: Request,
    data: ContactCreate,
    user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Store a contact form submission, linked to the user when signed in."""
    submission = contact_service.create_contact_submission(db, data, user)
    return {"success": True, "id": str(submission.id)}


# =============================================================================
# Newsletter
# =============================================================================

@router.post("/newsletter")
@limiter.limit(PUBLIC_LIMIT)
def subscribe_newsletter(
    request: Request,
    data: NewsletterSubscribe,
    db: Session = Depends(get_db),
):
    try:
        contact_service.subscribe(db, data.email)
    except contact_service.AlreadySubscribedError:
        raise HTTPException(status_code=409, detail="Already subscribed")
    return {"success": True}


@router.delete("/newsletter")
@limiter.limit(PUBLIC_LIMIT)
def unsubscribe_newsletter(
    request: Request,
    email: str | None = None,
    db: Session = Depends(get_db),
):
    if not email or not email.strip():
        raise HTTPException(status_code=400, detail="Email is required")
    try:
        contact_service.unsubscribe(db, email)
    except contact_service.SubscriptionNotFoundError:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return {"success": True}


# =============================================================================
# Captcha
# =============================================================================

@router.post("/verify-captcha")
@limiter.limit(PUBLIC_LIMIT)
async def verify_captcha(request: Request, data: CaptchaVerify):
    if not data.token:
        raise HTTPException(status_code=400, detail="CAPTCHA token is required")

    remote_ip = audit_service.get_client_ip(request)
    if not await captcha_service.verify_recaptcha(data.token, remote_ip):
        raise HTTPException(status_code=400, detail="CAPTCHA verification failed")
    return {"success": True}
