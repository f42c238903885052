"""Public contact form and newsletter subscriptions."""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from caseportal.db.models import ContactSubmission, NewsletterSubscription, User
from caseportal.schemas.forms import ContactCreate

logger = logging.getLogger(__name__)


class AlreadySubscribedError(Exception):
    pass


class SubscriptionNotFoundError(Exception):
    pass


def create_contact_submission(
    db: Session,
    data: ContactCreate,
    user: User | None = None,
) -> ContactSubmission:
    submission = ContactSubmission(
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        email=data.email.lower(),
        category=data.category.value,
        message=data.message,
        user_id=user.id if user else None,
    )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    return submission


def subscribe(db: Session, email: str) -> NewsletterSubscription:
    """
    Subscribe an email, reactivating a previous unsubscribe.

    Raises:
        AlreadySubscribedError: email is already active
    """
    email = email.strip().lower()
    subscription = (
        db.query(NewsletterSubscription)
        .filter(NewsletterSubscription.email == email)
        .first()
    )
    if subscription:
        if subscription.is_active:
            raise AlreadySubscribedError(email)
        subscription.is_active = True
        subscription.subscribed_at = datetime.now(timezone.utc)
        subscription.unsubscribed_at = None
    else:
        subscription = NewsletterSubscription(email=email)
        db.add(subscription)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadySubscribedError(email)
    db.refresh(subscription)
    return subscription


def unsubscribe(db: Session, email: str) -> NewsletterSubscription:
    """
    Deactivate a subscription.

    Raises:
        SubscriptionNotFoundError: unknown email
    """
    email = email.strip().lower()
    subscription = (
        db.query(NewsletterSubscription)
        .filter(NewsletterSubscription.email == email)
        .first()
    )
    if not subscription:
        raise SubscriptionNotFoundError(email)
    subscription.is_active = False
    subscription.unsubscribed_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(subscription)
    return subscription
