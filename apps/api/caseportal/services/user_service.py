"""User service - registration, credentials, profile and consent."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from caseportal.core.security import hash_password, verify_password
from caseportal.db.enums import AuditAction, AuditResource, Role
from caseportal.db.models import User
from caseportal.schemas.user import UserRegister, UserUpdate
from caseportal.services import audit_service
from caseportal.services.google_oauth import GoogleUserInfo

logger = logging.getLogger(__name__)


class EmailAlreadyExistsError(Exception):
    """Registration with an email that already has an account."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user(db: Session, user_id: UUID) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def register_user(db: Session, data: UserRegister, request: Request | None = None) -> User:
    """
    Create a patient or clinician account.

    Patients are approved immediately; clinicians wait for an admin.
    Clinician profile fields are only stored for clinicians.

    Raises:
        EmailAlreadyExistsError: email is taken
    """
    email = normalize_email(data.email)
    if get_user_by_email(db, email):
        raise EmailAlreadyExistsError(email)

    is_clinician = data.role == Role.CLINICIAN.value
    user = User(
        email=email,
        first_name=data.first_name,
        last_name=data.last_name,
        name=f"{data.first_name} {data.last_name}",
        password_hash=hash_password(data.password),
        role=data.role,
        is_approved=not is_clinician,
        specialty=data.specialty if is_clinician else None,
        license_number=data.license_number if is_clinician else None,
        institution=data.institution if is_clinician else None,
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        # Concurrent registration with the same email
        db.rollback()
        raise EmailAlreadyExistsError(email)

    audit_service.log_event(
        db,
        AuditAction.REGISTER,
        AuditResource.USER,
        user_id=user.id,
        resource_id=user.id,
        details={"role": user.role, "email": audit_service.hash_email(email)},
        request=request,
    )
    db.commit()
    db.refresh(user)
    return user


def authenticate(db: Session, email: str, password: str) -> User | None:
    """Return the active user for valid credentials, else None."""
    user = get_user_by_email(db, email)
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def update_profile(
    db: Session,
    user: User,
    data: UserUpdate,
    request: Request | None = None,
) -> User:
    """Apply a partial profile update to the user's own account."""
    changes = data.model_dump(exclude_unset=True)
    if not user.is_clinician:
        changes.pop("specialty", None)
        changes.pop("institution", None)

    for field, value in changes.items():
        setattr(user, field, value)

    if changes:
        audit_service.log_event(
            db,
            AuditAction.PROFILE_UPDATED,
            AuditResource.USER,
            user_id=user.id,
            resource_id=user.id,
            details={"fields": sorted(changes.keys())},
            request=request,
        )
    db.commit()
    db.refresh(user)
    return user


def accept_consent(db: Session, user: User, request: Request | None = None) -> User:
    """Record acceptance of terms and the medical-data consent together."""
    now = datetime.now(timezone.utc)
    user.has_accepted_terms = True
    user.terms_accepted_at = now
    user.has_accepted_consent = True
    user.consent_accepted_at = now
    audit_service.log_event(
        db,
        AuditAction.CONSENT_ACCEPTED,
        AuditResource.USER,
        user_id=user.id,
        resource_id=user.id,
        details={"accepted_at": now.isoformat()},
        request=request,
    )
    db.commit()
    db.refresh(user)
    return user


def get_or_create_google_user(db: Session, info: GoogleUserInfo) -> tuple[User, bool]:
    """
    Resolve a verified Google identity to a user.

    Matches by Google subject first, then by email (linking the account).
    Unknown identities become new PATIENT accounts.

    Returns:
        (user, created)
    """
    user = db.query(User).filter(User.google_sub == info.sub).first()
    if user:
        return user, False

    user = get_user_by_email(db, info.email)
    if user:
        user.google_sub = info.sub
        db.commit()
        db.refresh(user)
        return user, False

    user = User(
        email=normalize_email(info.email),
        name=info.name or None,
        first_name=info.given_name,
        last_name=info.family_name,
        role=Role.PATIENT.value,
        is_approved=True,
        google_sub=info.sub,
    )
    db.add(user)
    db.flush()
    audit_service.log_event(
        db,
        AuditAction.REGISTER,
        AuditResource.USER,
        user_id=user.id,
        resource_id=user.id,
        details={"role": user.role, "provider": "google"},
    )
    db.commit()
    db.refresh(user)
    return user, True


def create_admin(db: Session, email: str, password: str, name: str | None = None) -> User:
    """
    Create an approved admin, or promote an existing account.

    Used by the CLI to bootstrap the first administrator.
    """
    now = datetime.now(timezone.utc)
    user = get_user_by_email(db, email)
    if user is None:
        user = User(email=normalize_email(email), name=name)
        db.add(user)
    user.role = Role.ADMIN.value
    user.password_hash = hash_password(password)
    user.is_approved = True
    user.approved_at = user.approved_at or now
    user.is_active = True
    if name:
        user.name = name
    db.commit()
    db.refresh(user)
    return user


def revoke_sessions(db: Session, user: User) -> None:
    """Invalidate every outstanding session token for the user."""
    user.token_version += 1
    db.commit()
