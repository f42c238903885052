"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator
from uuid import UUID

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from caseportal.core.security import decode_session_token
from caseportal.db.enums import Role
from caseportal.db.models import User
from caseportal.db.session import SessionLocal


# Cookie and header names
COOKIE_NAME = "portal_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _load_session_user(request: Request, db: Session) -> User | None:
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        return None

    try:
        payload = decode_session_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid session")

    user = db.query(User).filter(User.id == _parse_uuid(payload.get("sub"))).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    # Token version check (revocation support)
    if user.token_version != payload.get("token_version"):
        raise HTTPException(status_code=401, detail="Session revoked")

    return user


def _parse_uuid(value) -> UUID:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid session")


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """
    Get authenticated user from session cookie.

    The user row is reloaded on every request so role and approval
    changes apply immediately.

    Validates:
    - Session cookie exists
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)

    Raises:
        HTTPException 401: Authentication failed
    """
    user = _load_session_user(request, db)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User | None:
    """Session user for public endpoints; None when signed out or the cookie is bad."""
    try:
        return _load_session_user(request, db)
    except HTTPException:
        return None


def require_roles(allowed_roles: list):
    """
    Dependency factory for role-based authorization.

    Uses enum values (not strings) to prevent drift.

    Usage:
        @router.get("/admin/users", dependencies=[Depends(require_roles([Role.ADMIN]))])
    """
    allowed = {r.value if isinstance(r, Role) else r for r in allowed_roles}

    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user
    return dependency


def require_approved_clinician(user: User = Depends(get_current_user)) -> User:
    """Clinician whose account an admin has approved."""
    if user.role != Role.CLINICIAN.value:
        raise HTTPException(status_code=403, detail="Only clinicians can perform this action")
    if not user.is_approved:
        raise HTTPException(status_code=403, detail="Your account is pending approval")
    return user


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )
