"""Authentication router: password login, Google sign-in and session management."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from caseportal.core.config import settings
from caseportal.core.deps import COOKIE_NAME, get_current_user, get_db, get_optional_user, require_csrf_header
from caseportal.core.rate_limit import AUTH_LIMIT, limiter
from caseportal.core.route_guard import GuardUser, landing_path
from caseportal.core.security import (
    create_oauth_state_payload,
    create_session_token,
    generate_oauth_nonce,
    generate_oauth_state,
    parse_oauth_state_payload,
    verify_oauth_state,
)
from caseportal.db.enums import AuditAction, AuditResource
from caseportal.db.models import User
from caseportal.schemas.auth import LoginRequest, LoginResponse
from caseportal.schemas.user import UserRead
from caseportal.services import audit_service, google_oauth, user_service

router = APIRouter()

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_STATE_MAX_AGE = 300  # 5 minutes
OAUTH_STATE_PATH = "/api/auth"


def _set_session_cookie(response: Response, user: User) -> None:
    token = create_session_token(user.id, user.role, user.token_version)
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )


# =============================================================================
# Password Login
# =============================================================================

@router.post("/login", response_model=LoginResponse)
@limiter.limit(AUTH_LIMIT)
def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    db: Session = Depends(get_db),
):
    """
    Sign in with email and password.

    The response names the page the frontend should open next
    (consent, pending approval or the role dashboard).
    """
    user = user_service.authenticate(db, data.email, data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    _set_session_cookie(response, user)
    audit_service.log_event_best_effort(
        db,
        AuditAction.LOGIN,
        AuditResource.USER,
        user_id=user.id,
        resource_id=user.id,
        details={"method": "password"},
        request=request,
    )
    return LoginResponse(
        user=UserRead.model_validate(user),
        redirect_to=landing_path(GuardUser.from_user(user)),
    )


# =============================================================================
# OAuth Endpoints
# =============================================================================

@router.get("/google/login")
@limiter.limit(AUTH_LIMIT)
def google_login(request: Request):
    """
    Start Google sign-in.

    State and nonce go into a short-lived cookie bound to the user agent;
    the callback checks both before trusting the ID token.
    """
    if not google_oauth.google_configured():
        raise HTTPException(status_code=503, detail="Google sign-in is not configured")

    state = generate_oauth_state()
    nonce = generate_oauth_nonce()
    user_agent = request.headers.get("user-agent", "")

    response = RedirectResponse(
        url=google_oauth.build_authorization_url(state, nonce),
        status_code=302,
    )
    response.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=create_oauth_state_payload(state, nonce, user_agent),
        max_age=OAUTH_STATE_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path=OAUTH_STATE_PATH,
    )
    return response


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: Session = Depends(get_db),
):
    """
    Finish Google sign-in.

    Flow:
    1. Validate state cookie (CSRF + user-agent binding)
    2. Exchange code for tokens
    3. Verify ID token (signature, claims, nonce)
    4. Find or create the user (new users are patients)
    5. Set session cookie and redirect
    """
    error_response = RedirectResponse(url=_get_error_redirect("auth_failed"), status_code=302)
    error_response.delete_cookie(OAUTH_STATE_COOKIE, path=OAUTH_STATE_PATH)

    if error:
        error_response.headers["location"] = _get_error_redirect(f"google_{error}")
        return error_response

    if not code or not state:
        error_response.headers["location"] = _get_error_redirect("missing_params")
        return error_response

    state_cookie = request.cookies.get(OAUTH_STATE_COOKIE)
    if not state_cookie:
        error_response.headers["location"] = _get_error_redirect("state_expired")
        return error_response

    try:
        stored_payload = parse_oauth_state_payload(state_cookie)
    except ValueError:
        error_response.headers["location"] = _get_error_redirect("invalid_state")
        return error_response

    user_agent = request.headers.get("user-agent", "")
    valid, _ = verify_oauth_state(stored_payload, state, user_agent)
    if not valid:
        error_response.headers["location"] = _get_error_redirect("state_mismatch")
        return error_response

    try:
        tokens = await google_oauth.exchange_code_for_tokens(code)
    except Exception:
        error_response.headers["location"] = _get_error_redirect("token_exchange_failed")
        return error_response

    try:
        google_user = google_oauth.verify_id_token(
            tokens["id_token"],
            expected_nonce=stored_payload["nonce"],
        )
    except (KeyError, ValueError):
        error_response.headers["location"] = _get_error_redirect("token_invalid")
        return error_response

    user, created = user_service.get_or_create_google_user(db, google_user)
    if not user.is_active:
        error_response.headers["location"] = _get_error_redirect("account_disabled")
        return error_response

    audit_service.log_event_best_effort(
        db,
        AuditAction.LOGIN,
        AuditResource.USER,
        user_id=user.id,
        resource_id=user.id,
        details={"method": "google", "new_user": created},
        request=request,
    )

    target = "/portal/onboarding" if created else landing_path(GuardUser.from_user(user))
    success_response = RedirectResponse(url=_get_frontend_url(target), status_code=302)
    success_response.delete_cookie(OAUTH_STATE_COOKIE, path=OAUTH_STATE_PATH)
    _set_session_cookie(success_response, user)
    return success_response


# =============================================================================
# Session Endpoints
# =============================================================================

@router.get("/me", response_model=UserRead)
def get_me(user: User = Depends(get_current_user)):
    """Current session user, reloaded from the database."""
    return user


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(
    request: Request,
    response: Response,
    user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    Clear the session cookie.

    Works with an expired or revoked cookie too, so a stale browser can
    always sign out.
    """
    if user:
        audit_service.log_event_best_effort(
            db,
            AuditAction.LOGOUT,
            AuditResource.USER,
            user_id=user.id,
            resource_id=user.id,
            request=request,
        )
    response.delete_cookie(COOKIE_NAME, path="/")
    return {"status": "logged_out"}


# =============================================================================
# Helper Functions
# =============================================================================

def _get_frontend_url(path: str) -> str:
    """Fixed frontend path under the default locale; no user input."""
    return f"{settings.FRONTEND_URL.rstrip('/')}/{settings.DEFAULT_LOCALE}{path}"


def _get_error_redirect(error_code: str) -> str:
    return _get_frontend_url(f"/login?error={error_code}")
