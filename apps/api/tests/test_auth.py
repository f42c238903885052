"""Tests for registration, password login and session handling."""
import pytest
from httpx import AsyncClient
from sqlalchemy.orm import Session

from caseportal.core.deps import COOKIE_NAME
from caseportal.core.security import verify_password
from caseportal.db.enums import AuditAction, Role
from caseportal.db.models import AuditLog, User


def _registration(**overrides) -> dict:
    data = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "password": "long-enough-pw",
    }
    data.update(overrides)
    return data


# =============================================================================
# Registration
# =============================================================================

@pytest.mark.asyncio
async def test_register_patient_is_approved(client: AsyncClient, db: Session):
    response = await client.post("/api/users", json=_registration())
    assert response.status_code == 201
    data = response.json()
    assert data["role"] == "PATIENT"
    assert data["is_approved"] is True
    assert data["name"] == "Ada Lovelace"

    user = db.query(User).filter(User.email == "ada@example.com").one()
    assert user.password_hash and user.password_hash != "long-enough-pw"


@pytest.mark.asyncio
async def test_register_clinician_is_pending(client: AsyncClient, db: Session):
    response = await client.post(
        "/api/users",
        json=_registration(
            email="dr@example.com",
            role="CLINICIAN",
            specialty="Oncology",
            license_number="LIC-1",
        ),
    )
    assert response.status_code == 201
    assert response.json()["is_approved"] is False

    user = db.query(User).filter(User.email == "dr@example.com").one()
    assert user.specialty == "Oncology"
    assert user.license_number == "LIC-1"


@pytest.mark.asyncio
async def test_register_patient_ignores_clinician_fields(client: AsyncClient, db: Session):
    response = await client.post(
        "/api/users", json=_registration(specialty="Oncology", license_number="LIC-1")
    )
    assert response.status_code == 201

    user = db.query(User).filter(User.email == "ada@example.com").one()
    assert user.specialty is None
    assert user.license_number is None


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(client: AsyncClient):
    await client.post("/api/users", json=_registration())
    response = await client.post("/api/users", json=_registration(email="ADA@example.com"))
    assert response.status_code == 409
    assert "already exists" in response.json()["error"]


@pytest.mark.asyncio
async def test_register_rejects_short_password(client: AsyncClient):
    response = await client.post("/api/users", json=_registration(password="short"))
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert body["details"]


@pytest.mark.asyncio
@pytest.mark.parametrize("password", ["x" * 100, "é" * 40])
async def test_register_rejects_password_over_72_bytes(
    client: AsyncClient, db: Session, password: str
):
    response = await client.post("/api/users", json=_registration(password=password))
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"
    assert db.query(User).count() == 0


@pytest.mark.asyncio
async def test_register_accepts_72_byte_password(client: AsyncClient, db: Session):
    password = "p" * 72
    response = await client.post("/api/users", json=_registration(password=password))
    assert response.status_code == 201

    user = db.query(User).filter(User.email == "ada@example.com").one()
    assert verify_password(password, user.password_hash)


@pytest.mark.asyncio
async def test_register_cannot_create_admin(client: AsyncClient):
    response = await client.post("/api/users", json=_registration(role="ADMIN"))
    assert response.status_code == 400


# =============================================================================
# Login / logout
# =============================================================================

@pytest.mark.asyncio
async def test_login_sets_cookie_and_landing_page(
    client: AsyncClient, patient: User, db: Session, user_password: str
):
    response = await client.post(
        "/api/auth/login", json={"email": patient.email, "password": user_password}
    )
    assert response.status_code == 200
    assert COOKIE_NAME in response.cookies
    data = response.json()
    assert data["user"]["id"] == str(patient.id)
    assert data["redirect_to"] == "/portal/dashboard"

    actions = [a for (a,) in db.query(AuditLog.action).all()]
    assert AuditAction.LOGIN.value in actions


@pytest.mark.asyncio
async def test_login_patient_without_consent_goes_to_consent(
    client: AsyncClient, make_user, user_password: str
):
    user = make_user(Role.PATIENT, consent=False)
    response = await client.post(
        "/api/auth/login", json={"email": user.email, "password": user_password}
    )
    assert response.status_code == 200
    assert response.json()["redirect_to"] == "/portal/consent"


@pytest.mark.asyncio
async def test_login_pending_clinician_goes_to_pending_page(
    client: AsyncClient, pending_clinician: User, user_password: str
):
    response = await client.post(
        "/api/auth/login", json={"email": pending_clinician.email, "password": user_password}
    )
    assert response.status_code == 200
    assert response.json()["redirect_to"] == "/pending-approval"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, patient: User):
    response = await client.post(
        "/api/auth/login", json={"email": patient.email, "password": "wrong-password"}
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}


@pytest.mark.asyncio
async def test_login_unknown_email(client: AsyncClient, user_password: str):
    response = await client.post(
        "/api/auth/login", json={"email": "nobody@example.com", "password": user_password}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_then_me(client: AsyncClient, clinician: User, user_password: str):
    await client.post(
        "/api/auth/login", json={"email": clinician.email, "password": user_password}
    )
    response = await client.get("/api/auth/me")
    assert response.status_code == 200
    assert response.json()["email"] == clinician.email


@pytest.mark.asyncio
async def test_me_requires_session(client: AsyncClient):
    response = await client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_invalid_cookie_is_rejected(client: AsyncClient):
    client.cookies.set(COOKIE_NAME, "not-a-jwt")
    response = await client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid session"}


@pytest.mark.asyncio
async def test_bumped_token_version_revokes_session(
    patient_client: AsyncClient, patient: User, db: Session
):
    patient.token_version += 1
    db.commit()

    response = await patient_client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"error": "Session revoked"}


@pytest.mark.asyncio
async def test_disabled_account_is_rejected(patient_client: AsyncClient, patient: User, db: Session):
    patient.is_active = False
    db.commit()

    response = await patient_client.get("/api/auth/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout_clears_cookie(patient_client: AsyncClient):
    response = await patient_client.post("/api/auth/logout")
    assert response.status_code == 200
    assert response.json() == {"status": "logged_out"}
    set_cookie = response.headers.get("set-cookie", "")
    assert COOKIE_NAME in set_cookie
    assert "Max-Age=0" in set_cookie or "expires=" in set_cookie.lower()


@pytest.mark.asyncio
async def test_mutation_requires_csrf_header(patient_client: AsyncClient):
    del patient_client.headers["X-Requested-With"]
    response = await patient_client.post(
        "/api/cases", json={"title": "Headache", "case_type": "ONCOLOGY"}
    )
    assert response.status_code == 403
    assert "CSRF" in response.json()["error"]


@pytest.mark.asyncio
async def test_google_login_unconfigured(client: AsyncClient):
    response = await client.get("/api/auth/google/login", follow_redirects=False)
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_google_callback_without_state_cookie_redirects_with_error(client: AsyncClient):
    response = await client.get(
        "/api/auth/google/callback",
        params={"code": "abc", "state": "xyz"},
        follow_redirects=False,
    )
    assert response.status_code == 302
    assert response.headers["location"].endswith("/login?error=state_expired")


@pytest.mark.asyncio
async def test_google_callback_provider_error(client: AsyncClient):
    response = await client.get(
        "/api/auth/google/callback",
        params={"error": "access_denied"},
        follow_redirects=False,
    )
    assert response.status_code == 302
    assert "error=google_access_denied" in response.headers["location"]


@pytest.fixture
def google_flow(monkeypatch):
    """Google configured, token exchange and ID token verification stubbed."""
    from caseportal.core.config import settings
    from caseportal.services import google_oauth

    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", "client-id")
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_SECRET", "client-secret")

    identity = {"sub": "google-123", "email": "new.patient@example.com", "name": "New Patient"}

    async def fake_exchange(code: str) -> dict:
        return {"id_token": f"token-for-{code}"}

    def fake_verify(token: str, expected_nonce: str):
        if expected_nonce != "nonce-1":
            raise ValueError("Nonce mismatch")
        return google_oauth.GoogleUserInfo(**identity)

    monkeypatch.setattr(google_oauth, "exchange_code_for_tokens", fake_exchange)
    monkeypatch.setattr(google_oauth, "verify_id_token", fake_verify)
    return identity


def _state_cookie(state: str = "state-1", nonce: str = "nonce-1", user_agent: str = "test-agent") -> str:
    from caseportal.core.security import create_oauth_state_payload

    return create_oauth_state_payload(state, nonce, user_agent)


@pytest.mark.asyncio
async def test_google_login_sets_state_cookie(client: AsyncClient, google_flow):
    response = await client.get("/api/auth/google/login", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"].startswith("https://accounts.google.com/")
    assert "oauth_state" in response.headers["set-cookie"]


@pytest.mark.asyncio
async def test_google_callback_creates_patient(client: AsyncClient, google_flow, db: Session):
    client.cookies.set("oauth_state", _state_cookie())
    response = await client.get(
        "/api/auth/google/callback",
        params={"code": "abc", "state": "state-1"},
        headers={"user-agent": "test-agent"},
        follow_redirects=False,
    )
    assert response.status_code == 302
    assert response.headers["location"].endswith("/en/portal/onboarding")
    assert COOKIE_NAME in response.cookies

    user = db.query(User).filter(User.email == "new.patient@example.com").one()
    assert user.role == Role.PATIENT.value
    assert user.google_sub == "google-123"
    assert user.password_hash is None


@pytest.mark.asyncio
async def test_google_callback_links_existing_account(
    client: AsyncClient, google_flow, make_user, db: Session
):
    existing = make_user(Role.CLINICIAN, email="new.patient@example.com", specialty="Oncology")
    client.cookies.set("oauth_state", _state_cookie())
    response = await client.get(
        "/api/auth/google/callback",
        params={"code": "abc", "state": "state-1"},
        headers={"user-agent": "test-agent"},
        follow_redirects=False,
    )
    assert response.headers["location"].endswith("/en/clinician/dashboard")

    db.refresh(existing)
    assert existing.google_sub == "google-123"
    assert db.query(User).count() == 1


@pytest.mark.asyncio
async def test_google_callback_state_mismatch(client: AsyncClient, google_flow):
    client.cookies.set("oauth_state", _state_cookie())
    response = await client.get(
        "/api/auth/google/callback",
        params={"code": "abc", "state": "forged"},
        headers={"user-agent": "test-agent"},
        follow_redirects=False,
    )
    assert response.headers["location"].endswith("/login?error=state_mismatch")


@pytest.mark.asyncio
async def test_google_callback_user_agent_mismatch(client: AsyncClient, google_flow):
    client.cookies.set("oauth_state", _state_cookie())
    response = await client.get(
        "/api/auth/google/callback",
        params={"code": "abc", "state": "state-1"},
        headers={"user-agent": "other-agent"},
        follow_redirects=False,
    )
    assert response.headers["location"].endswith("/login?error=state_mismatch")


@pytest.mark.asyncio
async def test_google_callback_bad_nonce(client: AsyncClient, google_flow):
    client.cookies.set("oauth_state", _state_cookie(nonce="other"))
    response = await client.get(
        "/api/auth/google/callback",
        params={"code": "abc", "state": "state-1"},
        headers={"user-agent": "test-agent"},
        follow_redirects=False,
    )
    assert response.headers["location"].endswith("/login?error=token_invalid")
