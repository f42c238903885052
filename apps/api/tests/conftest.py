"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema recreated for each test
- User fixtures for every role (patient, clinician, pending clinician, admin)
- HTTPX AsyncClients with session cookie and CSRF header per role
"""
import os
import tempfile
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Generator

# Settings are read at import time; configure before importing the app
os.environ["ENV"] = "dev"
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOCAL_STORAGE_PATH"] = tempfile.mkdtemp(prefix="caseportal-test-")
os.environ["STORAGE_BACKEND"] = "local"
os.environ["BREVO_API_KEY"] = ""
os.environ["RECAPTCHA_SECRET_KEY"] = ""
os.environ["GOOGLE_CLIENT_ID"] = ""
os.environ["GOOGLE_CLIENT_SECRET"] = ""
os.environ["SENTRY_DSN"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from caseportal.core.deps import COOKIE_NAME, CSRF_HEADER, CSRF_HEADER_VALUE, get_db
from caseportal.core.security import create_session_token, hash_password
from caseportal.db.base import Base
from caseportal.db.enums import CaseStatus, CaseType, Role
from caseportal.db.models import Case, User
from caseportal.db.session import SessionLocal, engine
from caseportal.main import app
from caseportal.services.case_service import generate_case_number


TEST_PASSWORD = "correct-horse-battery"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    The in-memory engine uses a single shared connection, so dropping and
    recreating the tables isolates tests without savepoints.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def make_user(db: Session):
    """Factory for users of any role."""

    def _make_user(
        role: Role = Role.PATIENT,
        *,
        approved: bool = True,
        consent: bool = True,
        email: str | None = None,
        **fields,
    ) -> User:
        now = datetime.now(timezone.utc)
        user = User(
            email=email or f"{role.value.lower()}-{uuid.uuid4().hex[:8]}@test.com",
            name=fields.pop("name", f"Test {role.value.title()}"),
            password_hash=hash_password(TEST_PASSWORD),
            role=role.value,
            is_approved=approved,
            approved_at=now if approved else None,
            has_accepted_terms=consent,
            terms_accepted_at=now if consent else None,
            has_accepted_consent=consent,
            consent_accepted_at=now if consent else None,
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture(scope="function")
def patient(make_user) -> User:
    return make_user(Role.PATIENT)


@pytest.fixture(scope="function")
def other_patient(make_user) -> User:
    return make_user(Role.PATIENT)


@pytest.fixture(scope="function")
def clinician(make_user) -> User:
    return make_user(Role.CLINICIAN, specialty="Oncology")


@pytest.fixture(scope="function")
def other_clinician(make_user) -> User:
    return make_user(Role.CLINICIAN, specialty="Neurology")


@pytest.fixture(scope="function")
def pending_clinician(make_user) -> User:
    return make_user(Role.CLINICIAN, approved=False, consent=False, specialty="Cardiology")


@pytest.fixture(scope="function")
def admin(make_user) -> User:
    return make_user(Role.ADMIN)


@pytest.fixture(scope="function")
def make_case(db: Session):
    """Factory for cases in any status, optionally assigned."""

    def _make_case(
        owner: User,
        *,
        status: CaseStatus = CaseStatus.DRAFT,
        clinician: User | None = None,
        title: str = "Second opinion",
        case_type: CaseType = CaseType.ONCOLOGY,
        **fields,
    ) -> Case:
        now = datetime.now(timezone.utc)
        case = Case(
            case_number=generate_case_number(),
            user_id=owner.id,
            title=title,
            case_type=case_type.value,
            status=status.value,
            submitted_at=now if status != CaseStatus.DRAFT else None,
            assigned_clinician_id=clinician.id if clinician else None,
            assigned_at=now if clinician else None,
            **fields,
        )
        db.add(case)
        db.commit()
        db.refresh(case)
        return case

    return _make_case


@pytest.fixture(scope="function")
def user_password() -> str:
    """Plain-text password of every user built by make_user."""
    return TEST_PASSWORD


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def override_db(db: Session):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()


@asynccontextmanager
async def _client_for(user: User | None = None) -> AsyncGenerator[AsyncClient, None]:
    cookies = {}
    if user is not None:
        cookies[COOKIE_NAME] = create_session_token(user.id, user.role, user.token_version)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies=cookies,
        headers={CSRF_HEADER: CSRF_HEADER_VALUE},
    ) as c:
        yield c


@pytest.fixture(scope="function")
def client_for(override_db):
    """Build an authenticated client for any user: `async with client_for(user) as c`."""
    return _client_for


@pytest.fixture(scope="function")
async def client(override_db) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client (CSRF header still set)."""
    async with _client_for(None) as c:
        yield c


@pytest.fixture(scope="function")
async def patient_client(override_db, patient: User) -> AsyncGenerator[AsyncClient, None]:
    async with _client_for(patient) as c:
        yield c


@pytest.fixture(scope="function")
async def clinician_client(override_db, clinician: User) -> AsyncGenerator[AsyncClient, None]:
    async with _client_for(clinician) as c:
        yield c


@pytest.fixture(scope="function")
async def admin_client(override_db, admin: User) -> AsyncGenerator[AsyncClient, None]:
    async with _client_for(admin) as c:
        yield c
