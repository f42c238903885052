"""Security utilities for password hashing, session tokens and OAuth state."""

import hashlib
import json
import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

import bcrypt
import jwt

from caseportal.core.config import settings


BCRYPT_ROUNDS = 12


# =============================================================================
# Passwords
# =============================================================================

def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored bcrypt hash (False when no hash is set)."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


# =============================================================================
# Session Token (JWT in cookie)
# =============================================================================

def create_session_token(
    user_id: UUID,
    role: str,
    token_version: int,
) -> str:
    """
    Create signed session JWT.

    Always signs with current secret (JWT_SECRET).
    Token contains user identity, role and revocation version.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "token_version": token_version,
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore


# =============================================================================
# OAuth State/Nonce with User-Agent Binding
# =============================================================================

def generate_oauth_state() -> str:
    """Generate cryptographically random state (32 bytes, URL-safe base64)."""
    return secrets.token_urlsafe(32)


def generate_oauth_nonce() -> str:
    """Generate cryptographically random nonce (32 bytes, URL-safe base64)."""
    return secrets.token_urlsafe(32)


def hash_user_agent(user_agent: str) -> str:
    """Short hash of the user-agent, bound to the OAuth state cookie."""
    return hashlib.sha256(user_agent.encode()).hexdigest()[:16]


def create_oauth_state_payload(state: str, nonce: str, user_agent: str) -> str:
    """Create JSON payload for OAuth state cookie."""
    payload = {
        "state": state,
        "nonce": nonce,
        "ua_hash": hash_user_agent(user_agent),
    }
    return json.dumps(payload)


def parse_oauth_state_payload(cookie_value: str) -> dict:
    """Parse OAuth state cookie payload."""
    return json.loads(cookie_value)


def verify_oauth_state(
    stored_payload: dict,
    received_state: str,
    user_agent: str,
) -> tuple[bool, str]:
    """
    Verify OAuth callback state matches stored state.

    Returns:
        (success, error_message)
    """
    if stored_payload.get("state") != received_state:
        return False, "State mismatch - possible CSRF attack"

    if stored_payload.get("ua_hash") != hash_user_agent(user_agent):
        return False, "User-agent mismatch - possible session hijack"

    return True, ""
