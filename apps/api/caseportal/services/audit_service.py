"""Audit logging service - HIPAA-style access and change tracking.

Security guidelines:
- NEVER log secrets (passwords, tokens)
- Hash PII in details (use hash_email for emails)
- Use IDs instead of raw data where possible
- IP: Trust X-Forwarded-For only behind a configured proxy
"""

import hashlib
import logging
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from caseportal.core.config import settings
from caseportal.db.enums import AuditAction, AuditResource
from caseportal.db.models import AuditLog

logger = logging.getLogger(__name__)


def hash_email(email: str) -> str:
    """Hash email for audit log (prefix + SHA256 suffix for debugging)."""
    if not email:
        return ""
    prefix = email.split("@")[0][:3] if "@" in email else email[:3]
    suffix = hashlib.sha256(email.lower().encode()).hexdigest()[:12]
    return f"{prefix}...@[hash:{suffix}]"


def get_client_ip(request: Request | None) -> str | None:
    """
    Extract client IP from request.

    Only trusts X-Forwarded-For when TRUST_PROXY_HEADERS=True (behind reverse proxy).
    """
    if not request:
        return None

    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # X-Forwarded-For: client, proxy1, proxy2 - take first
            return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return None


def get_user_agent(request: Request | None) -> str | None:
    """Extract user agent from request."""
    if not request:
        return None
    ua = request.headers.get("user-agent", "")
    # Truncate to 500 chars (DB limit)
    return ua[:500] if ua else None


def log_event(
    db: Session,
    action: AuditAction,
    resource: AuditResource,
    user_id: UUID | None = None,
    resource_id: UUID | str | None = None,
    details: dict[str, Any] | None = None,
    request: Request | None = None,
) -> AuditLog:
    """
    Add an audit entry to the session (caller commits).

    Use this when the audit row must land in the same transaction as the change.
    """
    entry = AuditLog(
        user_id=user_id,
        action=action.value,
        resource=resource.value,
        resource_id=str(resource_id) if resource_id else None,
        details=details,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    db.add(entry)
    return entry


def log_event_best_effort(
    db: Session,
    action: AuditAction,
    resource: AuditResource,
    user_id: UUID | None = None,
    resource_id: UUID | str | None = None,
    details: dict[str, Any] | None = None,
    request: Request | None = None,
) -> bool:
    """
    Write and commit an audit entry on its own; never raises on DB errors.

    Used on read paths and after the primary change has been committed, so an
    audit failure cannot undo or block the user's request.
    """
    try:
        log_event(
            db,
            action,
            resource,
            user_id=user_id,
            resource_id=resource_id,
            details=details,
            request=request,
        )
        db.commit()
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.warning(
            "Audit write failed",
            extra={"action": action.value, "resource": resource.value},
            exc_info=True,
        )
        return False


def audit_log_query(
    db: Session,
    action: str | None = None,
    user_id: UUID | None = None,
):
    """Audit trail query, newest first, for paginated listing."""
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    if user_id:
        query = query.filter(AuditLog.user_id == user_id)
    return query.order_by(AuditLog.created_at.desc())
