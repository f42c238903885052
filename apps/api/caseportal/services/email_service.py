"""Transactional email via the Brevo API, plus template rendering."""

from __future__ import annotations

import html
import logging
import re
from typing import Any

import httpx

from caseportal.core.config import settings
from caseportal.services.http_service import DEFAULT_RETRY_STATUSES, request_with_retries

logger = logging.getLogger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"
BREVO_MAX_ATTEMPTS = 3
BREVO_RETRY_BASE_DELAY = 0.5
BREVO_RETRY_MAX_DELAY = 4.0
BREVO_TIMEOUT_SECONDS = 20.0

VARIABLE_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render_template(
    subject: str,
    body: str,
    variables: dict[str, Any],
) -> tuple[str, str]:
    """
    Render a template with variable substitution.

    Variables in format {{variable_name}} are replaced with values. Values are
    HTML-escaped in the body but not in the subject. Missing variables are
    replaced with empty string.

    Returns (rendered_subject, rendered_body).
    """
    def replace_subject(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    def replace_body(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else html.escape(str(value))

    return VARIABLE_PATTERN.sub(replace_subject, subject), VARIABLE_PATTERN.sub(replace_body, body)


def email_configured() -> bool:
    return bool(settings.BREVO_API_KEY)


async def send_email(
    *,
    to_email: str,
    subject: str,
    html_content: str,
) -> dict[str, Any]:
    """
    Send one email through Brevo.

    Never raises; returns {"success": bool, "message_id"?: str, "error"?: str}.
    """
    if not email_configured():
        logger.warning("BREVO_API_KEY not configured, skipping email")
        return {"success": False, "error": "Email not configured"}

    payload = {
        "sender": {"name": settings.FROM_NAME, "email": settings.FROM_EMAIL},
        "to": [{"email": to_email}],
        "subject": subject,
        "htmlContent": html_content,
    }
    headers = {
        "accept": "application/json",
        "api-key": settings.BREVO_API_KEY,
        "content-type": "application/json",
    }

    try:
        async with httpx.AsyncClient(timeout=BREVO_TIMEOUT_SECONDS) as client:

            async def request_fn() -> httpx.Response:
                return await client.post(BREVO_SEND_URL, headers=headers, json=payload)

            response = await request_with_retries(
                request_fn,
                max_attempts=BREVO_MAX_ATTEMPTS,
                base_delay=BREVO_RETRY_BASE_DELAY,
                max_delay=BREVO_RETRY_MAX_DELAY,
                retry_statuses=DEFAULT_RETRY_STATUSES,
            )
    except httpx.HTTPError as exc:
        logger.error("Email send failed: %s", exc.__class__.__name__)
        return {"success": False, "error": "Failed to send email"}

    if 200 <= response.status_code < 300:
        message_id = None
        try:
            message_id = response.json().get("messageId")
        except ValueError:
            pass
        return {"success": True, "message_id": message_id}

    logger.error("Brevo API error: status=%s", response.status_code)
    return {"success": False, "error": "Failed to send email"}
