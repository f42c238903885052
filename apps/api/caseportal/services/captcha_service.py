"""Google reCAPTCHA verification."""

import logging

import httpx

from caseportal.core.config import settings
from caseportal.services.http_service import request_with_retries

logger = logging.getLogger(__name__)

RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"
RECAPTCHA_TIMEOUT_SECONDS = 10.0


async def verify_recaptcha(token: str, remote_ip: str | None = None) -> bool:
    """
    Verify a reCAPTCHA response token.

    Passes without a network call when RECAPTCHA_SECRET_KEY is unset (development).
    Any transport or parse failure counts as a failed verification.
    """
    if not settings.RECAPTCHA_SECRET_KEY:
        logger.warning("reCAPTCHA secret key not configured, skipping verification")
        return True

    data = {"secret": settings.RECAPTCHA_SECRET_KEY, "response": token}
    if remote_ip:
        data["remoteip"] = remote_ip

    try:
        async with httpx.AsyncClient(timeout=RECAPTCHA_TIMEOUT_SECONDS) as client:

            async def request_fn() -> httpx.Response:
                return await client.post(RECAPTCHA_VERIFY_URL, data=data)

            response = await request_with_retries(request_fn, max_attempts=2)
        result = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("reCAPTCHA verification error: %s", exc.__class__.__name__)
        return False

    if not result.get("success"):
        logger.info("reCAPTCHA verification failed: %s", result.get("error-codes"))
        return False
    return True
