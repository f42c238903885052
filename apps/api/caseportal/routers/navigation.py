"""Navigation and localization metadata for the frontend."""

from fastapi import APIRouter, Depends, Query, Request

from caseportal.core.deps import get_optional_user
from caseportal.core.i18n import get_labels, negotiate_locale, text_direction
from caseportal.core.route_guard import GuardUser, resolve_redirect
from caseportal.db.models import User

router = APIRouter()


@router.get("/navigation/resolve")
def resolve_navigation(
    path: str = Query(..., min_length=1, max_length=2000),
    user: User | None = Depends(get_optional_user),
):
    """
    Where the frontend should send the browser for a page path.

    `redirect` is null when the page may be shown as requested.
    """
    guard_user = GuardUser.from_user(user) if user else None
    return {"path": path, "redirect": resolve_redirect(path, guard_user)}


@router.get("/metadata/labels")
def get_metadata_labels(
    request: Request,
    locale: str | None = None,
):
    """Translated labels for statuses, case types, report types and contact categories."""
    resolved = negotiate_locale(
        query_locale=locale,
        accept_language=request.headers.get("accept-language"),
    )
    return {
        "locale": resolved,
        "direction": text_direction(resolved),
        "labels": get_labels(resolved),
    }
