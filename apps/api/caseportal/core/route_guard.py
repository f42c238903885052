"""Role-based page routing rules.

Given a page path and the signed-in user (or None), decide whether the
browser should be sent elsewhere. API paths, framework assets and files
with an extension are never redirected.
"""

from dataclasses import dataclass
from urllib.parse import quote

from caseportal.core.i18n import default_locale, locale_from_path, strip_locale
from caseportal.db.enums import Role


AUTH_PAGES = ("/login", "/signup", "/forgot-password", "/reset-password")
PROTECTED_PREFIXES = ("/portal", "/clinician", "/admin", "/pending-approval") + AUTH_PAGES

CONSENT_PAGE = "/portal/consent"
PENDING_APPROVAL_PAGE = "/pending-approval"


@dataclass(frozen=True)
class GuardUser:
    """The subset of session state the guard looks at."""
    role: str
    is_approved: bool
    has_accepted_terms: bool
    has_accepted_consent: bool

    @classmethod
    def from_user(cls, user) -> "GuardUser":
        return cls(
            role=user.role,
            is_approved=bool(user.is_approved),
            has_accepted_terms=bool(user.has_accepted_terms),
            has_accepted_consent=bool(user.has_accepted_consent),
        )

    @property
    def needs_consent(self) -> bool:
        return not (self.has_accepted_terms and self.has_accepted_consent)


def landing_path(user: GuardUser) -> str:
    """Where a freshly signed-in user goes (without locale prefix)."""
    if user.role == Role.ADMIN.value:
        return "/admin/dashboard"
    if user.role == Role.CLINICIAN.value:
        if not user.is_approved:
            return PENDING_APPROVAL_PAGE
        return "/clinician/dashboard"
    if user.role == Role.PATIENT.value and user.needs_consent:
        return CONSENT_PAGE
    return "/portal/dashboard"


def _is_skipped(path: str) -> bool:
    return path.startswith("/api") or path.startswith("/_next") or "." in path


def _login_redirect(locale: str, full_path: str) -> str:
    return f"/{locale}/login?callbackUrl={quote(full_path, safe='')}"


def resolve_redirect(path: str, user: GuardUser | None) -> str | None:
    """
    Return the redirect target for a page request, or None to let it through.

    Paths without a locale prefix are sent to the default-locale version.
    """
    if _is_skipped(path):
        return None

    locale = locale_from_path(path)
    if locale is None:
        suffix = "" if path == "/" else path
        return f"/{default_locale()}{suffix}"

    page = strip_locale(path)
    if not any(page.startswith(prefix) for prefix in PROTECTED_PREFIXES):
        return None

    def to(target: str) -> str:
        return f"/{locale}{target}"

    # Signed-in users have no business on login/signup pages
    if any(page.startswith(prefix) for prefix in AUTH_PAGES):
        if user is None:
            return None
        return to(landing_path(user))

    if page.startswith("/portal"):
        if user is None:
            return _login_redirect(locale, path)
        if user.role == Role.CLINICIAN.value:
            return to("/clinician/dashboard")
        if user.role == Role.PATIENT.value and page != CONSENT_PAGE and user.needs_consent:
            return to(CONSENT_PAGE)
        return None

    if page.startswith("/clinician"):
        if user is None:
            return _login_redirect(locale, path)
        if user.role == Role.PATIENT.value:
            return to("/portal/dashboard")
        if user.role == Role.CLINICIAN.value and not user.is_approved:
            return to(PENDING_APPROVAL_PAGE)
        return None

    if page.startswith("/admin"):
        if user is None:
            return _login_redirect(locale, path)
        if user.role != Role.ADMIN.value:
            if user.role == Role.CLINICIAN.value and user.is_approved:
                return to("/clinician/dashboard")
            return to("/portal/dashboard")
        return None

    if page == PENDING_APPROVAL_PAGE:
        if user is None:
            return to("/login")
        if user.is_approved or user.role == Role.PATIENT.value:
            if user.role == Role.CLINICIAN.value:
                return to("/clinician/dashboard")
            return to("/portal/dashboard")
    return None
