"""Locale negotiation and translated labels for enum values."""

from caseportal.core.config import settings


SUPPORTED_LOCALES = ("en", "fa")
RTL_LOCALES = frozenset({"fa"})


LABELS: dict[str, dict[str, dict[str, str]]] = {
    "en": {
        "case_status": {
            "DRAFT": "Draft",
            "SUBMITTED": "Submitted",
            "UNDER_REVIEW": "Under Review",
            "EXPERT_REVIEW": "Expert Review",
            "COMPLETED": "Completed",
            "ARCHIVED": "Archived",
        },
        "case_type": {
            "ONCOLOGY": "Oncology",
            "INFECTIOUS_DISEASE": "Infectious Disease",
            "OTHER": "Other",
        },
        "report_type": {
            "AI_SYNTHESIS": "AI Synthesis",
            "EXPERT_REVIEW": "Expert Review",
            "FINAL_REPORT": "Final Report",
            "PATIENT_SUMMARY": "Patient Summary",
        },
        "contact_category": {
            "PATIENT": "Patient",
            "CLINICIAN": "Clinician",
            "PARTNER": "Partner",
            "OTHER": "Other",
        },
    },
    "fa": {
        "case_status": {
            "DRAFT": "پیش‌نویس",
            "SUBMITTED": "ارسال شده",
            "UNDER_REVIEW": "در حال بررسی",
            "EXPERT_REVIEW": "بررسی تخصصی",
            "COMPLETED": "تکمیل شده",
            "ARCHIVED": "بایگانی شده",
        },
        "case_type": {
            "ONCOLOGY": "انکولوژی",
            "INFECTIOUS_DISEASE": "بیماری‌های عفونی",
            "OTHER": "سایر",
        },
        "report_type": {
            "AI_SYNTHESIS": "ترکیب هوش مصنوعی",
            "EXPERT_REVIEW": "بررسی تخصصی",
            "FINAL_REPORT": "گزارش نهایی",
            "PATIENT_SUMMARY": "خلاصه برای بیمار",
        },
        "contact_category": {
            "PATIENT": "بیمار",
            "CLINICIAN": "پزشک",
            "PARTNER": "همکار",
            "OTHER": "سایر",
        },
    },
}


def default_locale() -> str:
    if settings.DEFAULT_LOCALE in SUPPORTED_LOCALES:
        return settings.DEFAULT_LOCALE
    return SUPPORTED_LOCALES[0]


def locale_from_path(path: str) -> str | None:
    """Return the locale prefix of a path like /fa/portal, or None."""
    for locale in SUPPORTED_LOCALES:
        if path == f"/{locale}" or path.startswith(f"/{locale}/"):
            return locale
    return None


def strip_locale(path: str) -> str:
    """Remove a leading locale segment; '/fa' becomes '/'."""
    locale = locale_from_path(path)
    if locale is None:
        return path
    return path[len(locale) + 1:] or "/"


def _parse_accept_language(header: str) -> list[str]:
    """Language tags from an Accept-Language header, highest q first."""
    weighted = []
    for index, part in enumerate(header.split(",")):
        part = part.strip()
        if not part:
            continue
        tag, _, params = part.partition(";")
        q = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                q = float(params[2:])
            except ValueError:
                q = 0.0
        weighted.append((-q, index, tag.strip().lower()))
    return [tag for _, _, tag in sorted(weighted)]


def negotiate_locale(
    path: str | None = None,
    query_locale: str | None = None,
    accept_language: str | None = None,
) -> str:
    """
    Pick the response locale.

    Precedence: path prefix, explicit ?locale=, Accept-Language, default.
    """
    if path:
        locale = locale_from_path(path)
        if locale:
            return locale
    if query_locale and query_locale.lower() in SUPPORTED_LOCALES:
        return query_locale.lower()
    if accept_language:
        for tag in _parse_accept_language(accept_language):
            primary = tag.split("-")[0]
            if primary in SUPPORTED_LOCALES:
                return primary
    return default_locale()


def translate(category: str, value: str, locale: str) -> str:
    """Label for an enum value; falls back to English, then the raw value."""
    labels = LABELS.get(locale, LABELS["en"]).get(category, {})
    if value in labels:
        return labels[value]
    return LABELS["en"].get(category, {}).get(value, value)


def get_labels(locale: str) -> dict[str, dict[str, str]]:
    return LABELS.get(locale, LABELS[default_locale()])


def text_direction(locale: str) -> str:
    return "rtl" if locale in RTL_LOCALES else "ltr"
