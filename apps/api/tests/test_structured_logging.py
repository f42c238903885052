"""Tests for structured logging helpers."""

from caseportal.core.structured_logging import build_log_context


def test_build_log_context_includes_only_provided_fields():
    context = build_log_context(
        user_id="user-1",
        case_id="case-1",
        request_id="req-1",
        route="/api/cases/{case_id}",
        method="GET",
    )

    assert context == {
        "user_id": "user-1",
        "case_id": "case-1",
        "request_id": "req-1",
        "route": "/api/cases/{case_id}",
        "method": "GET",
    }


def test_build_log_context_ignores_empty_fields():
    context = build_log_context(
        user_id="",
        case_id=None,
        request_id="req-1",
    )

    assert context == {"request_id": "req-1"}
