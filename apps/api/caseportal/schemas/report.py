"""Pydantic schemas for case reports."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from caseportal.db.enums import CaseStatus, ReportType
from caseportal.schemas.user import UserSummary


class ReportCreate(BaseModel):
    """
    Request schema for writing a report.

    report_type is validated in the service so an unknown value yields
    "Invalid report type" rather than a generic validation error.
    """

    report_type: str = Field(..., min_length=1, max_length=30)
    content: dict[str, Any] = Field(default_factory=dict)
    reviewer_notes: str | None = Field(None, max_length=10000)
    mark_as_completed: bool = False


class ReportRead(BaseModel):
    id: UUID
    case_id: UUID
    report_type: ReportType
    content: dict[str, Any]
    reviewer_notes: str | None
    author: UserSummary | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ReportCaseSummary(BaseModel):
    id: UUID
    case_number: str
    title: str
    status: CaseStatus

    model_config = {"from_attributes": True}


class AuthoredReport(ReportRead):
    """Report row in a clinician's own report list."""

    case: ReportCaseSummary


class ReportCreateResponse(BaseModel):
    report: ReportRead
    case_status: CaseStatus
