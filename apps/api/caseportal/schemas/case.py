"""Pydantic schemas for cases and case documents."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from caseportal.db.enums import CaseStatus, CaseType
from caseportal.schemas.report import ReportRead
from caseportal.schemas.user import ClinicianSummary, UserSummary


class CaseCreate(BaseModel):
    """Request schema for creating a draft case."""

    title: str = Field(..., min_length=1, max_length=200)
    case_type: CaseType


class CaseUpdate(BaseModel):
    """Request schema for editing a draft case (partial)."""

    title: str | None = Field(None, min_length=1, max_length=200)
    case_type: CaseType | None = None
    primary_diagnosis: str | None = Field(None, max_length=500)
    symptoms: str | None = Field(None, max_length=2000)
    current_medications: str | None = Field(None, max_length=2000)
    allergies: str | None = Field(None, max_length=1000)
    medical_history: str | None = Field(None, max_length=3000)
    intake_data: dict[str, Any] | None = None


class CaseDocumentRead(BaseModel):
    id: UUID
    case_id: UUID
    file_name: str
    file_type: str
    file_size: int
    checksum_sha256: str
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class CaseListItem(BaseModel):
    """Compact case for lists and dashboards."""

    id: UUID
    case_number: str
    title: str
    case_type: CaseType
    status: CaseStatus
    primary_diagnosis: str | None = None
    assigned_clinician_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    submitted_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class CaseWithPatient(CaseListItem):
    """Case row for clinician and admin views."""

    owner: UserSummary
    assigned_clinician: ClinicianSummary | None = None


class CaseRead(CaseWithPatient):
    """Full case response for detail views."""

    symptoms: str | None
    current_medications: str | None
    allergies: str | None
    medical_history: str | None
    intake_data: dict[str, Any] | None
    assigned_at: datetime | None
    documents: list[CaseDocumentRead] = []
    reports: list[ReportRead] = []


class CaseListResponse(BaseModel):
    cases: list[CaseListItem]


class DocumentUploadResponse(BaseModel):
    documents: list[CaseDocumentRead]
    skipped: list[str] = []

