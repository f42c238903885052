"""Pydantic schemas for admin endpoints."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel

from caseportal.db.enums import Role


class ApprovalAction(BaseModel):
    action: Literal["approve", "reject"]


class ApprovalResult(BaseModel):
    success: bool = True
    message: str


class AdminUserRead(BaseModel):
    id: UUID
    email: str
    name: str | None
    role: Role
    is_approved: bool
    is_active: bool
    specialty: str | None
    license_number: str | None
    institution: str | None
    approved_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogRead(BaseModel):
    id: UUID
    user_id: UUID | None
    action: str
    resource: str
    resource_id: str | None
    details: dict[str, Any] | None
    ip_address: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogPage(BaseModel):
    items: list[AuditLogRead]
    total: int
    page: int
    per_page: int
    pages: int
