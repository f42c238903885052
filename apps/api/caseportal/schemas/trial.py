"""Pydantic schemas for saved clinical trials."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class SavedTrialCreate(BaseModel):
    trial_id: str = Field(..., min_length=1, max_length=100)
    trial_title: str = Field(..., min_length=1, max_length=500)
    trial_data: dict[str, Any] | None = None
    notes: str | None = Field(None, max_length=2000)


class SavedTrialRead(BaseModel):
    id: UUID
    trial_id: str
    trial_title: str
    trial_data: dict[str, Any] | None
    notes: str | None
    saved_at: datetime

    model_config = {"from_attributes": True}
