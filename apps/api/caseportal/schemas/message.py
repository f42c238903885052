"""Pydantic schemas for case messaging."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from caseportal.db.enums import CaseStatus, Role


MAX_MESSAGE_LENGTH = 10000


class MessageCreate(BaseModel):
    content: str = Field("", max_length=MAX_MESSAGE_LENGTH)


class MessageSender(BaseModel):
    id: UUID
    name: str | None
    email: str
    role: Role

    model_config = {"from_attributes": True}


class MessageAttachmentRead(BaseModel):
    id: UUID
    file_name: str
    file_type: str
    file_size: int
    created_at: datetime

    model_config = {"from_attributes": True}


class MessageRead(BaseModel):
    id: UUID
    case_id: UUID
    content: str
    is_read: bool
    created_at: datetime
    sender: MessageSender
    attachments: list[MessageAttachmentRead] = []

    model_config = {"from_attributes": True}


class ThreadParticipant(BaseModel):
    id: UUID
    name: str | None
    email: str

    model_config = {"from_attributes": True}


class ThreadCase(BaseModel):
    """Case header shown above a message thread."""

    id: UUID
    case_number: str
    title: str
    status: CaseStatus
    patient: ThreadParticipant
    clinician: ThreadParticipant | None = None


class MessageThread(BaseModel):
    case: ThreadCase
    messages: list[MessageRead]


class MarkReadResponse(BaseModel):
    success: bool = True
    marked_as_read: int


class UnreadCountResponse(BaseModel):
    unread_count: int
    case_unread_counts: dict[str, int]
