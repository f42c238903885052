"""SQLAlchemy ORM models for users, cases, reports and messaging."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON, Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from caseportal.db.base import Base
from caseportal.db.enums import (
    DEFAULT_CASE_STATUS, DEFAULT_CASE_TYPE, DEFAULT_CONTACT_CATEGORY, Role,
)


def _utcnow() -> datetime:
    # Python-side default keeps microsecond ordering on every backend
    return datetime.now(timezone.utc)


# =============================================================================
# Users
# =============================================================================

class User(Base):
    """
    Portal account.

    Patients are approved at registration; clinicians wait for an admin.
    Google-only accounts have no password hash.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address: Mapped[str | None] = mapped_column(String(200), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    role: Mapped[str] = mapped_column(
        String(20), default=Role.PATIENT.value, nullable=False
    )
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Clinician profile
    specialty: Mapped[str | None] = mapped_column(String(100), nullable=True)
    license_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    institution: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Patient consent
    has_accepted_terms: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    terms_accepted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    has_accepted_consent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    consent_accepted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    google_sub: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    token_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    locale: Mapped[str | None] = mapped_column(String(10), nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, onupdate=_utcnow, nullable=False
    )

    # Relationships
    cases: Mapped[list["Case"]] = relationship(
        back_populates="owner",
        foreign_keys="Case.user_id",
        cascade="all, delete-orphan",
    )
    assigned_cases: Mapped[list["Case"]] = relationship(
        back_populates="assigned_clinician",
        foreign_keys="Case.assigned_clinician_id",
    )
    saved_trials: Mapped[list["SavedTrial"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or self.email

    @property
    def is_patient(self) -> bool:
        return self.role == Role.PATIENT.value

    @property
    def is_clinician(self) -> bool:
        return self.role == Role.CLINICIAN.value

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


# =============================================================================
# Cases
# =============================================================================

class Case(Base):
    """
    A patient's medical case submitted for review.

    Exactly one owning patient. At most one assigned clinician.
    """
    __tablename__ = "cases"
    __table_args__ = (
        Index("idx_cases_user_updated", "user_id", "updated_at"),
        Index("idx_cases_assignee_status", "assigned_clinician_id", "status"),
        Index("idx_cases_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    assigned_clinician_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    assigned_at: Mapped[datetime | None] = mapped_column(nullable=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    case_type: Mapped[str] = mapped_column(
        String(30), default=DEFAULT_CASE_TYPE.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_CASE_STATUS.value, nullable=False
    )

    # Medical summary
    primary_diagnosis: Mapped[str | None] = mapped_column(String(500), nullable=True)
    symptoms: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_medications: Mapped[str | None] = mapped_column(Text, nullable=True)
    allergies: Mapped[str | None] = mapped_column(Text, nullable=True)
    medical_history: Mapped[str | None] = mapped_column(Text, nullable=True)
    intake_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, onupdate=_utcnow, nullable=False
    )
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Relationships
    owner: Mapped["User"] = relationship(
        back_populates="cases", foreign_keys=[user_id]
    )
    assigned_clinician: Mapped["User | None"] = relationship(
        back_populates="assigned_cases", foreign_keys=[assigned_clinician_id]
    )
    documents: Mapped[list["CaseDocument"]] = relationship(
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="CaseDocument.uploaded_at.desc()",
    )
    reports: Mapped[list["CaseReport"]] = relationship(
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="CaseReport.created_at.desc()",
    )
    messages: Mapped[list["Message"]] = relationship(
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )


class CaseDocument(Base):
    """A file uploaded by the patient while the case is a draft."""
    __tablename__ = "case_documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_key: Mapped[str] = mapped_column(String(500), nullable=False)
    checksum_sha256: Mapped[str] = mapped_column(String(64), nullable=False)
    uploaded_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    uploaded_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    case: Mapped["Case"] = relationship(back_populates="documents")


class CaseReport(Base):
    """A clinician-authored report on a case. Content is structured JSON."""
    __tablename__ = "case_reports"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    report_type: Mapped[str] = mapped_column(String(30), nullable=False)
    content: Mapped[dict] = mapped_column(JSON, nullable=False)
    reviewer_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, onupdate=_utcnow, nullable=False
    )

    case: Mapped["Case"] = relationship(back_populates="reports")
    author: Mapped["User | None"] = relationship()


# =============================================================================
# Messaging
# =============================================================================

class Message(Base):
    """A message in a case thread. Always belongs to exactly one case."""
    __tablename__ = "messages"
    __table_args__ = (
        Index("idx_messages_case_created", "case_id", "created_at"),
        Index("idx_messages_case_unread", "case_id", "is_read"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    case: Mapped["Case"] = relationship(back_populates="messages")
    sender: Mapped["User"] = relationship()
    attachments: Mapped[list["MessageAttachment"]] = relationship(
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="MessageAttachment.created_at",
    )


class MessageAttachment(Base):
    __tablename__ = "message_attachments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    message_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_key: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    message: Mapped["Message"] = relationship(back_populates="attachments")


# =============================================================================
# Patient extras
# =============================================================================

class SavedTrial(Base):
    """A clinical trial bookmarked by a patient."""
    __tablename__ = "saved_trials"
    __table_args__ = (
        UniqueConstraint("user_id", "trial_id", name="uq_saved_trials_user_trial"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    trial_id: Mapped[str] = mapped_column(String(100), nullable=False)
    trial_title: Mapped[str] = mapped_column(String(500), nullable=False)
    trial_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    saved_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    user: Mapped["User"] = relationship(back_populates="saved_trials")


# =============================================================================
# Audit & public forms
# =============================================================================

class AuditLog(Base):
    """
    Append-only audit trail.

    Details must not contain raw PHI; emails are stored hashed.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("idx_audit_created", "created_at"),
        Index("idx_audit_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    resource: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)


class ContactSubmission(Base):
    __tablename__ = "contact_submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_CONTACT_CATEGORY.value, nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)


class NewsletterSubscription(Base):
    __tablename__ = "newsletter_subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    subscribed_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    unsubscribed_at: Mapped[datetime | None] = mapped_column(nullable=True)
