"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    Portal roles.

    - PATIENT: submits cases, messages the assigned clinician
    - CLINICIAN: claims cases and writes reports (requires admin approval)
    - ADMIN: approves clinicians, sees everything
    """
    PATIENT = "PATIENT"
    CLINICIAN = "CLINICIAN"
    ADMIN = "ADMIN"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class CaseStatus(str, Enum):
    """
    Case lifecycle.

        DRAFT → SUBMITTED → UNDER_REVIEW → (EXPERT_REVIEW) → COMPLETED → ARCHIVED

    Only DRAFT cases are editable by the patient.
    """
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    EXPERT_REVIEW = "EXPERT_REVIEW"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"

    @classmethod
    def active(cls) -> list[str]:
        """Statuses counted as in-progress review."""
        return [cls.SUBMITTED.value, cls.UNDER_REVIEW.value, cls.EXPERT_REVIEW.value]

    @classmethod
    def assignable(cls) -> list[str]:
        """Statuses in which a clinician may claim the case."""
        return [cls.SUBMITTED.value, cls.UNDER_REVIEW.value]

    @classmethod
    def on_board(cls) -> list[str]:
        """Statuses shown in the clinician case board lists."""
        return cls.active() + [cls.COMPLETED.value]

    @classmethod
    def reviewable(cls) -> list[str]:
        """Statuses in which reports may be written."""
        return cls.active()


class CaseType(str, Enum):
    ONCOLOGY = "ONCOLOGY"
    INFECTIOUS_DISEASE = "INFECTIOUS_DISEASE"
    OTHER = "OTHER"


class ReportType(str, Enum):
    AI_SYNTHESIS = "AI_SYNTHESIS"
    EXPERT_REVIEW = "EXPERT_REVIEW"
    FINAL_REPORT = "FINAL_REPORT"
    PATIENT_SUMMARY = "PATIENT_SUMMARY"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class ContactCategory(str, Enum):
    PATIENT = "PATIENT"
    CLINICIAN = "CLINICIAN"
    PARTNER = "PARTNER"
    OTHER = "OTHER"


class AuditAction(str, Enum):
    """Actions recorded in the audit trail."""
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    REGISTER = "REGISTER"
    CREATE_CASE = "CREATE_CASE"
    UPDATE_CASE = "UPDATE_CASE"
    DELETE_CASE = "DELETE_CASE"
    SUBMIT_CASE = "SUBMIT_CASE"
    CASE_ASSIGNED = "CASE_ASSIGNED"
    UPLOAD_DOCUMENTS = "UPLOAD_DOCUMENTS"
    DELETE_DOCUMENT = "DELETE_DOCUMENT"
    CREATE_REPORT = "CREATE_REPORT"
    VIEW_REPORT = "VIEW_REPORT"
    VIEW_MESSAGES = "VIEW_MESSAGES"
    SEND_MESSAGE = "SEND_MESSAGE"
    DOWNLOAD_MESSAGE_ATTACHMENT = "DOWNLOAD_MESSAGE_ATTACHMENT"
    CONSENT_ACCEPTED = "CONSENT_ACCEPTED"
    CLINICIAN_APPROVED = "CLINICIAN_APPROVED"
    CLINICIAN_REJECTED = "CLINICIAN_REJECTED"
    PROFILE_UPDATED = "PROFILE_UPDATED"


# Audit resource names
class AuditResource(str, Enum):
    USER = "user"
    CASE = "case"
    DOCUMENT = "document"
    REPORT = "report"
    MESSAGE = "message"
    MESSAGE_ATTACHMENT = "message_attachment"


DEFAULT_CASE_STATUS = CaseStatus.DRAFT
DEFAULT_CASE_TYPE = CaseType.OTHER
DEFAULT_CONTACT_CATEGORY = ContactCategory.OTHER
