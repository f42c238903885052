"""Pydantic schemas for users and registration."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from caseportal.db.enums import Role


MIN_PASSWORD_LENGTH = 8
# bcrypt only reads the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def check_password_bytes(password: str) -> str:
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes")
    return password


class UserRegister(BaseModel):
    """Self-service registration. Admins are never created this way."""

    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_BYTES)
    role: Literal["PATIENT", "CLINICIAN"] = Role.PATIENT.value

    # Clinician-only; ignored for patients
    specialty: str | None = Field(None, max_length=100)
    license_number: str | None = Field(None, max_length=100)
    institution: str | None = Field(None, max_length=200)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return check_password_bytes(v)


class UserUpdate(BaseModel):
    """Profile fields a user may change on their own account (partial)."""

    name: str | None = Field(None, min_length=1, max_length=100)
    first_name: str | None = Field(None, min_length=1, max_length=50)
    last_name: str | None = Field(None, min_length=1, max_length=50)
    phone: str | None = Field(None, max_length=20)
    address: str | None = Field(None, max_length=200)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=50)
    zip_code: str | None = Field(None, max_length=20)
    specialty: str | None = Field(None, max_length=100)
    institution: str | None = Field(None, max_length=200)

    @field_validator("name", "first_name", "last_name")
    @classmethod
    def names_not_null(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("cannot be null")
        return v


class UserRead(BaseModel):
    """Own profile / session user."""

    id: UUID
    email: str
    name: str | None
    first_name: str | None
    last_name: str | None
    phone: str | None
    address: str | None
    city: str | None
    state: str | None
    zip_code: str | None
    role: Role
    is_approved: bool
    specialty: str | None
    license_number: str | None
    institution: str | None
    has_accepted_terms: bool
    has_accepted_consent: bool
    locale: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserCreated(BaseModel):
    id: UUID
    email: str
    name: str | None
    role: Role
    is_approved: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    """Compact user embedded in case, report and message responses."""

    id: UUID
    name: str | None
    email: str

    model_config = {"from_attributes": True}


class ClinicianSummary(UserSummary):
    specialty: str | None = None
