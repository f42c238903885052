"""Pydantic schemas for public forms (contact, newsletter, captcha)."""

from pydantic import BaseModel, EmailStr, Field, field_validator

from caseportal.db.enums import ContactCategory


class ContactCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    category: ContactCategory = ContactCategory.OTHER
    message: str = Field(..., min_length=10, max_length=2000)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class NewsletterSubscribe(BaseModel):
    email: EmailStr


class CaptchaVerify(BaseModel):
    token: str | None = None
