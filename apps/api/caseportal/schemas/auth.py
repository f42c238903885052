"""Authentication-related Pydantic schemas."""

from pydantic import BaseModel, EmailStr, Field

from caseportal.schemas.user import UserRead


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=200)


class LoginResponse(BaseModel):
    """Signed-in user plus the page the frontend should open next."""
    user: UserRead
    redirect_to: str


class ConsentRequest(BaseModel):
    has_accepted_terms: bool = False
    has_accepted_consent: bool = False
