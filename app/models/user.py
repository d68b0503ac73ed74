"""
User model and auth request/response schemas.

Users register with username/email/password; the password is stored only as
a bcrypt hash. The user id becomes the owner id of every uploaded document.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.document import CamelModel, utcnow


class UserRecord(BaseModel):
    """Stored user. id is an opaque hex string used as the owner id."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    email: str
    password_hash: str
    is_subscribed: bool = True  # Mock subscription flag, on for the MVP
    pdpa_consent: bool = False
    pdpa_consent_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3)
    email: str
    password: str = Field(min_length=6)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip()

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("invalid email address")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserPublic(CamelModel):
    id: str
    username: str
    email: str
    is_subscribed: bool
    pdpa_consent: bool
    pdpa_consent_date: Optional[datetime] = None

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserPublic":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            is_subscribed=user.is_subscribed,
            pdpa_consent=user.pdpa_consent,
            pdpa_consent_date=user.pdpa_consent_date,
        )


class AuthResponse(BaseModel):
    token: str
    user: UserPublic
