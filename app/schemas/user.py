from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class EmailPayload(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = (value or "").strip().lower()
        local, _, domain = value.partition("@")
        if not local or "." not in domain or " " in value:
            raise ValueError("Invalid email address")
        return value


class RegisterRequest(EmailPayload):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6, max_length=72)  # bcrypt only uses the first 72 bytes
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = "customer"  # customer | builder | admin


class VerifyOtpRequest(EmailPayload):
    otp: str = Field(min_length=1, max_length=12)


class ResendOtpRequest(EmailPayload):
    pass


class UserOut(BaseModel):
    id: str
    username: str
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    status: Literal["pending_verification", "active"]
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    success: bool
    message: str
    user: Optional[UserOut] = None
