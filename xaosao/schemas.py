from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from .shared.timeutils import to_naive_utc
from .shared.validators import validate_adult_dob, validate_safe_text, validate_whatsapp

GENDERS = ("male", "female", "other")
REPORT_TYPES = ("general", "booking", "payment", "safety", "bug")


def validate_new_password(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    return v


class RegisterRequest(BaseModel):
    firstName: str
    lastName: Optional[str] = None
    whatsapp: int
    password: str
    gender: str
    dob: datetime

    @field_validator("firstName")
    @classmethod
    def validate_first_name(cls, v):
        v = validate_safe_text(v, "First name", max_length=20)
        if not v:
            raise ValueError("First name is required")
        return v

    @field_validator("lastName")
    @classmethod
    def validate_last_name(cls, v):
        return validate_safe_text(v, "Last name", max_length=20) or None

    @field_validator("whatsapp", mode="before")
    @classmethod
    def validate_phone(cls, v):
        return validate_whatsapp(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return validate_new_password(v)

    @field_validator("gender")
    @classmethod
    def validate_gender(cls, v):
        v = v.lower()
        if v not in GENDERS:
            raise ValueError("Gender must be male, female or other")
        return v

    @field_validator("dob")
    @classmethod
    def validate_dob(cls, v):
        return validate_adult_dob(to_naive_utc(v))


class LoginRequest(BaseModel):
    whatsapp: int
    password: str

    @field_validator("whatsapp", mode="before")
    @classmethod
    def validate_phone(cls, v):
        return validate_whatsapp(v)


class TokenResponse(BaseModel):
    accessToken: str
    tokenType: str = "bearer"
    role: str
    userId: str


class CustomerUpdate(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    bio: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("firstName")
    @classmethod
    def validate_first_name(cls, v):
        if v is None:
            return v
        v = validate_safe_text(v, "First name", max_length=20)
        if not v:
            raise ValueError("First name cannot be empty")
        return v

    @field_validator("lastName")
    @classmethod
    def validate_last_name(cls, v):
        return validate_safe_text(v, "Last name", max_length=20)

    @field_validator("bio")
    @classmethod
    def validate_bio(cls, v):
        return validate_safe_text(v, "Bio", max_length=500)

    @field_validator("latitude")
    @classmethod
    def validate_latitude(cls, v):
        if v is not None and not -90 <= v <= 90:
            raise ValueError("Latitude must be between -90 and 90")
        return v

    @field_validator("longitude")
    @classmethod
    def validate_longitude(cls, v):
        if v is not None and not -180 <= v <= 180:
            raise ValueError("Longitude must be between -180 and 180")
        return v


class CustomerResponse(BaseModel):
    id: str
    firstName: str
    lastName: Optional[str] = None
    whatsapp: int
    gender: Optional[str] = None
    dob: Optional[datetime] = None
    profile: Optional[str] = None
    bio: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: str
    createdAt: Optional[datetime] = None


class ChangePasswordRequest(BaseModel):
    oldPassword: str
    newPassword: str

    @field_validator("newPassword")
    @classmethod
    def validate_password(cls, v):
        return validate_new_password(v)


class ForgotPasswordRequest(BaseModel):
    whatsapp: int

    @field_validator("whatsapp", mode="before")
    @classmethod
    def validate_phone(cls, v):
        return validate_whatsapp(v)


class VerifyResetCodeRequest(BaseModel):
    code: str

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v):
        v = v.strip().upper()
        if len(v) != 6 or not v.isalnum():
            raise ValueError("Reset code must be 6 characters")
        return v


class ResetPasswordRequest(VerifyResetCodeRequest):
    newPassword: str

    @field_validator("newPassword")
    @classmethod
    def validate_password(cls, v):
        return validate_new_password(v)


class ReportCreate(BaseModel):
    """Problem report sent to the support team"""

    type: str
    title: str
    description: str

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        v = v.strip().lower()
        if v not in REPORT_TYPES:
            raise ValueError(f"Report type must be one of: {', '.join(REPORT_TYPES)}")
        return v

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        v = validate_safe_text(v, "Title", max_length=100)
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        v = validate_safe_text(v, "Description", max_length=1000)
        if not v:
            raise ValueError("Description is required")
        return v


class ReportResponse(BaseModel):
    id: str
    type: str
    title: str
    description: str
    status: str
    createdAt: Optional[datetime] = None


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    data: Optional[dict[str, Any]] = None
    isRead: bool
    createdAt: Optional[datetime] = None


class MessageResponse(BaseModel):
    message: str
