"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.timeutils import to_naive_utc
from ...shared.validators import validate_safe_text


class BookingInputs(BaseModel):
    """Inputs the price depends on; which ones are required depends on the billing type"""

    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    hours: Optional[int] = None
    sessionType: Optional[str] = None
    minutes: Optional[int] = None
    variantId: Optional[str] = None

    @field_validator("startDate", "endDate")
    @classmethod
    def normalize_dates(cls, v):
        return to_naive_utc(v)


class PriceQuoteRequest(BookingInputs):
    modelServiceId: str


class BookingUpdate(BookingInputs):
    """Schema for editing a pending booking"""

    location: Optional[str] = None
    locationLatitude: Optional[float] = None
    locationLongitude: Optional[float] = None
    preferredAttire: Optional[str] = None

    @field_validator("location")
    @classmethod
    def validate_location(cls, v):
        return validate_safe_text(v, "Location", max_length=1000)

    @field_validator("preferredAttire")
    @classmethod
    def validate_attire(cls, v):
        return validate_safe_text(v, "Preferred attire", max_length=255)

    @field_validator("locationLatitude")
    @classmethod
    def validate_latitude(cls, v):
        if v is not None and not -90 <= v <= 90:
            raise ValueError("Latitude must be between -90 and 90")
        return v

    @field_validator("locationLongitude")
    @classmethod
    def validate_longitude(cls, v):
        if v is not None and not -180 <= v <= 180:
            raise ValueError("Longitude must be between -180 and 180")
        return v


class BookingCreate(BookingUpdate):
    """Schema for booking a model service; the price is computed server side"""

    modelServiceId: str


class CheckInRequest(BaseModel):
    latitude: float
    longitude: float

    @field_validator("latitude")
    @classmethod
    def validate_latitude(cls, v):
        if not -90 <= v <= 90:
            raise ValueError("Latitude must be between -90 and 90")
        return v

    @field_validator("longitude")
    @classmethod
    def validate_longitude(cls, v):
        if not -180 <= v <= 180:
            raise ValueError("Longitude must be between -180 and 180")
        return v


class DisputeRequest(BaseModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        v = validate_safe_text(v, "Reason", max_length=1000)
        if len(v) < 10:
            raise ValueError("Please describe the problem in at least 10 characters")
        return v


class RejectRequest(BaseModel):
    reason: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        return validate_safe_text(v, "Reason", max_length=1000)


class PriceQuoteResponse(BaseModel):
    billingType: str
    price: int
    unitPrice: int
    dayAmount: Optional[int] = None
    hours: Optional[int] = None
    sessionType: Optional[str] = None
    minutes: Optional[int] = None
    variantId: Optional[str] = None
    variantName: Optional[str] = None
    location: Optional[str] = None


class CheckInStatus(BaseModel):
    modelCheckedIn: bool
    customerCheckedIn: bool
    bothCheckedIn: bool
    hoursUntilAutoRelease: int


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: str
    modelId: str
    modelName: Optional[str] = None
    modelProfile: Optional[str] = None
    modelServiceId: str
    serviceName: Optional[str] = None
    billingType: Optional[str] = None
    price: int
    dayAmount: Optional[int] = None
    hours: Optional[int] = None
    sessionType: Optional[str] = None
    minutes: Optional[int] = None
    variantId: Optional[str] = None
    location: Optional[str] = None
    preferredAttire: Optional[str] = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    status: str
    paymentStatus: str
    isContact: Optional[bool] = None
    checkIn: Optional[CheckInStatus] = None
    disputeReason: Optional[str] = None
    completedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None


class BookedSlot(BaseModel):
    startDate: datetime
    endDate: Optional[datetime] = None
    hours: Optional[int] = None
    serviceName: Optional[str] = None
    isDateOnly: bool


class BookingTokenPreview(BaseModel):
    """What the customer sees after scanning the model's completion QR code"""

    id: str
    price: int
    status: str
    modelName: Optional[str] = None
    modelProfile: Optional[str] = None
    serviceName: Optional[str] = None
    isExpired: bool
    isAlreadyCompleted: bool
