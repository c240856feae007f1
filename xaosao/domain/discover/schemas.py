"""Discover domain schemas - model cards, profiles and filters"""

from typing import Optional

from pydantic import BaseModel, field_validator, model_validator


class ForYouFilters(BaseModel):
    gender: Optional[str] = None
    location: Optional[str] = None
    minRating: Optional[float] = None
    availableStatus: Optional[str] = None
    minAge: Optional[int] = None
    maxAge: Optional[int] = None
    maxDistance: Optional[float] = None
    page: int = 1
    limit: int = 20

    @field_validator("minRating")
    @classmethod
    def validate_rating(cls, v):
        if v is not None and not 0 <= v <= 5:
            raise ValueError("Minimum rating must be between 0 and 5")
        return v

    @field_validator("page", "limit")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("Page and limit must be positive")
        return v

    @model_validator(mode="after")
    def validate_age_range(self):
        if self.minAge is not None and self.maxAge is not None and self.minAge > self.maxAge:
            raise ValueError("Minimum age cannot be greater than maximum age")
        return self


class ImageResponse(BaseModel):
    id: str
    name: str


class ModelCard(BaseModel):
    """Model as shown in discover lists"""

    id: str
    firstName: str
    lastName: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    bio: Optional[str] = None
    profile: Optional[str] = None
    address: Optional[str] = None
    rating: float = 0
    totalReview: int = 0
    availableStatus: Optional[str] = None
    images: list[ImageResponse] = []
    distance: Optional[float] = None
    customerAction: Optional[str] = None
    isContact: bool = False
    totalLikes: int = 0
    popularity: Optional[int] = None
    popularityScore: Optional[float] = None
    recentBookings: Optional[int] = None


class VariantResponse(BaseModel):
    id: str
    name: str
    pricePerHour: int


class ModelServiceResponse(BaseModel):
    id: str
    serviceId: str
    name: str
    description: Optional[str] = None
    billingType: str
    baseRate: int
    hourlyRate: Optional[int] = None
    oneTimePrice: Optional[int] = None
    oneNightPrice: Optional[int] = None
    minuteRate: Optional[int] = None
    customRate: Optional[int] = None
    customHourlyRate: Optional[int] = None
    customOneTimePrice: Optional[int] = None
    customOneNightPrice: Optional[int] = None
    customMinuteRate: Optional[int] = None
    isAvailable: bool
    serviceLocation: Optional[str] = None
    variants: list[VariantResponse] = []


class ModelProfileResponse(ModelCard):
    career: Optional[str] = None
    education: Optional[str] = None
    interests: Optional[list[str]] = None
    services: list[ModelServiceResponse] = []
    totalFriends: int = 0
    canReview: bool = False
    reviewReason: Optional[str] = None
