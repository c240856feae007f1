"""Review domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_safe_text


class ReviewCreate(BaseModel):
    modelId: str
    rating: int
    title: Optional[str] = None
    reviewText: Optional[str] = None
    isAnonymous: bool = False

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, v):
        if v < 1:
            raise ValueError("Rating must be at least 1 star.")
        if v > 5:
            raise ValueError("Rating cannot exceed 5 stars.")
        return v

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return validate_safe_text(v, "Title", max_length=100) or None

    @field_validator("reviewText")
    @classmethod
    def validate_text(cls, v):
        return validate_safe_text(v, "Review text", max_length=500) or None


class ReviewAuthor(BaseModel):
    id: str
    firstName: str
    lastName: Optional[str] = None
    profile: Optional[str] = None


class ReviewResponse(BaseModel):
    id: str
    rating: int
    title: Optional[str] = None
    reviewText: Optional[str] = None
    isAnonymous: bool
    createdAt: Optional[datetime] = None
    customer: Optional[ReviewAuthor] = None


class ReviewEligibility(BaseModel):
    canReview: bool
    reason: Optional[str] = None
    hasCompletedBooking: bool
    existingReviewId: Optional[str] = None
