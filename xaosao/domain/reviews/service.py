"""Review service - Business logic for model reviews"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Customer, Model, Review
from ...security_utils import sanitize_text
from ...services import notification_service
from ...services.audit_service import audited
from ...shared.pagination import build_pagination, page_offset
from ..bookings.repository import BookingRepository
from .repository import ReviewRepository
from .schemas import ReviewCreate

logger = logging.getLogger(__name__)

ALREADY_REVIEWED = "already_reviewed"
NO_COMPLETED_BOOKING = "no_completed_booking"


def author_of(review: Review):
    """Reviewer shown publicly; anonymous reviews hide the customer"""
    if review.is_anonymous or review.customer is None:
        return None
    return {
        "id": review.customer.id,
        "firstName": review.customer.first_name,
        "lastName": review.customer.last_name,
        "profile": review.customer.profile,
    }


class ReviewService:
    """Service layer for review business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReviewRepository()
        self.bookings = BookingRepository()

    def _get_active_model(self, model_id: str) -> Model:
        model = self.db.query(Model).filter(Model.id == model_id, Model.status == "active").first()
        if not model:
            raise HTTPException(status_code=404, detail="Model not found")
        return model

    def eligibility(self, customer_id: str, model_id: str) -> dict:
        """Whether the customer may review the model, and why not"""
        existing = self.repo.get_customer_review(self.db, customer_id, model_id)
        completed = self.bookings.has_completed_booking(self.db, customer_id, model_id)

        reason = None
        if existing:
            reason = ALREADY_REVIEWED
        elif not completed:
            reason = NO_COMPLETED_BOOKING

        return {
            "canReview": reason is None,
            "reason": reason,
            "hasCompletedBooking": completed is not None,
            "existingReviewId": existing.id if existing else None,
        }

    @audited("CREATE_REVIEW")
    def create_review(self, data: ReviewCreate, customer: Customer) -> Review:
        model = self._get_active_model(data.modelId)

        if self.repo.get_customer_review(self.db, customer.id, model.id):
            raise HTTPException(status_code=409, detail="You have already reviewed this model.")

        booking = self.bookings.has_completed_booking(self.db, customer.id, model.id)
        if not booking:
            raise HTTPException(
                status_code=400,
                detail="You can only review models you have completed a booking with.",
            )

        review = self.repo.create_review(
            self.db,
            model_id=model.id,
            customer_id=customer.id,
            booking_id=booking.id,
            rating=data.rating,
            title=sanitize_text(data.title) if data.title else None,
            review_text=sanitize_text(data.reviewText) if data.reviewText else None,
            is_anonymous=data.isAnonymous,
        )

        average, count = self.repo.rating_summary(self.db, model.id)
        model.rating = round(average, 1)
        model.total_review = count
        self.db.commit()
        self.db.refresh(review)
        logger.info(f"⭐ Review {review.id} for model {model.id}: {data.rating}/5 (avg now {model.rating})")

        notification_service.notify_model(
            self.db,
            model.id,
            notification_service.NEW_REVIEW,
            "New review",
            f"You received a {data.rating}-star review",
            reviewId=review.id,
        )
        return review

    def list_reviews(self, model_id: str, page: int = 1, limit: int = 10) -> dict:
        self._get_active_model(model_id)
        items, total = self.repo.list_model_reviews(
            self.db, model_id, offset=page_offset(page, limit), limit=limit
        )
        return {"reviews": items, "pagination": build_pagination(page, limit, total)}
