"""Review router - FastAPI endpoints for model reviews"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_customer
from ...database import get_db
from ...models import Customer, Review
from ...shared.responses import success_response
from .schemas import ReviewAuthor, ReviewCreate, ReviewEligibility, ReviewResponse
from .service import ReviewService, author_of

router = APIRouter(prefix="/reviews", tags=["Reviews"])


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    """Dependency injection for ReviewService"""
    return ReviewService(db)


def review_response(review: Review) -> ReviewResponse:
    author = author_of(review)
    return ReviewResponse(
        id=review.id,
        rating=review.rating,
        title=review.title,
        reviewText=review.review_text,
        isAnonymous=review.is_anonymous,
        createdAt=review.created_at,
        customer=ReviewAuthor(**author) if author else None,
    )


@router.post("")
async def create_review(
    data: ReviewCreate,
    current_customer: Customer = Depends(get_current_customer),
    service: ReviewService = Depends(get_review_service),
):
    review = service.create_review(data, current_customer)
    return success_response("Review submitted successfully!", review=review_response(review))


@router.get("/model/{model_id}")
async def list_model_reviews(
    model_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    current_customer: Customer = Depends(get_current_customer),
    service: ReviewService = Depends(get_review_service),
):
    result = service.list_reviews(model_id, page, limit)
    return {
        "reviews": [review_response(r) for r in result["reviews"]],
        "pagination": result["pagination"],
    }


@router.get("/model/{model_id}/eligibility", response_model=ReviewEligibility)
async def review_eligibility(
    model_id: str,
    current_customer: Customer = Depends(get_current_customer),
    service: ReviewService = Depends(get_review_service),
):
    return ReviewEligibility(**service.eligibility(current_customer.id, model_id))
