"""Review repository - Database operations for model reviews"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Review


class ReviewRepository:
    """Repository for review database operations"""

    @staticmethod
    def get_customer_review(db: Session, customer_id: str, model_id: str) -> Optional[Review]:
        return (
            db.query(Review)
            .filter(Review.customer_id == customer_id, Review.model_id == model_id)
            .first()
        )

    @staticmethod
    def create_review(db: Session, **review_data) -> Review:
        review = Review(**review_data)
        db.add(review)
        db.flush()
        return review

    @staticmethod
    def list_model_reviews(db: Session, model_id: str, offset: int = 0, limit: int = 10):
        query = db.query(Review).filter(Review.model_id == model_id)
        total = query.count()
        items = (
            query.options(joinedload(Review.customer))
            .order_by(Review.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def rating_summary(db: Session, model_id: str) -> tuple[float, int]:
        """(average rating, review count) of a model"""
        average, count = (
            db.query(func.avg(Review.rating), func.count(Review.id))
            .filter(Review.model_id == model_id)
            .one()
        )
        return float(average or 0), int(count or 0)
