"""Discover repository - read queries over active models"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session, selectinload

from ...models import (
    CustomerInteraction,
    Model,
    ModelInteraction,
    ModelService,
    ServiceBooking,
)

POPULAR_BOOKING_STATUSES = ("confirmed", "completed")


class DiscoverRepository:
    """Repository for model discovery queries"""

    @staticmethod
    def active_models(db: Session, excluded_ids: Optional[list[str]] = None) -> Query:
        query = (
            db.query(Model)
            .options(selectinload(Model.images))
            .filter(Model.status == "active")
        )
        if excluded_ids:
            query = query.filter(Model.id.notin_(excluded_ids))
        return query

    @staticmethod
    def list_top_rated(db: Session, excluded_ids: list[str], limit: int = 20) -> list[Model]:
        return (
            DiscoverRepository.active_models(db, excluded_ids)
            .order_by(Model.rating.desc(), Model.updated_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def list_located(db: Session, excluded_ids: list[str]) -> list[Model]:
        return (
            DiscoverRepository.active_models(db, excluded_ids)
            .filter(Model.latitude.isnot(None), Model.longitude.isnot(None))
            .all()
        )

    @staticmethod
    def list_filtered(
        db: Session,
        excluded_ids: list[str],
        gender: Optional[str] = None,
        location: Optional[str] = None,
        min_rating: Optional[float] = None,
        available_status: Optional[str] = None,
    ) -> list[Model]:
        """Filters that can run in SQL; age and distance are applied by the caller"""
        query = DiscoverRepository.active_models(db, excluded_ids)
        if gender:
            query = query.filter(Model.gender == gender)
        if location:
            query = query.filter(Model.address.ilike(f"%{location}%"))
        if min_rating:
            query = query.filter(Model.rating >= min_rating)
        if available_status:
            query = query.filter(Model.available_status == available_status)
        return query.order_by(Model.rating.desc(), Model.updated_at.desc()).all()

    @staticmethod
    def list_liked_by_models(db: Session, customer_id: str, offset: int, limit: int):
        """Models that liked this customer"""
        query = (
            DiscoverRepository.active_models(db)
            .join(ModelInteraction, ModelInteraction.model_id == Model.id)
            .filter(ModelInteraction.customer_id == customer_id, ModelInteraction.action == "LIKE")
        )
        total = query.count()
        items = query.order_by(ModelInteraction.created_at.desc()).offset(offset).limit(limit).all()
        return items, total

    @staticmethod
    def list_by_customer_action(db: Session, customer_id: str, action: str, offset: int, limit: int):
        query = (
            DiscoverRepository.active_models(db)
            .join(CustomerInteraction, CustomerInteraction.model_id == Model.id)
            .filter(CustomerInteraction.customer_id == customer_id, CustomerInteraction.action == action)
        )
        total = query.count()
        items = query.order_by(CustomerInteraction.created_at.desc()).offset(offset).limit(limit).all()
        return items, total

    @staticmethod
    def recent_booking_counts(db: Session, model_ids: list[str], since: datetime) -> dict[str, int]:
        if not model_ids:
            return {}
        rows = (
            db.query(ServiceBooking.model_id, func.count(ServiceBooking.id))
            .filter(
                ServiceBooking.model_id.in_(model_ids),
                ServiceBooking.created_at >= since,
                ServiceBooking.status.in_(POPULAR_BOOKING_STATUSES),
            )
            .group_by(ServiceBooking.model_id)
            .all()
        )
        return dict(rows)

    @staticmethod
    def get_profile(db: Session, model_id: str) -> Optional[Model]:
        return (
            db.query(Model)
            .options(
                selectinload(Model.images),
                selectinload(Model.model_services).selectinload(ModelService.service),
                selectinload(Model.model_services).selectinload(ModelService.variants),
            )
            .filter(Model.id == model_id, Model.status == "active")
            .first()
        )

    @staticmethod
    def get_model_service(db: Session, model_id: str, model_service_id: str) -> Optional[ModelService]:
        return (
            db.query(ModelService)
            .options(
                selectinload(ModelService.service),
                selectinload(ModelService.variants),
                selectinload(ModelService.model),
            )
            .filter(
                ModelService.id == model_service_id,
                ModelService.model_id == model_id,
                ModelService.status == "active",
            )
            .first()
        )
