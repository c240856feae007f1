"""Booking repository - Database operations for service bookings"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import ModelService, ServiceBooking

SLOT_STATUSES = ("pending", "confirmed", "in_progress")


class BookingRepository:
    """Repository for service booking database operations"""

    @staticmethod
    def get_model_service(db: Session, model_service_id: str) -> Optional[ModelService]:
        """Model service with its catalogue service, variants and model loaded"""
        return (
            db.query(ModelService)
            .options(
                joinedload(ModelService.service),
                joinedload(ModelService.variants),
                joinedload(ModelService.model),
            )
            .filter(ModelService.id == model_service_id)
            .first()
        )

    @staticmethod
    def get_customer_booking(db: Session, booking_id: str, customer_id: str) -> Optional[ServiceBooking]:
        """Service booking of the customer; call bookings go through the call endpoints"""
        return (
            db.query(ServiceBooking)
            .filter(
                ServiceBooking.id == booking_id,
                ServiceBooking.customer_id == customer_id,
                ServiceBooking.call_type.is_(None),
            )
            .first()
        )

    @staticmethod
    def get_model_booking(db: Session, booking_id: str, model_id: str) -> Optional[ServiceBooking]:
        return (
            db.query(ServiceBooking)
            .filter(
                ServiceBooking.id == booking_id,
                ServiceBooking.model_id == model_id,
                ServiceBooking.call_type.is_(None),
            )
            .first()
        )

    @staticmethod
    def get_by_completion_token(db: Session, token: str) -> Optional[ServiceBooking]:
        return (
            db.query(ServiceBooking)
            .filter(ServiceBooking.completion_token == token, ServiceBooking.call_type.is_(None))
            .first()
        )

    @staticmethod
    def create_booking(db: Session, **booking_data) -> ServiceBooking:
        """Add a booking and flush so the escrow hold can reference its id"""
        booking = ServiceBooking(**booking_data)
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def delete_booking(db: Session, booking: ServiceBooking) -> None:
        db.delete(booking)
        db.commit()

    @staticmethod
    def list_customer_bookings(db: Session, customer_id: str, limit: int = 20) -> list[ServiceBooking]:
        """Service bookings (calls excluded), newest first"""
        return (
            db.query(ServiceBooking)
            .options(
                joinedload(ServiceBooking.model),
                joinedload(ServiceBooking.model_service).joinedload(ModelService.service),
            )
            .filter(ServiceBooking.customer_id == customer_id, ServiceBooking.call_type.is_(None))
            .order_by(ServiceBooking.created_at.desc(), ServiceBooking.start_date.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def list_booked_slots(db: Session, model_id: str, since: datetime) -> list[ServiceBooking]:
        return (
            db.query(ServiceBooking)
            .options(joinedload(ServiceBooking.model_service).joinedload(ModelService.service))
            .filter(
                ServiceBooking.model_id == model_id,
                ServiceBooking.status.in_(SLOT_STATUSES),
                ServiceBooking.call_type.is_(None),
                ServiceBooking.start_date.isnot(None),
                ServiceBooking.start_date >= since,
            )
            .order_by(ServiceBooking.start_date.asc())
            .all()
        )

    @staticmethod
    def list_auto_release_due(db: Session, now: datetime) -> list[ServiceBooking]:
        return (
            db.query(ServiceBooking)
            .filter(
                ServiceBooking.status == "awaiting_confirmation",
                ServiceBooking.call_type.is_(None),
                ServiceBooking.payment_status == "pending_release",
                ServiceBooking.auto_release_at.isnot(None),
                ServiceBooking.auto_release_at <= now,
            )
            .all()
        )

    @staticmethod
    def has_completed_booking(db: Session, customer_id: str, model_id: str) -> Optional[ServiceBooking]:
        return (
            db.query(ServiceBooking)
            .filter(
                ServiceBooking.customer_id == customer_id,
                ServiceBooking.model_id == model_id,
                ServiceBooking.status == "completed",
            )
            .order_by(ServiceBooking.completed_at.desc())
            .first()
        )
