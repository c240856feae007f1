"""Call repository - Database operations for call bookings"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import ModelService, ServiceBooking


class CallRepository:
    """Repository for call booking database operations"""

    @staticmethod
    def get_call(db: Session, booking_id: str) -> Optional[ServiceBooking]:
        return (
            db.query(ServiceBooking)
            .options(
                joinedload(ServiceBooking.model),
                joinedload(ServiceBooking.model_service).joinedload(ModelService.service),
            )
            .filter(ServiceBooking.id == booking_id, ServiceBooking.call_type.isnot(None))
            .first()
        )

    @staticmethod
    def list_customer_calls(db: Session, customer_id: str, offset: int = 0, limit: int = 20):
        query = db.query(ServiceBooking).filter(
            ServiceBooking.customer_id == customer_id, ServiceBooking.call_type.isnot(None)
        )
        total = query.count()
        items = (
            query.options(joinedload(ServiceBooking.model))
            .order_by(ServiceBooking.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def list_expired_ringing(db: Session, ring_started_before: datetime) -> list[ServiceBooking]:
        return (
            db.query(ServiceBooking)
            .filter(
                ServiceBooking.call_status == "ringing",
                ServiceBooking.call_ring_started_at <= ring_started_before,
            )
            .all()
        )

    @staticmethod
    def list_stale_in_call(db: Session, heartbeat_before: datetime) -> list[ServiceBooking]:
        """Calls in progress whose last heartbeat (or start) is older than the cutoff"""
        return (
            db.query(ServiceBooking)
            .filter(
                ServiceBooking.call_status == "in_call",
                or_(
                    ServiceBooking.call_last_heartbeat <= heartbeat_before,
                    ServiceBooking.call_last_heartbeat.is_(None),
                ),
            )
            .all()
        )
