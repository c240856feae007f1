"""Package repository - Database operations for plans and subscriptions"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Subscription, SubscriptionHistory, SubscriptionPlan


class PackageRepository:
    """Repository for subscription plan database operations"""

    @staticmethod
    def list_active_plans(db: Session) -> list[SubscriptionPlan]:
        return (
            db.query(SubscriptionPlan)
            .filter(SubscriptionPlan.status == "active")
            .order_by(SubscriptionPlan.price.asc())
            .all()
        )

    @staticmethod
    def get_active_plan(db: Session, plan_id: str) -> Optional[SubscriptionPlan]:
        return (
            db.query(SubscriptionPlan)
            .filter(SubscriptionPlan.id == plan_id, SubscriptionPlan.status == "active")
            .first()
        )

    @staticmethod
    def get_subscription(db: Session, customer_id: str, for_update: bool = False) -> Optional[Subscription]:
        query = db.query(Subscription).filter(Subscription.customer_id == customer_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_current_subscription(db: Session, customer_id: str, now: datetime) -> Optional[Subscription]:
        """Active subscription that has not run out yet"""
        return (
            db.query(Subscription)
            .options(joinedload(Subscription.plan))
            .filter(
                Subscription.customer_id == customer_id,
                Subscription.status == "active",
                Subscription.end_date >= now,
            )
            .first()
        )

    @staticmethod
    def create_subscription(db: Session, **fields) -> Subscription:
        subscription = Subscription(**fields)
        db.add(subscription)
        db.flush()
        return subscription

    @staticmethod
    def add_history(db: Session, **fields) -> SubscriptionHistory:
        entry = SubscriptionHistory(**fields)
        db.add(entry)
        db.flush()
        return entry

    @staticmethod
    def list_history(
        db: Session,
        customer_id: str,
        offset: int = 0,
        limit: int = 10,
        status: Optional[str] = None,
        start_from: Optional[datetime] = None,
        start_until: Optional[datetime] = None,
    ):
        query = db.query(SubscriptionHistory).filter(SubscriptionHistory.customer_id == customer_id)
        if status:
            query = query.filter(SubscriptionHistory.status == status)
        if start_from:
            query = query.filter(SubscriptionHistory.start_date >= start_from)
        if start_until:
            query = query.filter(SubscriptionHistory.start_date <= start_until)

        total = query.count()
        items = (
            query.order_by(SubscriptionHistory.created_at.desc(), SubscriptionHistory.start_date.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total
