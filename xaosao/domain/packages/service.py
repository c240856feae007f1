"""Package service - Business logic for membership plans paid from the wallet"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Customer, Subscription, SubscriptionPlan
from ...services import notification_service
from ...services.audit_service import audited
from ...shared.pagination import build_pagination, page_offset
from ...shared.timeutils import utcnow
from ..wallet.escrow import SUBSCRIPTION, charge_wallet
from .repository import PackageRepository

logger = logging.getLogger(__name__)

SUBSCRIPTION_ACTIVE = "active"
SUBSCRIPTION_UPGRADED = "upgraded"
PAYMENT_WALLET = "wallet"

DAY_SECONDS = 24 * 60 * 60


def days_left(end_date: datetime, now: datetime) -> int:
    """Whole days until end_date, a started day counting as one"""
    return max(0, math.ceil((end_date - now).total_seconds() / DAY_SECONDS))


class PackageService:
    """Service layer for subscription plan business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PackageRepository()

    def current_subscription(self, customer: Customer, now: Optional[datetime] = None) -> Optional[Subscription]:
        return self.repo.get_current_subscription(self.db, customer.id, now or utcnow())

    def list_plans(
        self, customer: Customer, now: Optional[datetime] = None
    ) -> list[tuple[SubscriptionPlan, bool]]:
        """Active plans, each flagged when it is the customer's running plan"""
        current = self.current_subscription(customer, now)
        current_plan_id = current.plan_id if current else None
        return [(plan, plan.id == current_plan_id) for plan in self.repo.list_active_plans(self.db)]

    def get_plan(
        self, plan_id: str, customer: Customer, now: Optional[datetime] = None
    ) -> tuple[SubscriptionPlan, bool]:
        plan = self.repo.get_active_plan(self.db, plan_id)
        if not plan:
            raise HTTPException(status_code=404, detail="Plan not found or inactive")
        current = self.current_subscription(customer, now)
        return plan, bool(current and current.plan_id == plan.id)

    @audited("CUSTOMER_SUBSCRIPTION_WALLET")
    def subscribe_with_wallet(
        self, plan_id: str, customer: Customer, now: Optional[datetime] = None
    ) -> Subscription:
        """
        Buy a plan with the wallet balance.

        A customer keeps one subscription row. Buying while a plan is still
        running carries its remaining days over to the new plan and records
        the old period as upgraded in the history.
        """
        now = now or utcnow()
        plan = self.repo.get_active_plan(self.db, plan_id)
        if not plan:
            raise HTTPException(status_code=404, detail="Plan not found or inactive")

        existing = self.repo.get_subscription(self.db, customer.id, for_update=True)
        carried_days = 0
        previous_plan = None
        if existing and existing.status == SUBSCRIPTION_ACTIVE and existing.end_date > now:
            carried_days = days_left(existing.end_date, now)
            previous_plan = existing.plan
            self.repo.add_history(
                self.db,
                subscription_id=existing.id,
                customer_id=customer.id,
                plan_name=previous_plan.name,
                plan_price=previous_plan.price,
                duration_days=days_left(existing.end_date, existing.start_date),
                start_date=existing.start_date,
                end_date=existing.end_date,
                payment_method=existing.payment_method,
                transaction_id=existing.transaction_id,
                status=SUBSCRIPTION_UPGRADED,
            )

        transaction = charge_wallet(
            self.db,
            customer.id,
            plan.price,
            SUBSCRIPTION,
            reason=f"Subscription payment for {plan.name} (Plan ID: {plan.id})",
        )

        total_days = plan.duration_days + carried_days
        fields = {
            "plan_id": plan.id,
            "start_date": now,
            "end_date": now + timedelta(days=total_days),
            "status": SUBSCRIPTION_ACTIVE,
            "auto_renew": True,
            "payment_method": PAYMENT_WALLET,
            "transaction_id": transaction.id,
            "notes": (
                f"Upgraded from {previous_plan.name}. {carried_days} days carried over from previous subscription."
                if previous_plan
                else "New subscription activated"
            ),
        }
        if existing:
            for key, value in fields.items():
                setattr(existing, key, value)
            subscription = existing
        else:
            subscription = self.repo.create_subscription(self.db, customer_id=customer.id, **fields)

        self.repo.add_history(
            self.db,
            subscription_id=subscription.id,
            customer_id=customer.id,
            plan_name=plan.name,
            plan_price=plan.price,
            duration_days=total_days,
            start_date=subscription.start_date,
            end_date=subscription.end_date,
            payment_method=PAYMENT_WALLET,
            transaction_id=transaction.id,
            status=SUBSCRIPTION_ACTIVE,
        )
        self.db.commit()
        self.db.refresh(subscription)
        logger.info(f"⭐ Customer {customer.id} subscribed to {plan.name} for {total_days} days")

        notification_service.notify_customer(
            self.db,
            customer.id,
            notification_service.SUBSCRIPTION_ACTIVATED,
            "Subscription activated",
            f"Your {plan.name} package is active until {subscription.end_date:%Y-%m-%d}",
            subscriptionId=subscription.id,
        )
        return subscription

    def list_history(
        self,
        customer: Customer,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        start_from: Optional[datetime] = None,
        start_until: Optional[datetime] = None,
    ) -> dict:
        if status == "all":
            status = None
        items, total = self.repo.list_history(
            self.db, customer.id, page_offset(page, limit), limit, status, start_from, start_until
        )
        return {"history": items, "pagination": build_pagination(page, limit, total)}
