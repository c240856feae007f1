"""Package router - FastAPI endpoints for membership plans"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_customer
from ...database import get_db
from ...models import Customer, Subscription, SubscriptionHistory, SubscriptionPlan
from ...shared.responses import success_response
from ...shared.timeutils import to_naive_utc
from .schemas import PlanResponse, SubscriptionHistoryResponse, SubscriptionResponse
from .service import PackageService

router = APIRouter(prefix="/packages", tags=["Packages"])


def get_package_service(db: Session = Depends(get_db)) -> PackageService:
    """Dependency injection for PackageService"""
    return PackageService(db)


def plan_response(plan: SubscriptionPlan, current: bool) -> PlanResponse:
    return PlanResponse(
        id=plan.id,
        name=plan.name,
        description=plan.description,
        price=plan.price,
        durationDays=plan.duration_days,
        features=plan.features,
        isPopular=plan.is_popular,
        status=plan.status,
        createdAt=plan.created_at,
        current=current,
    )


def subscription_response(subscription: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse(
        id=subscription.id,
        planId=subscription.plan_id,
        planName=subscription.plan.name if subscription.plan else None,
        startDate=subscription.start_date,
        endDate=subscription.end_date,
        status=subscription.status,
        paymentMethod=subscription.payment_method,
        transactionId=subscription.transaction_id,
        notes=subscription.notes,
    )


def history_response(entry: SubscriptionHistory) -> SubscriptionHistoryResponse:
    return SubscriptionHistoryResponse(
        id=entry.id,
        subscriptionId=entry.subscription_id,
        planName=entry.plan_name,
        planPrice=entry.plan_price,
        durationDays=entry.duration_days,
        startDate=entry.start_date,
        endDate=entry.end_date,
        paymentMethod=entry.payment_method,
        transactionId=entry.transaction_id,
        status=entry.status,
        createdAt=entry.created_at,
    )


@router.get("", response_model=list[PlanResponse])
async def list_packages(
    current_customer: Customer = Depends(get_current_customer),
    service: PackageService = Depends(get_package_service),
):
    return [plan_response(plan, current) for plan, current in service.list_plans(current_customer)]


@router.get("/current")
async def get_current_subscription(
    current_customer: Customer = Depends(get_current_customer),
    service: PackageService = Depends(get_package_service),
):
    """Running subscription of the customer, or null"""
    subscription = service.current_subscription(current_customer)
    return {"subscription": subscription_response(subscription) if subscription else None}


@router.get("/history")
async def subscription_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None, description="active, upgraded or all"),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    current_customer: Customer = Depends(get_current_customer),
    service: PackageService = Depends(get_package_service),
):
    result = service.list_history(
        current_customer, page, limit, status, to_naive_utc(startDate), to_naive_utc(endDate)
    )
    return {
        "history": [history_response(entry) for entry in result["history"]],
        "pagination": result["pagination"],
    }


@router.get("/{plan_id}", response_model=PlanResponse)
async def get_package(
    plan_id: str,
    current_customer: Customer = Depends(get_current_customer),
    service: PackageService = Depends(get_package_service),
):
    plan, current = service.get_plan(plan_id, current_customer)
    return plan_response(plan, current)


@router.post("/{plan_id}/subscribe")
async def subscribe_with_wallet(
    plan_id: str,
    current_customer: Customer = Depends(get_current_customer),
    service: PackageService = Depends(get_package_service),
):
    """Pay for a plan from the wallet balance; remaining days of a running plan carry over"""
    subscription = service.subscribe_with_wallet(plan_id, current_customer)
    return success_response(
        "Subscription activated successfully!", subscription=subscription_response(subscription)
    )
