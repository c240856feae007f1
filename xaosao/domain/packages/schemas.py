"""Package domain schemas - Pydantic models for plans and subscriptions"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class PlanResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: int
    durationDays: int
    features: Optional[dict[str, str]] = None
    isPopular: bool = False
    status: str
    createdAt: Optional[datetime] = None
    current: bool = False


class SubscriptionResponse(BaseModel):
    id: str
    planId: str
    planName: Optional[str] = None
    startDate: datetime
    endDate: datetime
    status: str
    paymentMethod: str
    transactionId: Optional[str] = None
    notes: Optional[str] = None


class SubscriptionHistoryResponse(BaseModel):
    id: str
    subscriptionId: str
    planName: str
    planPrice: int
    durationDays: int
    startDate: datetime
    endDate: datetime
    paymentMethod: str
    transactionId: Optional[str] = None
    status: str
    createdAt: Optional[datetime] = None
