"""
Booking price calculator.

A model service is billed one of four ways:

- per_day:     (custom_rate or base_rate) x number of days
- per_hour:    variant price_per_hour x hours when the model service has
               active variants (massage), else (custom_hourly_rate or
               hourly_rate) x hours
- per_session: one_time or one_night price, custom price first
- per_minute:  (custom_minute_rate or minute_rate) x minutes, online only

The calculator only reads attributes, so it accepts ORM rows as well as any
object with the same fields.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class BillingType(str, Enum):
    PER_DAY = "per_day"
    PER_HOUR = "per_hour"
    PER_SESSION = "per_session"
    PER_MINUTE = "per_minute"


class SessionType(str, Enum):
    ONE_TIME = "one_time"
    ONE_NIGHT = "one_night"


HOUR_OPTIONS = tuple(range(1, 11))
MINUTE_OPTIONS = (5, 10, 20, 30, 60, 120, 180, 300, 600)
ONLINE_LOCATION = "Online"


class PricingError(ValueError):
    """Raised when the booking inputs do not fit the service's billing type"""


@dataclass
class PriceQuote:
    billing_type: BillingType
    price: int
    unit_price: int
    day_amount: Optional[int] = None
    hours: Optional[int] = None
    session_type: Optional[str] = None
    minutes: Optional[int] = None
    variant_id: Optional[str] = None
    variant_name: Optional[str] = None
    location: Optional[str] = None


def resolve_billing_type(value: Optional[str]) -> BillingType:
    """Unknown or missing billing types fall back to per_day"""
    try:
        return BillingType(value)
    except ValueError:
        return BillingType.PER_DAY


def calculate_day_amount(start_date: Optional[datetime], end_date: Optional[datetime] = None) -> int:
    """Number of billed days; a partial day counts as a whole one and the minimum is 1"""
    if not start_date:
        return 0
    end = end_date or start_date
    seconds = (end - start_date).total_seconds()
    return max(1, math.ceil(seconds / 86400))


def active_variants(model_service) -> list:
    return [v for v in (getattr(model_service, "variants", None) or []) if v.status == "active"]


def minute_rate_for(service, model_service) -> int:
    return model_service.custom_minute_rate or service.minute_rate or 0


def _per_day(service, model_service, start_date, end_date) -> PriceQuote:
    if not start_date:
        raise PricingError("Start date is required")
    if end_date and end_date < start_date:
        raise PricingError("End date must be after start date")

    rate = model_service.custom_rate or service.base_rate or 0
    days = calculate_day_amount(start_date, end_date)
    return PriceQuote(BillingType.PER_DAY, price=rate * days, unit_price=rate, day_amount=days)


def _per_hour(service, model_service, hours, variant_id) -> PriceQuote:
    if hours not in HOUR_OPTIONS:
        raise PricingError(f"Hours must be between {HOUR_OPTIONS[0]} and {HOUR_OPTIONS[-1]}")

    variants = active_variants(model_service)
    if variants:
        variant = next((v for v in variants if v.id == variant_id), variants[0])
        return PriceQuote(
            BillingType.PER_HOUR,
            price=variant.price_per_hour * hours,
            unit_price=variant.price_per_hour,
            hours=hours,
            variant_id=variant.id,
            variant_name=variant.name,
        )

    rate = model_service.custom_hourly_rate or service.hourly_rate or 0
    return PriceQuote(BillingType.PER_HOUR, price=rate * hours, unit_price=rate, hours=hours)


def _per_session(service, model_service, session_type) -> PriceQuote:
    try:
        session = SessionType(session_type)
    except ValueError as e:
        raise PricingError("Session type must be one_time or one_night") from e

    if session is SessionType.ONE_TIME:
        price = model_service.custom_one_time_price or service.one_time_price or 0
    else:
        price = model_service.custom_one_night_price or service.one_night_price or 0
    return PriceQuote(BillingType.PER_SESSION, price=price, unit_price=price, session_type=session.value)


def _per_minute(service, model_service, minutes) -> PriceQuote:
    if minutes not in MINUTE_OPTIONS:
        raise PricingError(f"Minutes must be one of {', '.join(str(m) for m in MINUTE_OPTIONS)}")

    rate = minute_rate_for(service, model_service)
    return PriceQuote(
        BillingType.PER_MINUTE,
        price=rate * minutes,
        unit_price=rate,
        minutes=minutes,
        location=ONLINE_LOCATION,
    )


def calculate_price(
    service,
    model_service,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    hours: Optional[int] = None,
    session_type: Optional[str] = None,
    minutes: Optional[int] = None,
    variant_id: Optional[str] = None,
) -> PriceQuote:
    """
    Price a prospective booking of model_service (an offer of service).

    Raises:
        PricingError: If the inputs required by the billing type are missing or invalid
    """
    billing_type = resolve_billing_type(service.billing_type)

    if billing_type is BillingType.PER_HOUR:
        return _per_hour(service, model_service, hours, variant_id)
    if billing_type is BillingType.PER_SESSION:
        return _per_session(service, model_service, session_type)
    if billing_type is BillingType.PER_MINUTE:
        return _per_minute(service, model_service, minutes)
    return _per_day(service, model_service, start_date, end_date)
