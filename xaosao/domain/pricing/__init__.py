"""Pricing Domain - booking price calculation for every billing type"""

from .calculator import (
    BillingType,
    PriceQuote,
    PricingError,
    SessionType,
    calculate_day_amount,
    calculate_price,
)

__all__ = [
    "BillingType",
    "PriceQuote",
    "PricingError",
    "SessionType",
    "calculate_day_amount",
    "calculate_price",
]
