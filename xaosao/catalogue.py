"""Default service catalogue and its idempotent seeding"""

import logging

from sqlalchemy.orm import Session

from .config import DEFAULT_COMMISSION_RATE
from .models import Service

logger = logging.getLogger(__name__)

SERVICE_CATALOGUE = [
    {
        "name": "drinkingFriend",
        "description": "A companion for drinks and a night out",
        "billing_type": "per_hour",
        "base_rate": 50000,
        "hourly_rate": 50000,
    },
    {
        "name": "travelingFriend",
        "description": "A companion for trips, billed per day",
        "billing_type": "per_day",
        "base_rate": 300000,
    },
    {
        "name": "hmongNewYear",
        "description": "A companion for the Hmong New Year festival",
        "billing_type": "per_day",
        "base_rate": 300000,
    },
    {
        "name": "sleepPartner",
        "description": "Short session or a full night",
        "billing_type": "per_session",
        "base_rate": 100000,
        "one_time_price": 100000,
        "one_night_price": 200000,
    },
    {
        "name": "massage",
        "description": "Professional massage services with various massage types available",
        "billing_type": "per_hour",
        "base_rate": 50000,
        "hourly_rate": 50000,
        "commission": 20,
    },
    {
        "name": "callService",
        "description": "Audio or video call billed per minute",
        "billing_type": "per_minute",
        "base_rate": 0,
        "minute_rate": 5000,
    },
]


def seed_services(db: Session) -> dict:
    """
    Insert missing catalogue services and align billing fields of existing ones.
    Rates a model customised on its own ModelService are left untouched.
    """
    summary = {"created": 0, "updated": 0}
    for order, entry in enumerate(SERVICE_CATALOGUE, start=1):
        fields = {"commission": DEFAULT_COMMISSION_RATE, "order": order, "status": "active", **entry}
        service = db.query(Service).filter(Service.name == entry["name"]).first()
        if service:
            for key, value in fields.items():
                if key not in ("order", "status"):
                    setattr(service, key, value)
            summary["updated"] += 1
        else:
            db.add(Service(**fields))
            summary["created"] += 1
            logger.info(f"🆕 Service {entry['name']} ({entry['billing_type']}) added")
    db.commit()
    return summary
