"""Discover service - model lists, matches and public model profiles"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import NEARBY_MAX_DISTANCE_KM
from ...models import Customer, Model, ModelService
from ...shared.geo import distance_between
from ...shared.pagination import build_pagination, page_offset, paginate_list
from ...shared.timeutils import age_on, utcnow
from ..bookings.service import BookingService
from ..interactions.repository import InteractionRepository
from ..reviews.service import ReviewService
from .repository import DiscoverRepository
from .schemas import ForYouFilters

logger = logging.getLogger(__name__)

DISCOVER_LIMIT = 20
CARD_IMAGE_LIMIT = 5
HOT_WINDOW_DAYS = 30


def popularity_score(
    customer_likes: int,
    model_likes: int,
    recent_bookings: int,
    rating: float,
    total_review: int,
    days_since_update: int,
    distance_km: Optional[float],
) -> float:
    """
    Weighted "hot" score:
        customer likes x3, model likes x2, recent bookings x5, rating x10,
        reviews x0.5, up to 30 points for recent activity and up to 20 for
        being close by.
    """
    score = (
        customer_likes * 3
        + model_likes * 2
        + recent_bookings * 5
        + (rating or 0) * 10
        + (total_review or 0) * 0.5
        + max(0, 30 - days_since_update)
    )
    if distance_km is not None:
        score += max(0, 20 - distance_km / 5)
    return round(score, 2)


def active_images(model: Model, limit: Optional[int] = None) -> list[dict]:
    images = [i for i in model.images if i.status == "active"]
    images.sort(key=lambda i: i.created_at or datetime.min, reverse=True)
    if limit:
        images = images[:limit]
    return [{"id": i.id, "name": i.name} for i in images]


def service_entry(model_service: ModelService) -> dict:
    service = model_service.service
    return {
        "id": model_service.id,
        "serviceId": service.id,
        "name": service.name,
        "description": service.description,
        "billingType": service.billing_type,
        "baseRate": service.base_rate,
        "hourlyRate": service.hourly_rate,
        "oneTimePrice": service.one_time_price,
        "oneNightPrice": service.one_night_price,
        "minuteRate": service.minute_rate,
        "customRate": model_service.custom_rate,
        "customHourlyRate": model_service.custom_hourly_rate,
        "customOneTimePrice": model_service.custom_one_time_price,
        "customOneNightPrice": model_service.custom_one_night_price,
        "customMinuteRate": model_service.custom_minute_rate,
        "isAvailable": model_service.is_available,
        "serviceLocation": model_service.service_location,
        "variants": [
            {"id": v.id, "name": v.name, "pricePerHour": v.price_per_hour}
            for v in model_service.variants
            if v.status == "active"
        ],
    }


class DiscoverService:
    """Service layer for browsing models"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DiscoverRepository()
        self.interactions = InteractionRepository()

    def _cards(self, models: list[Model], customer: Customer, now: datetime) -> list[dict]:
        """Model cards decorated with the customer's relation to each model"""
        model_ids = [m.id for m in models]
        actions = self.interactions.customer_actions(self.db, customer.id, model_ids)
        contacts = self.interactions.contact_model_ids(self.db, customer.id, model_ids)
        likes = self.interactions.customer_like_counts(self.db, model_ids)

        cards = []
        for model in models:
            cards.append(
                {
                    "id": model.id,
                    "firstName": model.first_name,
                    "lastName": model.last_name,
                    "age": age_on(model.dob, now),
                    "gender": model.gender,
                    "bio": model.bio,
                    "profile": model.profile,
                    "address": model.address,
                    "rating": model.rating or 0,
                    "totalReview": model.total_review or 0,
                    "availableStatus": model.available_status,
                    "images": active_images(model, CARD_IMAGE_LIMIT),
                    "distance": distance_between(
                        customer.latitude, customer.longitude, model.latitude, model.longitude
                    ),
                    "customerAction": actions.get(model.id),
                    "isContact": model.id in contacts,
                    "totalLikes": likes.get(model.id, 0),
                }
            )
        return cards

    def _excluded(self, customer: Customer) -> list[str]:
        return self.interactions.passed_model_ids(self.db, customer.id)

    def discover(self, customer: Customer, now: Optional[datetime] = None) -> list[dict]:
        """Top rated models the customer has not passed"""
        now = now or utcnow()
        models = self.repo.list_top_rated(self.db, self._excluded(customer), DISCOVER_LIMIT)
        model_likes = self.interactions.model_like_counts(self.db, [m.id for m in models])
        cards = self._cards(models, customer, now)
        for card in cards:
            card["popularity"] = card["totalLikes"] + model_likes.get(card["id"], 0)
        return cards

    def nearby(
        self, customer: Customer, max_distance_km: float = NEARBY_MAX_DISTANCE_KM, now: Optional[datetime] = None
    ) -> list[dict]:
        now = now or utcnow()
        if customer.latitude is None or customer.longitude is None:
            raise HTTPException(
                status_code=400, detail="Your location is missing. Please enable location access."
            )

        models = self.repo.list_located(self.db, self._excluded(customer))
        cards = [c for c in self._cards(models, customer, now) if c["distance"] <= max_distance_km]
        cards.sort(key=lambda c: (c["distance"], -c["rating"]))
        logger.debug(f"📍 {len(cards)} models within {max_distance_km} km of customer {customer.id}")
        return cards[:DISCOVER_LIMIT]

    def hot(self, customer: Customer, limit: int = 10, now: Optional[datetime] = None) -> list[dict]:
        """Trending models ranked by popularity score"""
        now = now or utcnow()
        models = self.repo.active_models(self.db, self._excluded(customer)).all()
        model_ids = [m.id for m in models]
        model_likes = self.interactions.model_like_counts(self.db, model_ids)
        recent = self.repo.recent_booking_counts(self.db, model_ids, now - timedelta(days=HOT_WINDOW_DAYS))
        updated = {m.id: m.updated_at for m in models}

        cards = self._cards(models, customer, now)
        for card in cards:
            updated_at = updated.get(card["id"]) or now
            card["recentBookings"] = recent.get(card["id"], 0)
            card["popularityScore"] = popularity_score(
                card["totalLikes"],
                model_likes.get(card["id"], 0),
                card["recentBookings"],
                card["rating"],
                card["totalReview"],
                (now - updated_at).days,
                card["distance"],
            )
            card["totalLikes"] += model_likes.get(card["id"], 0)

        cards.sort(key=lambda c: c["popularityScore"], reverse=True)
        return cards[:limit]

    def for_you(self, customer: Customer, filters: ForYouFilters, now: Optional[datetime] = None) -> dict:
        """Filtered matches; pagination is applied after age and distance filtering"""
        now = now or utcnow()
        models = self.repo.list_filtered(
            self.db,
            self._excluded(customer),
            gender=filters.gender,
            location=filters.location,
            min_rating=filters.minRating,
            available_status=filters.availableStatus,
        )

        cards = []
        for card in self._cards(models, customer, now):
            age = card["age"]
            if filters.minAge is not None and (age is None or age < filters.minAge):
                continue
            if filters.maxAge is not None and (age is None or age > filters.maxAge):
                continue
            if filters.maxDistance and card["distance"] is not None and card["distance"] > filters.maxDistance:
                continue
            cards.append(card)

        page_items, pagination = paginate_list(cards, filters.page, filters.limit)
        return {"models": page_items, "pagination": pagination}

    def liked_me(self, customer: Customer, page: int = 1, limit: int = 20, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        models, total = self.repo.list_liked_by_models(self.db, customer.id, page_offset(page, limit), limit)
        return {"models": self._cards(models, customer, now), "pagination": build_pagination(page, limit, total)}

    def by_interaction(
        self, customer: Customer, action: str, page: int = 1, limit: int = 20, now: Optional[datetime] = None
    ) -> dict:
        """Models the customer liked or passed"""
        now = now or utcnow()
        models, total = self.repo.list_by_customer_action(
            self.db, customer.id, action, page_offset(page, limit), limit
        )
        return {"models": self._cards(models, customer, now), "pagination": build_pagination(page, limit, total)}

    def model_profile(self, model_id: str, customer: Customer, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        model = self.repo.get_profile(self.db, model_id)
        if not model:
            raise HTTPException(status_code=404, detail="Model not found")

        profile = self._cards([model], customer, now)[0]
        profile["images"] = active_images(model)
        eligibility = ReviewService(self.db).eligibility(customer.id, model.id)
        profile.update(
            {
                "career": model.career,
                "education": model.education,
                "interests": model.interests,
                "services": [
                    service_entry(ms)
                    for ms in model.model_services
                    if ms.status == "active" and ms.service is not None
                ],
                "totalFriends": self.interactions.count_friends(self.db, model.id),
                "canReview": eligibility["canReview"],
                "reviewReason": eligibility["reason"],
            }
        )
        return profile

    def model_service(self, model_id: str, model_service_id: str, now: Optional[datetime] = None) -> dict:
        """Service shown on the booking form, with the model's occupied slots"""
        model_service = self.repo.get_model_service(self.db, model_id, model_service_id)
        if not model_service or model_service.service is None:
            raise HTTPException(status_code=404, detail="Service not found")
        return {
            "service": service_entry(model_service),
            "modelAddress": model_service.model.address if model_service.model else None,
            "bookedSlots": BookingService(self.db).get_booked_slots(model_id, now),
        }
