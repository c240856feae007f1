"""Discover router - model browsing endpoints for customers"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_customer
from ...config import NEARBY_MAX_DISTANCE_KM
from ...database import get_db
from ...models import Customer
from ..interactions.repository import LIKE, PASS
from .schemas import ForYouFilters, ModelCard, ModelProfileResponse, ModelServiceResponse
from .service import DiscoverService

router = APIRouter(prefix="/discover", tags=["Discover"])
models_router = APIRouter(prefix="/models", tags=["Models"])


def get_discover_service(db: Session = Depends(get_db)) -> DiscoverService:
    """Dependency injection for DiscoverService"""
    return DiscoverService(db)


def paged_cards(result: dict) -> dict:
    return {
        "models": [ModelCard(**card) for card in result["models"]],
        "pagination": result["pagination"],
    }


@router.get("", response_model=list[ModelCard])
async def discover_models(
    current_customer: Customer = Depends(get_current_customer),
    service: DiscoverService = Depends(get_discover_service),
):
    """Top rated models, skipping the ones the customer passed"""
    return [ModelCard(**card) for card in service.discover(current_customer)]


@router.get("/nearby", response_model=list[ModelCard])
async def nearby_models(
    max_distance_km: float = Query(NEARBY_MAX_DISTANCE_KM, gt=0, le=1000),
    current_customer: Customer = Depends(get_current_customer),
    service: DiscoverService = Depends(get_discover_service),
):
    return [ModelCard(**card) for card in service.nearby(current_customer, max_distance_km)]


@router.get("/hot", response_model=list[ModelCard])
async def hot_models(
    limit: int = Query(10, ge=1, le=50),
    current_customer: Customer = Depends(get_current_customer),
    service: DiscoverService = Depends(get_discover_service),
):
    return [ModelCard(**card) for card in service.hot(current_customer, limit)]


@router.get("/for-you")
async def for_you_models(
    gender: Optional[str] = None,
    location: Optional[str] = None,
    min_rating: Optional[float] = None,
    available_status: Optional[str] = None,
    min_age: Optional[int] = None,
    max_age: Optional[int] = None,
    max_distance: Optional[float] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_customer: Customer = Depends(get_current_customer),
    service: DiscoverService = Depends(get_discover_service),
):
    filters = ForYouFilters(
        gender=gender,
        location=location,
        minRating=min_rating,
        availableStatus=available_status,
        minAge=min_age,
        maxAge=max_age,
        maxDistance=max_distance,
        page=page,
        limit=limit,
    )
    return paged_cards(service.for_you(current_customer, filters))


@router.get("/liked-me")
async def models_who_liked_me(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_customer: Customer = Depends(get_current_customer),
    service: DiscoverService = Depends(get_discover_service),
):
    return paged_cards(service.liked_me(current_customer, page, limit))


@router.get("/interactions/{action}")
async def models_by_interaction(
    action: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_customer: Customer = Depends(get_current_customer),
    service: DiscoverService = Depends(get_discover_service),
):
    """Models the customer liked or passed"""
    action = action.upper()
    if action not in (LIKE, PASS):
        raise HTTPException(status_code=400, detail="Action must be LIKE or PASS")
    return paged_cards(service.by_interaction(current_customer, action, page, limit))


@models_router.get("/{model_id}", response_model=ModelProfileResponse)
async def get_model_profile(
    model_id: str,
    current_customer: Customer = Depends(get_current_customer),
    service: DiscoverService = Depends(get_discover_service),
):
    return ModelProfileResponse(**service.model_profile(model_id, current_customer))


@models_router.get("/{model_id}/services/{model_service_id}")
async def get_model_service(
    model_id: str,
    model_service_id: str,
    current_customer: Customer = Depends(get_current_customer),
    service: DiscoverService = Depends(get_discover_service),
):
    """Booking form data: service prices, variants and occupied slots"""
    result = service.model_service(model_id, model_service_id)
    return {
        "service": ModelServiceResponse(**result["service"]),
        "modelAddress": result["modelAddress"],
        "bookedSlots": result["bookedSlots"],
    }
