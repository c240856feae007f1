"""Interaction router - like, pass and friend endpoints"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_customer
from ...database import get_db
from ...models import Customer
from .schemas import FriendRequest, InteractionRequest
from .service import InteractionService

router = APIRouter(prefix="/interactions", tags=["Interactions"])


def get_interaction_service(db: Session = Depends(get_db)) -> InteractionService:
    """Dependency injection for InteractionService"""
    return InteractionService(db)


@router.post("")
async def toggle_interaction(
    data: InteractionRequest,
    current_customer: Customer = Depends(get_current_customer),
    service: InteractionService = Depends(get_interaction_service),
):
    """Like or pass a model; repeating the same action removes it"""
    return service.toggle_interaction(data.modelId, data.action, current_customer)


@router.post("/friends")
async def add_friend(
    data: FriendRequest,
    current_customer: Customer = Depends(get_current_customer),
    service: InteractionService = Depends(get_interaction_service),
):
    return service.add_friend(data.modelId, current_customer)
