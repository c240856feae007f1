"""Call router - FastAPI endpoints for per-minute call bookings and signalling"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Actor, get_current_actor, get_current_customer
from ...database import get_db
from ...models import Customer, ServiceBooking
from ...shared.responses import success_response
from .schemas import (
    CallBookingCreate,
    CallStateResponse,
    DeclineCallRequest,
    HeartbeatResponse,
    RegisterPeerRequest,
)
from .service import CallService

router = APIRouter(prefix="/calls", tags=["Calls"])


def get_call_service(db: Session = Depends(get_db)) -> CallService:
    """Dependency injection for CallService"""
    return CallService(db)


def call_response(
    booking: ServiceBooking, service: CallService, now: Optional[datetime] = None
) -> CallStateResponse:
    model = booking.model
    return CallStateResponse(
        id=booking.id,
        callType=booking.call_type,
        callStatus=booking.call_status,
        status=booking.status,
        paymentStatus=booking.payment_status,
        roomId=booking.call_room_id,
        customerPeerId=booking.customer_peer_id,
        modelPeerId=booking.model_peer_id,
        modelId=booking.model_id,
        modelName=f"{model.first_name} {model.last_name or ''}".strip() if model else None,
        modelProfile=model.profile if model else None,
        scheduledCallTime=booking.scheduled_call_time,
        callStartedAt=booking.call_started_at,
        callEndedAt=booking.call_ended_at,
        endedBy=booking.call_ended_by,
        billedMinutes=booking.minutes,
        price=booking.price,
        createdAt=booking.created_at,
        **service.describe(booking, now),
    )


@router.post("")
async def create_call_booking(
    data: CallBookingCreate,
    current_customer: Customer = Depends(get_current_customer),
    service: CallService = Depends(get_call_service),
):
    """Book a call and hold up to two hours of minutes from the wallet"""
    booking = service.create_call_booking(data, current_customer)
    return success_response("Call booking created", booking=call_response(booking, service))


@router.get("")
async def list_calls(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_customer: Customer = Depends(get_current_customer),
    service: CallService = Depends(get_call_service),
):
    result = service.list_calls(current_customer, page, limit)
    return {
        "calls": [call_response(b, service) for b in result["calls"]],
        "pagination": result["pagination"],
    }


@router.get("/{booking_id}", response_model=CallStateResponse)
async def get_call_status(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CallService = Depends(get_call_service),
):
    """Polled by both parties while the call screen is open"""
    return call_response(service.get_call_status(booking_id, actor), service)


@router.post("/{booking_id}/initiate")
async def initiate_call(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CallService = Depends(get_call_service),
):
    booking = service.initiate_call(booking_id, actor)
    return success_response("Calling...", booking=call_response(booking, service))


@router.post("/{booking_id}/accept")
async def accept_call(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CallService = Depends(get_call_service),
):
    booking = service.accept_call(booking_id, actor)
    return success_response("Call accepted", booking=call_response(booking, service))


@router.post("/{booking_id}/decline")
async def decline_call(
    booking_id: str,
    data: DeclineCallRequest,
    actor: Actor = Depends(get_current_actor),
    service: CallService = Depends(get_call_service),
):
    booking = service.decline_call(booking_id, actor, data.reason)
    return success_response("Call declined", booking=call_response(booking, service))


@router.post("/{booking_id}/missed")
async def mark_call_missed(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CallService = Depends(get_call_service),
):
    booking = service.mark_missed(booking_id, actor)
    return success_response("Call missed. Your payment has been refunded.", booking=call_response(booking, service))


@router.post("/{booking_id}/start")
async def start_call(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CallService = Depends(get_call_service),
):
    booking = service.start_call(booking_id, actor)
    return success_response("Call started", booking=call_response(booking, service))


@router.post("/{booking_id}/heartbeat", response_model=HeartbeatResponse)
async def call_heartbeat(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CallService = Depends(get_call_service),
):
    return HeartbeatResponse(**service.heartbeat(booking_id, actor))


@router.post("/{booking_id}/end")
async def end_call(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CallService = Depends(get_call_service),
):
    booking = service.end_call(booking_id, actor)
    return success_response("Call ended", booking=call_response(booking, service))


@router.post("/{booking_id}/register-peer")
async def register_peer(
    booking_id: str,
    data: RegisterPeerRequest,
    actor: Actor = Depends(get_current_actor),
    service: CallService = Depends(get_call_service),
):
    booking = service.register_peer(booking_id, actor, data.peerId)
    return success_response(
        "Peer registered",
        customerPeerId=booking.customer_peer_id,
        modelPeerId=booking.model_peer_id,
    )
