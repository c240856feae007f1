"""Booking router - FastAPI endpoints for service bookings"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_customer, get_current_model
from ...database import get_db
from ...models import Customer, Model, ServiceBooking
from ...services.qr_service import booking_confirmation_url, render_qr_data_uri
from ...shared.responses import success_response
from ..pricing import PriceQuote
from .schemas import (
    BookedSlot,
    BookingCreate,
    BookingResponse,
    BookingTokenPreview,
    BookingUpdate,
    CheckInRequest,
    CheckInStatus,
    DisputeRequest,
    PriceQuoteRequest,
    PriceQuoteResponse,
    RejectRequest,
)
from .service import BookingService, check_in_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])
model_router = APIRouter(prefix="/model/bookings", tags=["Model Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def booking_response(
    booking: ServiceBooking, is_contact: Optional[bool] = None, with_check_in: bool = False
) -> BookingResponse:
    model = booking.model
    service = booking.model_service.service if booking.model_service else None
    return BookingResponse(
        id=booking.id,
        modelId=booking.model_id,
        modelName=f"{model.first_name} {model.last_name or ''}".strip() if model else None,
        modelProfile=model.profile if model else None,
        modelServiceId=booking.model_service_id,
        serviceName=service.name if service else None,
        billingType=service.billing_type if service else None,
        price=booking.price,
        dayAmount=booking.day_amount,
        hours=booking.hours,
        sessionType=booking.session_type,
        minutes=booking.minutes,
        variantId=booking.variant_id,
        location=booking.location,
        preferredAttire=booking.preferred_attire,
        startDate=booking.start_date,
        endDate=booking.end_date,
        status=booking.status,
        paymentStatus=booking.payment_status,
        isContact=is_contact,
        checkIn=CheckInStatus(**check_in_status(booking)) if with_check_in else None,
        disputeReason=booking.dispute_reason,
        completedAt=booking.completed_at,
        createdAt=booking.created_at,
    )


def quote_response(quote: PriceQuote) -> PriceQuoteResponse:
    return PriceQuoteResponse(
        billingType=quote.billing_type.value,
        price=quote.price,
        unitPrice=quote.unit_price,
        dayAmount=quote.day_amount,
        hours=quote.hours,
        sessionType=quote.session_type,
        minutes=quote.minutes,
        variantId=quote.variant_id,
        variantName=quote.variant_name,
        location=quote.location,
    )


# ============================================================================
# CUSTOMER BOOKINGS
# ============================================================================


@router.post("/quote", response_model=PriceQuoteResponse)
async def quote_booking(
    data: PriceQuoteRequest,
    current_customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    """Price a booking for the selected billing inputs without creating it"""
    return quote_response(service.quote(data))


@router.post("")
async def create_booking(
    data: BookingCreate,
    current_customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.create_booking(data, current_customer)
    return success_response("Booking created successfully", booking=booking_response(booking))


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    current_customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    """Latest service bookings of the current customer"""
    return [booking_response(b, is_contact) for b, is_contact in service.list_bookings(current_customer)]


@router.get("/slots/{model_id}", response_model=list[BookedSlot])
async def get_booked_slots(
    model_id: str,
    current_customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    return [BookedSlot(**slot) for slot in service.get_booked_slots(model_id)]


@router.get("/confirm/{token}", response_model=BookingTokenPreview)
async def preview_booking_by_token(
    token: str,
    current_customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    """Booking summary behind a scanned completion QR code"""
    result = service.get_booking_by_token(token, current_customer)
    booking = result["booking"]
    return BookingTokenPreview(
        id=booking.id,
        price=booking.price,
        status=booking.status,
        modelName=booking.model.first_name if booking.model else None,
        modelProfile=booking.model.profile if booking.model else None,
        serviceName=booking.model_service.service.name if booking.model_service else None,
        isExpired=result["isExpired"],
        isAlreadyCompleted=result["isAlreadyCompleted"],
    )


@router.post("/confirm/{token}")
async def confirm_booking_by_token(
    token: str,
    current_customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.confirm_by_token(token, current_customer)
    return success_response("Booking confirmed. Payment released.", booking=booking_response(booking))


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    current_customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    """Booking detail including check-in status"""
    booking = service.get_customer_booking(booking_id, current_customer)
    return booking_response(booking, with_check_in=True)


@router.patch("/{booking_id}")
async def update_booking(
    booking_id: str,
    data: BookingUpdate,
    current_customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.update_booking(booking_id, data, current_customer)
    return success_response("Booking updated successfully", booking=booking_response(booking))


@router.post("/{booking_id}/cancel")
async def cancel_booking(
    booking_id: str,
    current_customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.cancel_booking(booking_id, current_customer)
    return success_response("Booking cancelled and payment refunded", booking=booking_response(booking))


@router.delete("/{booking_id}")
async def delete_booking(
    booking_id: str,
    current_customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    service.delete_booking(booking_id, current_customer)
    return success_response("Booking deleted")


@router.post("/{booking_id}/check-in")
async def customer_check_in(
    booking_id: str,
    data: CheckInRequest,
    current_customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.customer_check_in(booking_id, data, current_customer)
    return success_response(
        "Checked in successfully", booking=booking_response(booking, with_check_in=True)
    )


@router.post("/{booking_id}/confirm")
async def confirm_completion(
    booking_id: str,
    current_customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.confirm_completion(booking_id, current_customer)
    return success_response("Booking confirmed. Payment released.", booking=booking_response(booking))


@router.post("/{booking_id}/dispute")
async def dispute_booking(
    booking_id: str,
    data: DisputeRequest,
    current_customer: Customer = Depends(get_current_customer),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.dispute_booking(booking_id, data.reason, current_customer)
    return success_response(
        "Dispute submitted. Our team will review it shortly.", booking=booking_response(booking)
    )


# ============================================================================
# MODEL SIDE (accept / reject / check-in / complete)
# ============================================================================


@model_router.post("/{booking_id}/accept")
async def accept_booking(
    booking_id: str,
    current_model: Model = Depends(get_current_model),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.accept_booking(booking_id, current_model)
    return success_response("Booking accepted", booking=booking_response(booking))


@model_router.post("/{booking_id}/reject")
async def reject_booking(
    booking_id: str,
    data: RejectRequest,
    current_model: Model = Depends(get_current_model),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.reject_booking(booking_id, data.reason, current_model)
    return success_response("Booking rejected and customer refunded", booking=booking_response(booking))


@model_router.post("/{booking_id}/check-in")
async def model_check_in(
    booking_id: str,
    data: CheckInRequest,
    current_model: Model = Depends(get_current_model),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.model_check_in(booking_id, data, current_model)
    return success_response(
        "Checked in successfully", booking=booking_response(booking, with_check_in=True)
    )


@model_router.post("/{booking_id}/complete")
async def complete_booking(
    booking_id: str,
    current_model: Model = Depends(get_current_model),
    service: BookingService = Depends(get_booking_service),
):
    """Mark complete and return the QR code the customer scans to confirm"""
    booking = service.complete_booking(booking_id, current_model)
    confirmation_url = booking_confirmation_url(booking.completion_token)
    return success_response(
        "Booking marked as complete. Ask the customer to scan the QR code.",
        booking=booking_response(booking),
        completionToken=booking.completion_token,
        confirmationUrl=confirmation_url,
        qrCode=render_qr_data_uri(confirmation_url),
    )
