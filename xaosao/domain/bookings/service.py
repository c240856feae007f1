"""
Booking service - Business logic for service bookings

Lifecycle of a booking (payment status in brackets):

    pending [held] -> confirmed -> in_progress (both checked in)
        -> awaiting_confirmation [pending_release]  (model marks complete)
        -> completed [released]   (customer confirms, scans QR, or auto-release)
        -> disputed               (customer reports a problem instead)

    pending/confirmed -> cancelled [refunded]   (customer, >= 2h before start)
    pending -> rejected [refunded]              (model)
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import (
    AUTO_RELEASE_HOURS,
    CANCELLATION_CUTOFF_HOURS,
    CHECK_IN_EARLY_MINUTES,
    CHECK_IN_RADIUS_KM,
    COMPLETION_TOKEN_HOURS,
    MIN_BOOKING_PRICE,
)
from ...models import Customer, Model, ModelService, ServiceBooking
from ...security_utils import generate_completion_token
from ...services import notification_service
from ...services.audit_service import STATUS_FAILED, STATUS_SUCCESS, audited, create_audit_log
from ...shared.geo import is_within_radius
from ...shared.timeutils import utcnow
from ..interactions.repository import InteractionRepository
from ..pricing import BillingType, PriceQuote, PricingError, calculate_price
from ..wallet.escrow import (
    BOOKING_EARNING,
    BOOKING_HOLD,
    BOOKING_REFUND,
    held_amount,
    hold_payment,
    refund_payment,
    release_payment,
)
from .repository import BookingRepository
from .schemas import BookingCreate, BookingInputs, BookingUpdate, CheckInRequest, PriceQuoteRequest

logger = logging.getLogger(__name__)

# Booking statuses
PENDING = "pending"
CONFIRMED = "confirmed"
REJECTED = "rejected"
CANCELLED = "cancelled"
IN_PROGRESS = "in_progress"
AWAITING_CONFIRMATION = "awaiting_confirmation"
COMPLETED = "completed"
DISPUTED = "disputed"

# Payment statuses
PAYMENT_PENDING = "pending"
PAYMENT_HELD = "held"
PAYMENT_PENDING_RELEASE = "pending_release"
PAYMENT_RELEASED = "released"
PAYMENT_REFUNDED = "refunded"

DELETABLE_STATUSES = (CANCELLED, REJECTED, COMPLETED)


def check_in_status(booking: ServiceBooking, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    hours_until_release = 0
    if booking.auto_release_at:
        seconds = (booking.auto_release_at - now).total_seconds()
        hours_until_release = max(0, math.ceil(seconds / 3600))

    return {
        "modelCheckedIn": bool(booking.model_checked_in_at),
        "customerCheckedIn": bool(booking.customer_checked_in_at),
        "bothCheckedIn": bool(booking.model_checked_in_at and booking.customer_checked_in_at),
        "hoursUntilAutoRelease": hours_until_release,
    }


def ensure_check_in_window(booking: ServiceBooking, now: datetime) -> None:
    """Check-in opens CHECK_IN_EARLY_MINUTES before the start and closes at the end date"""
    opens_at = booking.start_date - timedelta(minutes=CHECK_IN_EARLY_MINUTES)
    if now < opens_at:
        minutes_until = math.ceil((opens_at - now).total_seconds() / 60)
        raise HTTPException(
            status_code=400,
            detail=f"Check-in opens in {minutes_until} minutes ({CHECK_IN_EARLY_MINUTES} minutes before the booking starts).",
        )
    if booking.end_date and now > booking.end_date:
        raise HTTPException(status_code=400, detail="This booking has already ended.")


def ensure_near_booking_location(booking: ServiceBooking, latitude: float, longitude: float) -> None:
    if booking.location_latitude is None or booking.location_longitude is None:
        return
    inside, distance_m = is_within_radius(
        latitude, longitude, booking.location_latitude, booking.location_longitude, CHECK_IN_RADIUS_KM
    )
    if not inside:
        raise HTTPException(
            status_code=400,
            detail=(
                f"You are {distance_m}m away from the booking location. "
                f"Please move closer (within {round(CHECK_IN_RADIUS_KM * 1000)}m) to check in."
            ),
        )


class BookingService:
    """Service layer for service booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.interactions = InteractionRepository()

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def get_bookable_model_service(self, model_service_id: str) -> ModelService:
        model_service = self.repo.get_model_service(self.db, model_service_id)
        if (
            not model_service
            or model_service.status != "active"
            or not model_service.is_available
            or model_service.service is None
            or model_service.service.status != "active"
            or model_service.model.status != "active"
        ):
            raise HTTPException(status_code=404, detail="This service is not available for booking")
        return model_service

    def _price(self, model_service: ModelService, inputs: BookingInputs) -> PriceQuote:
        try:
            return calculate_price(
                model_service.service,
                model_service,
                start_date=inputs.startDate,
                end_date=inputs.endDate,
                hours=inputs.hours,
                session_type=inputs.sessionType,
                minutes=inputs.minutes,
                variant_id=inputs.variantId,
            )
        except PricingError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    def quote(self, data: PriceQuoteRequest) -> PriceQuote:
        """Price a prospective booking without creating it"""
        model_service = self.get_bookable_model_service(data.modelServiceId)
        return self._price(model_service, data)

    def _validate_booking(self, quote: PriceQuote, inputs: BookingInputs, now: datetime) -> None:
        if quote.price < MIN_BOOKING_PRICE:
            raise HTTPException(
                status_code=400, detail=f"Booking price must be at least {MIN_BOOKING_PRICE:,} LAK"
            )
        if quote.billing_type is not BillingType.PER_MINUTE:
            if not inputs.startDate:
                raise HTTPException(status_code=400, detail="Start date is required")
            if inputs.startDate < now:
                raise HTTPException(status_code=400, detail="Start date must be in the future")
        if inputs.startDate and inputs.endDate and inputs.endDate < inputs.startDate:
            raise HTTPException(status_code=400, detail="End date must be after start date")

    def _booking_fields(self, quote: PriceQuote, data: BookingUpdate) -> dict:
        location = quote.location or data.location
        if not location:
            raise HTTPException(status_code=400, detail="Location is required")

        end_date = data.endDate
        if end_date is None and quote.hours and data.startDate:
            end_date = data.startDate + timedelta(hours=quote.hours)

        return {
            "price": quote.price,
            "day_amount": quote.day_amount,
            "hours": quote.hours,
            "session_type": quote.session_type,
            "minutes": quote.minutes,
            "variant_id": quote.variant_id,
            "location": location,
            "location_latitude": data.locationLatitude,
            "location_longitude": data.locationLongitude,
            "preferred_attire": data.preferredAttire,
            "start_date": data.startDate,
            "end_date": end_date,
        }

    # ------------------------------------------------------------------
    # Customer actions
    # ------------------------------------------------------------------

    def get_customer_booking(self, booking_id: str, customer: Customer) -> ServiceBooking:
        booking = self.repo.get_customer_booking(self.db, booking_id, customer.id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    @audited("CREATE_SERVICE_BOOKING")
    def create_booking(
        self, data: BookingCreate, customer: Customer, now: Optional[datetime] = None
    ) -> ServiceBooking:
        """Create a pending booking and hold its price from the customer wallet"""
        now = now or utcnow()
        logger.info(f"📥 Creating booking for customer {customer.id}")

        model_service = self.get_bookable_model_service(data.modelServiceId)
        quote = self._price(model_service, data)
        self._validate_booking(quote, data, now)

        booking = self.repo.create_booking(
            self.db,
            customer_id=customer.id,
            model_id=model_service.model_id,
            model_service_id=model_service.id,
            status=PENDING,
            payment_status=PAYMENT_PENDING,
            **self._booking_fields(quote, data),
        )
        hold = hold_payment(self.db, customer.id, quote.price, booking.id, BOOKING_HOLD)
        booking.hold_transaction_id = hold.id
        booking.payment_status = PAYMENT_HELD
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"✅ Booking {booking.id} created ({quote.billing_type.value}, {quote.price} LAK)")

        notification_service.notify_model(
            self.db,
            booking.model_id,
            notification_service.BOOKING_CREATED,
            "New booking request",
            f"{customer.first_name} booked {model_service.service.name} for {quote.price:,} LAK",
            bookingId=booking.id,
        )
        return booking

    @audited("UPDATE_SERVICE_BOOKING")
    def update_booking(
        self, booking_id: str, data: BookingUpdate, customer: Customer, now: Optional[datetime] = None
    ) -> ServiceBooking:
        """Edit a pending booking; the price is recomputed and the hold adjusted"""
        now = now or utcnow()
        booking = self.get_customer_booking(booking_id, customer)
        if booking.status != PENDING:
            raise HTTPException(status_code=400, detail="Only pending bookings can be edited")

        model_service = self.get_bookable_model_service(booking.model_service_id)
        merged = BookingUpdate(
            startDate=data.startDate or booking.start_date,
            endDate=data.endDate or booking.end_date,
            hours=data.hours or booking.hours,
            sessionType=data.sessionType or booking.session_type,
            minutes=data.minutes or booking.minutes,
            variantId=data.variantId or booking.variant_id,
            location=data.location or booking.location,
            locationLatitude=(
                data.locationLatitude if data.locationLatitude is not None else booking.location_latitude
            ),
            locationLongitude=(
                data.locationLongitude if data.locationLongitude is not None else booking.location_longitude
            ),
            preferredAttire=data.preferredAttire or booking.preferred_attire,
        )
        if not data.endDate and booking.hours and (data.startDate or data.hours):
            # End date was derived from the old start and hours; derive it again
            merged.endDate = None
        elif not data.endDate and data.startDate and booking.end_date:
            # Moving a multi-day booking keeps its length
            merged.endDate = data.startDate + (booking.end_date - booking.start_date)

        quote = self._price(model_service, merged)
        self._validate_booking(quote, merged, now)
        fields = self._booking_fields(quote, merged)

        previous_hold = held_amount(self.db, booking)
        if quote.price != previous_hold:
            refund_payment(
                self.db, booking, previous_hold, BOOKING_REFUND, reason="Hold replaced after booking edit"
            )
            hold = hold_payment(self.db, customer.id, quote.price, booking.id, BOOKING_HOLD)
            booking.hold_transaction_id = hold.id

        for key, value in fields.items():
            setattr(booking, key, value)
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"✏️ Booking {booking.id} updated ({previous_hold} -> {quote.price} LAK)")

        notification_service.notify_model(
            self.db,
            booking.model_id,
            notification_service.BOOKING_UPDATED,
            "Booking updated",
            f"{customer.first_name} updated a booking request",
            bookingId=booking.id,
        )
        return booking

    @audited("CANCEL_SERVICE_BOOKING")
    def cancel_booking(
        self, booking_id: str, customer: Customer, now: Optional[datetime] = None
    ) -> ServiceBooking:
        now = now or utcnow()
        booking = self.get_customer_booking(booking_id, customer)
        if booking.status not in (PENDING, CONFIRMED):
            raise HTTPException(
                status_code=400, detail="Only pending or confirmed bookings can be cancelled"
            )

        if booking.start_date and booking.start_date - now < timedelta(hours=CANCELLATION_CUTOFF_HOURS):
            raise HTTPException(
                status_code=400,
                detail=f"Bookings can only be cancelled at least {CANCELLATION_CUTOFF_HOURS} hours before the start time",
            )

        if booking.payment_status == PAYMENT_HELD:
            refund_payment(self.db, booking, held_amount(self.db, booking), BOOKING_REFUND)
            booking.payment_status = PAYMENT_REFUNDED
        booking.status = CANCELLED
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"🚫 Booking {booking.id} cancelled by customer {customer.id}")

        notification_service.notify_model(
            self.db,
            booking.model_id,
            notification_service.BOOKING_CANCELLED,
            "Booking cancelled",
            f"{customer.first_name} cancelled a booking",
            bookingId=booking.id,
        )
        return booking

    @audited("DELETE_SERVICE_BOOKING")
    def delete_booking(self, booking_id: str, customer: Customer) -> None:
        """Remove a finished booking from the history"""
        booking = self.get_customer_booking(booking_id, customer)
        if booking.status == PENDING:
            raise HTTPException(
                status_code=400, detail="Pending bookings must be cancelled before they can be deleted"
            )
        if booking.status not in DELETABLE_STATUSES:
            raise HTTPException(
                status_code=400, detail="Only cancelled, rejected or completed bookings can be deleted"
            )
        self.repo.delete_booking(self.db, booking)

    def list_bookings(self, customer: Customer) -> list[tuple[ServiceBooking, bool]]:
        """Latest 20 service bookings, each paired with whether the model is a friend"""
        bookings = self.repo.list_customer_bookings(self.db, customer.id)
        contacts = self.interactions.contact_model_ids(
            self.db, customer.id, list({b.model_id for b in bookings})
        )
        return [(b, b.model_id in contacts) for b in bookings]

    def get_booked_slots(self, model_id: str, now: Optional[datetime] = None) -> list[dict]:
        """Upcoming occupied slots of a model, shown on the booking form"""
        now = now or utcnow()
        since = now.replace(hour=0, minute=0, second=0, microsecond=0)
        slots = []
        for booking in self.repo.list_booked_slots(self.db, model_id, since):
            service = booking.model_service.service if booking.model_service else None
            slots.append(
                {
                    "startDate": booking.start_date,
                    "endDate": booking.end_date,
                    "hours": booking.hours,
                    "serviceName": service.name if service else None,
                    "isDateOnly": bool(service and service.billing_type == BillingType.PER_DAY.value),
                }
            )
        return slots

    @audited("CUSTOMER_CHECK_IN")
    def customer_check_in(
        self, booking_id: str, data: CheckInRequest, customer: Customer, now: Optional[datetime] = None
    ) -> ServiceBooking:
        now = now or utcnow()
        booking = self.get_customer_booking(booking_id, customer)
        if booking.status not in (CONFIRMED, IN_PROGRESS):
            raise HTTPException(status_code=400, detail="You can only check in for confirmed bookings")
        if booking.customer_checked_in_at:
            raise HTTPException(status_code=400, detail="You have already checked in for this booking")

        ensure_check_in_window(booking, now)
        ensure_near_booking_location(booking, data.latitude, data.longitude)

        booking.customer_checked_in_at = now
        booking.customer_check_in_lat = data.latitude
        booking.customer_check_in_lng = data.longitude
        if booking.model_checked_in_at:
            booking.status = IN_PROGRESS
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"📍 Customer {customer.id} checked in for booking {booking.id}")
        return booking

    def _complete(self, booking: ServiceBooking, now: datetime) -> ServiceBooking:
        """Release the held payment to the model and close the booking (commits)"""
        if booking.payment_status == PAYMENT_PENDING_RELEASE:
            commission_rate = booking.model_service.service.commission if booking.model_service else 0
            release = release_payment(self.db, booking, booking.price, commission_rate, BOOKING_EARNING)
            booking.release_transaction_id = release.id
            booking.payment_status = PAYMENT_RELEASED

        booking.status = COMPLETED
        booking.completed_at = now
        booking.completion_token = None
        booking.completion_token_expires_at = None
        self.db.commit()
        self.db.refresh(booking)

        notification_service.notify_model(
            self.db,
            booking.model_id,
            notification_service.PAYMENT_RELEASED,
            "Payment released",
            f"Payment for booking {booking.id} has been released to your wallet",
            bookingId=booking.id,
        )
        return booking

    @audited("CUSTOMER_CONFIRM_COMPLETION")
    def confirm_completion(
        self, booking_id: str, customer: Customer, now: Optional[datetime] = None
    ) -> ServiceBooking:
        now = now or utcnow()
        booking = self.get_customer_booking(booking_id, customer)
        if booking.status != AWAITING_CONFIRMATION:
            raise HTTPException(
                status_code=400, detail="This booking is not awaiting your confirmation"
            )
        logger.info(f"✅ Customer {customer.id} confirmed completion of booking {booking.id}")
        return self._complete(booking, now)

    def _get_by_token(self, token: str, customer: Customer) -> ServiceBooking:
        booking = self.repo.get_by_completion_token(self.db, token) if token else None
        if not booking:
            raise HTTPException(status_code=404, detail="Invalid or expired confirmation code")
        if booking.customer_id != customer.id:
            raise HTTPException(status_code=403, detail="This booking does not belong to your account")
        return booking

    def get_booking_by_token(
        self, token: str, customer: Customer, now: Optional[datetime] = None
    ) -> dict:
        """Booking summary shown after scanning the completion QR code"""
        now = now or utcnow()
        booking = self._get_by_token(token, customer)
        expires_at = booking.completion_token_expires_at
        return {
            "booking": booking,
            "isExpired": bool(expires_at and expires_at < now),
            "isAlreadyCompleted": booking.status == COMPLETED,
        }

    @audited("CONFIRM_BOOKING_BY_TOKEN")
    def confirm_by_token(
        self, token: str, customer: Customer, now: Optional[datetime] = None
    ) -> ServiceBooking:
        now = now or utcnow()
        booking = self._get_by_token(token, customer)
        if booking.status == COMPLETED:
            raise HTTPException(status_code=400, detail="This booking has already been completed")
        if booking.status != AWAITING_CONFIRMATION:
            raise HTTPException(status_code=400, detail="This booking is not awaiting your confirmation")
        if booking.completion_token_expires_at and booking.completion_token_expires_at < now:
            raise HTTPException(
                status_code=400,
                detail="This confirmation code has expired. Please ask the model for a new one.",
            )
        logger.info(f"📷 Customer {customer.id} confirmed booking {booking.id} by QR code")
        return self._complete(booking, now)

    @audited("CUSTOMER_DISPUTE_BOOKING")
    def dispute_booking(
        self, booking_id: str, reason: str, customer: Customer, now: Optional[datetime] = None
    ) -> ServiceBooking:
        """Hold the payment for review instead of releasing it"""
        now = now or utcnow()
        booking = self.get_customer_booking(booking_id, customer)
        if booking.status != AWAITING_CONFIRMATION:
            raise HTTPException(status_code=400, detail="This booking cannot be disputed at this time")

        booking.status = DISPUTED
        booking.dispute_reason = reason
        booking.disputed_at = now
        self.db.commit()
        self.db.refresh(booking)
        logger.warning(f"⚠️ Booking {booking.id} disputed by customer {customer.id}")

        notification_service.notify_model(
            self.db,
            booking.model_id,
            notification_service.BOOKING_DISPUTED,
            "Booking disputed",
            "The customer reported a problem with a booking. Payment is on hold for review.",
            bookingId=booking.id,
        )
        return booking

    # ------------------------------------------------------------------
    # Model actions
    # ------------------------------------------------------------------

    def get_model_booking(self, booking_id: str, model: Model) -> ServiceBooking:
        booking = self.repo.get_model_booking(self.db, booking_id, model.id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    @audited("ACCEPT_BOOKING")
    def accept_booking(self, booking_id: str, model: Model) -> ServiceBooking:
        booking = self.get_model_booking(booking_id, model)
        if booking.status != PENDING:
            raise HTTPException(status_code=400, detail="Only pending bookings can be accepted")

        booking.status = CONFIRMED
        self.db.commit()
        self.db.refresh(booking)
        notification_service.notify_customer(
            self.db,
            booking.customer_id,
            notification_service.BOOKING_UPDATED,
            "Booking confirmed",
            f"{model.first_name} accepted your booking",
            bookingId=booking.id,
        )
        return booking

    @audited("REJECT_BOOKING")
    def reject_booking(self, booking_id: str, reason: Optional[str], model: Model) -> ServiceBooking:
        booking = self.get_model_booking(booking_id, model)
        if booking.status != PENDING:
            raise HTTPException(status_code=400, detail="Only pending bookings can be rejected")

        if booking.payment_status == PAYMENT_HELD:
            refund_payment(self.db, booking, held_amount(self.db, booking), BOOKING_REFUND)
            booking.payment_status = PAYMENT_REFUNDED
        booking.status = REJECTED
        booking.reject_reason = reason
        self.db.commit()
        self.db.refresh(booking)
        notification_service.notify_customer(
            self.db,
            booking.customer_id,
            notification_service.PAYMENT_REFUNDED,
            "Booking rejected",
            f"{model.first_name} could not accept your booking. Your payment has been refunded.",
            bookingId=booking.id,
        )
        return booking

    @audited("MODEL_CHECK_IN")
    def model_check_in(
        self, booking_id: str, data: CheckInRequest, model: Model, now: Optional[datetime] = None
    ) -> ServiceBooking:
        now = now or utcnow()
        booking = self.get_model_booking(booking_id, model)
        if booking.status not in (CONFIRMED, IN_PROGRESS):
            raise HTTPException(status_code=400, detail="You can only check in for confirmed bookings")
        if booking.model_checked_in_at:
            raise HTTPException(status_code=400, detail="You have already checked in for this booking")

        ensure_check_in_window(booking, now)
        ensure_near_booking_location(booking, data.latitude, data.longitude)

        booking.model_checked_in_at = now
        booking.model_check_in_lat = data.latitude
        booking.model_check_in_lng = data.longitude
        if booking.customer_checked_in_at:
            booking.status = IN_PROGRESS
        self.db.commit()
        self.db.refresh(booking)
        return booking

    @audited("COMPLETE_BOOKING")
    def complete_booking(self, booking_id: str, model: Model, now: Optional[datetime] = None) -> ServiceBooking:
        """Model marks the booking done; the customer confirms by QR code or it auto-releases"""
        now = now or utcnow()
        booking = self.get_model_booking(booking_id, model)
        if booking.status not in (CONFIRMED, IN_PROGRESS):
            raise HTTPException(
                status_code=400, detail="Only confirmed or in-progress bookings can be completed"
            )
        if booking.start_date and now < booking.start_date:
            raise HTTPException(status_code=400, detail="Cannot complete a booking before it starts")

        booking.status = AWAITING_CONFIRMATION
        if booking.payment_status == PAYMENT_HELD:
            booking.payment_status = PAYMENT_PENDING_RELEASE
        booking.completion_token = generate_completion_token()
        booking.completion_token_expires_at = now + timedelta(hours=COMPLETION_TOKEN_HOURS)
        booking.auto_release_at = now + timedelta(hours=AUTO_RELEASE_HOURS)
        self.db.commit()
        self.db.refresh(booking)

        notification_service.notify_customer(
            self.db,
            booking.customer_id,
            notification_service.BOOKING_COMPLETED,
            "Please confirm your booking",
            f"{model.first_name} marked your booking as complete. "
            f"Payment is released automatically in {AUTO_RELEASE_HOURS} hours.",
            bookingId=booking.id,
        )
        return booking

    # ------------------------------------------------------------------
    # Scheduled jobs
    # ------------------------------------------------------------------

    def process_auto_release(self, now: Optional[datetime] = None) -> dict:
        """
        Complete every awaiting booking whose auto-release time has passed.
        A failure on one booking is recorded and does not stop the batch.
        """
        now = now or utcnow()
        due = self.repo.list_auto_release_due(self.db, now)
        summary = {"processed": len(due), "released": 0, "failed": 0, "results": []}

        for booking in due:
            booking_id = booking.id
            try:
                self._complete(booking, now)
                summary["released"] += 1
                summary["results"].append({"bookingId": booking_id, "success": True})
                create_audit_log(
                    self.db,
                    "AUTO_RELEASE_PAYMENT",
                    f"Payment for booking {booking_id} auto-released",
                    STATUS_SUCCESS,
                    model_id=booking.model_id,
                )
            except Exception as e:
                self.db.rollback()
                summary["failed"] += 1
                summary["results"].append({"bookingId": booking_id, "success": False, "error": str(e)})
                logger.error(f"❌ Auto-release failed for booking {booking_id}: {e}")
                create_audit_log(
                    self.db, "AUTO_RELEASE_PAYMENT", f"Auto-release failed for {booking_id}: {e}", STATUS_FAILED
                )

        if due:
            logger.info(f"💸 Auto-release: {summary['released']} released, {summary['failed']} failed")
        return summary
