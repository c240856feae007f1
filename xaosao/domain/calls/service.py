"""
Call service - per-minute audio/video calls billed from a wallet hold

    scheduled / ready_to_call -> ringing (customer initiates)
    ringing -> connecting (model accepts) -> in_call (start) -> completed (end)
    ringing -> cancelled (model declines) | missed (ring timeout)
    ringing / connecting -> cancelled (either party hangs up before connecting)

When a call is created the lesser of the wallet balance and CALL_MAX_HOLD_MINUTES
worth of minutes is held. Ending a connected call releases the billed minutes to
the model and refunds the unused part of the hold.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import ROLE_CUSTOMER, ROLE_MODEL, Actor
from ...config import CALL_HEARTBEAT_TIMEOUT_SECONDS, CALL_MAX_HOLD_MINUTES, CALL_RING_TIMEOUT_SECONDS
from ...models import Customer, Model, ServiceBooking
from ...security_utils import generate_call_room_id, generate_peer_id
from ...services import notification_service
from ...services.audit_service import STATUS_FAILED, STATUS_SUCCESS, audited, create_audit_log
from ...shared.pagination import build_pagination, page_offset
from ...shared.timeutils import utcnow
from ..bookings.repository import BookingRepository
from ..bookings.service import (
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    IN_PROGRESS,
    PAYMENT_HELD,
    PAYMENT_REFUNDED,
    PAYMENT_RELEASED,
    REJECTED,
)
from ..pricing import BillingType
from ..pricing.calculator import ONLINE_LOCATION, minute_rate_for
from ..wallet.escrow import (
    CALL_EARNING,
    CALL_HOLD,
    CALL_REFUND,
    CALL_REFUND_UNUSED,
    held_amount,
    hold_payment,
    refund_payment,
    release_payment,
)
from ..wallet.repository import WalletRepository
from .repository import CallRepository
from .schemas import CallBookingCreate

logger = logging.getLogger(__name__)

# Call statuses
CALL_SCHEDULED = "scheduled"
CALL_READY = "ready_to_call"
CALL_RINGING = "ringing"
CALL_CONNECTING = "connecting"
CALL_IN_CALL = "in_call"
CALL_COMPLETED = "completed"
CALL_MISSED = "missed"
CALL_CANCELLED = "cancelled"

ENDED_BY_SYSTEM = "system"


def elapsed_seconds(booking: ServiceBooking, until: datetime) -> int:
    if not booking.call_started_at:
        return 0
    return max(0, int((until - booking.call_started_at).total_seconds()))


def billed_minutes(seconds: int) -> int:
    """Every started minute is billed, with a one minute minimum"""
    return max(1, math.ceil(seconds / 60))


def call_state(booking: ServiceBooking, hold: int, now: datetime) -> dict:
    """Live figures shown on the call screen"""
    if booking.call_status in (CALL_MISSED, CALL_CANCELLED):
        # Hold went back to the wallet when the call closed
        hold = 0
    rate = booking.call_minute_rate or 0
    duration = 0
    cost = 0
    remaining = hold
    ring_seconds_left = None

    if booking.call_status == CALL_IN_CALL:
        duration = elapsed_seconds(booking, now)
        cost = min(hold, math.ceil(duration / 60) * rate)
        remaining = max(0, hold - cost)
    elif booking.call_status == CALL_COMPLETED:
        duration = elapsed_seconds(booking, booking.call_ended_at or now)
        cost = booking.price
        remaining = max(0, hold - cost)
    elif booking.call_status == CALL_RINGING and booking.call_ring_started_at:
        waited = (now - booking.call_ring_started_at).total_seconds()
        ring_seconds_left = max(0, math.ceil(CALL_RING_TIMEOUT_SECONDS - waited))

    return {
        "minuteRate": rate,
        "holdAmount": hold,
        "maxMinutes": hold // rate if rate else 0,
        "currentDuration": duration,
        "currentCost": cost,
        "remainingBalance": remaining,
        "ringSecondsLeft": ring_seconds_left,
    }


class CallService:
    """Service layer for call booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CallRepository()
        self.bookings = BookingRepository()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_call(self, booking_id: str, actor: Actor) -> ServiceBooking:
        """Call booking the actor takes part in"""
        booking = self.repo.get_call(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Call booking not found")

        owner_id = booking.customer_id if actor.role == ROLE_CUSTOMER else booking.model_id
        if actor.role not in (ROLE_CUSTOMER, ROLE_MODEL) or owner_id != actor.id:
            raise HTTPException(status_code=403, detail="You are not a participant of this call")
        return booking

    def _require_status(self, booking: ServiceBooking, *statuses: str) -> None:
        if booking.call_status not in statuses:
            raise HTTPException(
                status_code=400,
                detail=f"This action is not allowed while the call is {booking.call_status}",
            )

    def describe(self, booking: ServiceBooking, now: Optional[datetime] = None) -> dict:
        return call_state(booking, held_amount(self.db, booking), now or utcnow())

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    @audited("CREATE_CALL_BOOKING")
    def create_call_booking(
        self, data: CallBookingCreate, customer: Customer, now: Optional[datetime] = None
    ) -> ServiceBooking:
        now = now or utcnow()
        model_service = self.bookings.get_model_service(self.db, data.modelServiceId)
        if not model_service or model_service.service is None:
            raise HTTPException(status_code=404, detail="Call service not found")
        if model_service.service.billing_type != BillingType.PER_MINUTE.value:
            raise HTTPException(status_code=400, detail="This service does not support calls")
        if model_service.status != "active" or not model_service.is_available:
            raise HTTPException(status_code=400, detail="This model is not taking calls right now")

        rate = minute_rate_for(model_service.service, model_service)
        if rate <= 0:
            raise HTTPException(status_code=400, detail="Call rate is not configured for this model")

        if data.scheduledTime and data.scheduledTime < now:
            raise HTTPException(status_code=400, detail="Scheduled time must be in the future")

        wallet = WalletRepository.get_customer_wallet(self.db, customer.id)
        balance = wallet.total_balance if wallet else 0
        if balance < rate:
            raise HTTPException(
                status_code=400,
                detail=f"Insufficient balance! You need at least {rate:,} LAK (1 minute) for this call.",
            )
        hold_amount = min(balance, rate * CALL_MAX_HOLD_MINUTES)

        status = CALL_SCHEDULED if data.scheduledTime else CALL_READY
        booking = self.bookings.create_booking(
            self.db,
            customer_id=customer.id,
            model_id=model_service.model_id,
            model_service_id=model_service.id,
            price=hold_amount,
            location=ONLINE_LOCATION,
            start_date=data.scheduledTime or now,
            status=status,
            payment_status="pending",
            call_type=data.callType,
            call_status=status,
            call_minute_rate=rate,
            call_room_id=generate_call_room_id(),
            scheduled_call_time=data.scheduledTime,
            customer_peer_id=generate_peer_id("cust"),
        )
        hold = hold_payment(
            self.db, customer.id, hold_amount, booking.id, CALL_HOLD, reason="Payment held for call"
        )
        booking.hold_transaction_id = hold.id
        booking.payment_status = PAYMENT_HELD
        self.db.commit()
        self.db.refresh(booking)
        logger.info(
            f"📞 Call booking {booking.id} created ({data.callType}, {rate} LAK/min, hold {hold_amount} LAK)"
        )
        return booking

    def list_calls(self, customer: Customer, page: int = 1, limit: int = 20) -> dict:
        items, total = self.repo.list_customer_calls(
            self.db, customer.id, offset=page_offset(page, limit), limit=limit
        )
        return {"calls": items, "pagination": build_pagination(page, limit, total)}

    # ------------------------------------------------------------------
    # Signalling
    # ------------------------------------------------------------------

    def get_call_status(self, booking_id: str, actor: Actor, now: Optional[datetime] = None) -> ServiceBooking:
        """Polled by both parties; an unanswered call times out here"""
        now = now or utcnow()
        booking = self.get_call(booking_id, actor)
        if booking.call_status == CALL_RINGING and self._ring_expired(booking, now):
            self._mark_missed(booking, now)
        return booking

    @audited("INITIATE_CALL")
    def initiate_call(self, booking_id: str, actor: Actor, now: Optional[datetime] = None) -> ServiceBooking:
        now = now or utcnow()
        booking = self.get_call(booking_id, actor)
        if actor.role != ROLE_CUSTOMER:
            raise HTTPException(status_code=403, detail="Only the customer can start ringing")
        self._require_status(booking, CALL_READY, CALL_SCHEDULED)

        booking.call_status = CALL_RINGING
        booking.call_ring_started_at = now
        booking.model_peer_id = booking.model_peer_id or generate_peer_id("model")
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"🔔 Call {booking.id} ringing model {booking.model_id}")

        notification_service.notify_model(
            self.db,
            booking.model_id,
            notification_service.INCOMING_CALL,
            "Incoming call",
            f"Incoming {booking.call_type} call",
            bookingId=booking.id,
            roomId=booking.call_room_id,
            callType=booking.call_type,
        )
        return booking

    @audited("ACCEPT_CALL")
    def accept_call(self, booking_id: str, actor: Actor) -> ServiceBooking:
        booking = self.get_call(booking_id, actor)
        if actor.role != ROLE_MODEL:
            raise HTTPException(status_code=403, detail="Only the model can accept a call")
        self._require_status(booking, CALL_RINGING)

        booking.call_status = CALL_CONNECTING
        booking.status = CONFIRMED
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"✅ Call {booking.id} accepted")
        return booking

    @audited("DECLINE_CALL")
    def decline_call(self, booking_id: str, actor: Actor, reason: Optional[str] = None) -> ServiceBooking:
        booking = self.get_call(booking_id, actor)
        if actor.role != ROLE_MODEL:
            raise HTTPException(status_code=403, detail="Only the model can decline a call")
        self._require_status(booking, CALL_RINGING)

        booking.reject_reason = reason or "Call declined"
        self._close_unconnected(booking, CALL_CANCELLED, REJECTED, utcnow(), ended_by=ROLE_MODEL)
        notification_service.notify_customer(
            self.db,
            booking.customer_id,
            notification_service.CALL_DECLINED,
            "Call declined",
            "The model declined your call. Your payment has been refunded.",
            bookingId=booking.id,
        )
        return booking

    @audited("CALL_MISSED")
    def mark_missed(self, booking_id: str, actor: Actor, now: Optional[datetime] = None) -> ServiceBooking:
        now = now or utcnow()
        booking = self.get_call(booking_id, actor)
        self._require_status(booking, CALL_RINGING)
        if not self._ring_expired(booking, now):
            raise HTTPException(status_code=400, detail="The call is still ringing")
        return self._mark_missed(booking, now)

    @audited("START_CALL")
    def start_call(self, booking_id: str, actor: Actor, now: Optional[datetime] = None) -> ServiceBooking:
        now = now or utcnow()
        booking = self.get_call(booking_id, actor)
        if booking.call_status == CALL_IN_CALL:
            return booking
        self._require_status(booking, CALL_CONNECTING)

        booking.call_status = CALL_IN_CALL
        booking.status = IN_PROGRESS
        booking.call_started_at = now
        booking.call_last_heartbeat = now
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"🎙️ Call {booking.id} connected")
        return booking

    def heartbeat(self, booking_id: str, actor: Actor, now: Optional[datetime] = None) -> dict:
        """Keep-alive sent during the call; ends the call once the hold is used up"""
        now = now or utcnow()
        booking = self.get_call(booking_id, actor)
        self._require_status(booking, CALL_IN_CALL)

        hold = held_amount(self.db, booking)
        rate = booking.call_minute_rate or 0
        duration = elapsed_seconds(booking, now)
        if rate and duration >= (hold // rate) * 60:
            logger.info(f"⏱️ Call {booking.id} reached its prepaid limit")
            self._finish(booking, ENDED_BY_SYSTEM, now)
        else:
            booking.call_last_heartbeat = now
            self.db.commit()

        state = call_state(booking, hold, now)
        return {
            "callStatus": booking.call_status,
            "durationSeconds": duration,
            "currentCost": state["currentCost"],
            "remainingBalance": max(0, hold - math.ceil(duration / 60) * rate),
        }

    @audited("END_CALL")
    def end_call(self, booking_id: str, actor: Actor, now: Optional[datetime] = None) -> ServiceBooking:
        now = now or utcnow()
        booking = self.get_call(booking_id, actor)
        self._require_status(booking, CALL_IN_CALL, CALL_RINGING, CALL_CONNECTING)
        return self._finish(booking, actor.role, now)

    def register_peer(self, booking_id: str, actor: Actor, peer_id: str) -> ServiceBooking:
        booking = self.get_call(booking_id, actor)
        if booking.call_status in (CALL_COMPLETED, CALL_MISSED, CALL_CANCELLED):
            raise HTTPException(status_code=400, detail="This call has already ended")

        if actor.role == ROLE_CUSTOMER:
            booking.customer_peer_id = peer_id
        else:
            booking.model_peer_id = peer_id
        self.db.commit()
        self.db.refresh(booking)
        logger.debug(f"🔗 {actor.role} peer {peer_id} registered for call {booking.id}")
        return booking

    # ------------------------------------------------------------------
    # Transitions (commit)
    # ------------------------------------------------------------------

    def _ring_expired(self, booking: ServiceBooking, now: datetime) -> bool:
        if not booking.call_ring_started_at:
            return False
        return now - booking.call_ring_started_at >= timedelta(seconds=CALL_RING_TIMEOUT_SECONDS)

    def _close_unconnected(
        self, booking: ServiceBooking, call_status: str, status: str, now: datetime, ended_by: str
    ) -> ServiceBooking:
        """Close a call that never connected and refund the whole hold"""
        if booking.payment_status == PAYMENT_HELD:
            refund_payment(self.db, booking, held_amount(self.db, booking), CALL_REFUND)
            booking.payment_status = PAYMENT_REFUNDED
        booking.call_status = call_status
        booking.status = status
        booking.call_ended_at = now
        booking.call_ended_by = ended_by
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"↩️ Call {booking.id} {call_status} before connecting, hold refunded")
        return booking

    def _mark_missed(self, booking: ServiceBooking, now: datetime) -> ServiceBooking:
        self._close_unconnected(booking, CALL_MISSED, CANCELLED, now, ended_by=ENDED_BY_SYSTEM)
        notification_service.notify_model(
            self.db,
            booking.model_id,
            notification_service.CALL_MISSED,
            "Missed call",
            f"You missed a {booking.call_type} call",
            bookingId=booking.id,
        )
        return booking

    def _finish(self, booking: ServiceBooking, ended_by: str, end_time: datetime) -> ServiceBooking:
        """Bill a connected call up to end_time, or cancel one that never connected"""
        if booking.call_status in (CALL_RINGING, CALL_CONNECTING):
            return self._close_unconnected(booking, CALL_CANCELLED, CANCELLED, end_time, ended_by)

        hold = held_amount(self.db, booking)
        rate = booking.call_minute_rate or 0
        minutes = billed_minutes(elapsed_seconds(booking, end_time))
        cost = min(minutes * rate, hold)

        commission_rate = booking.model_service.service.commission if booking.model_service else 0
        release = release_payment(self.db, booking, cost, commission_rate, CALL_EARNING)
        refund_payment(
            self.db,
            booking,
            hold - cost,
            CALL_REFUND_UNUSED,
            close_hold=False,
            reason=f"Unused call balance for booking {booking.id}",
        )

        booking.release_transaction_id = release.id
        booking.payment_status = PAYMENT_RELEASED
        booking.price = cost
        booking.minutes = minutes
        booking.call_status = CALL_COMPLETED
        booking.status = COMPLETED
        booking.call_ended_at = end_time
        booking.call_ended_by = ended_by
        booking.completed_at = end_time
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"📴 Call {booking.id} ended by {ended_by}: {minutes} min, {cost} LAK")

        notification_service.notify_model(
            self.db,
            booking.model_id,
            notification_service.CALL_ENDED,
            "Call ended",
            f"Call ended after {minutes} minute(s). Earnings have been added to your wallet.",
            bookingId=booking.id,
        )
        return booking

    # ------------------------------------------------------------------
    # Scheduled jobs
    # ------------------------------------------------------------------

    def sweep_stale_calls(self, now: Optional[datetime] = None) -> dict:
        """
        Time out unanswered calls and end connected calls whose clients stopped
        sending heartbeats. Abandoned calls are billed up to the last heartbeat.
        """
        now = now or utcnow()
        summary = {"missed": 0, "ended": 0, "failed": 0}

        ring_cutoff = now - timedelta(seconds=CALL_RING_TIMEOUT_SECONDS)
        for booking in self.repo.list_expired_ringing(self.db, ring_cutoff):
            booking_id = booking.id
            try:
                self._mark_missed(booking, now)
                summary["missed"] += 1
            except Exception as e:
                self.db.rollback()
                summary["failed"] += 1
                logger.error(f"❌ Could not time out call {booking_id}: {e}")

        heartbeat_cutoff = now - timedelta(seconds=CALL_HEARTBEAT_TIMEOUT_SECONDS)
        for booking in self.repo.list_stale_in_call(self.db, heartbeat_cutoff):
            booking_id = booking.id
            try:
                self._finish(booking, ENDED_BY_SYSTEM, booking.call_last_heartbeat or booking.call_started_at or now)
                summary["ended"] += 1
                create_audit_log(
                    self.db,
                    "END_STALE_CALL",
                    f"Call {booking_id} ended after heartbeats stopped",
                    STATUS_SUCCESS,
                    customer_id=booking.customer_id,
                    model_id=booking.model_id,
                )
            except Exception as e:
                self.db.rollback()
                summary["failed"] += 1
                logger.error(f"❌ Could not end stale call {booking_id}: {e}")
                create_audit_log(self.db, "END_STALE_CALL", f"Failed to end call {booking_id}: {e}", STATUS_FAILED)

        if summary["missed"] or summary["ended"] or summary["failed"]:
            logger.info(
                f"🧹 Stale calls: {summary['missed']} missed, {summary['ended']} ended, {summary['failed']} failed"
            )
        return summary
