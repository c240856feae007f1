"""
Tests for per-minute call bookings: wallet hold, signalling states, billing on
end, refunds for calls that never connect and the stale call sweep.
"""

from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from tests.conftest import customer_headers, model_headers
from xaosao.auth import ROLE_CUSTOMER, ROLE_MODEL, Actor
from xaosao.domain.bookings.service import BookingService
from xaosao.domain.calls.schemas import CallBookingCreate
from xaosao.domain.calls.service import (
    CALL_CANCELLED,
    CALL_COMPLETED,
    CALL_CONNECTING,
    CALL_IN_CALL,
    CALL_MISSED,
    CALL_READY,
    CALL_RINGING,
    CALL_SCHEDULED,
    ENDED_BY_SYSTEM,
    CallService,
    billed_minutes,
)
from xaosao.domain.wallet.escrow import CALL_REFUND_UNUSED
from xaosao.domain.wallet.repository import WalletRepository
from xaosao.models import Notification, TransactionHistory

NOW = datetime(2030, 3, 1, 20, 0)
RATE = 5000


@pytest.fixture
def call_setup(make_customer, make_model, make_service, make_model_service):
    customer = make_customer(balance=100000)
    model = make_model()
    service = make_service(name="callService", billing_type="per_minute", minute_rate=RATE, commission=20)
    model_service = make_model_service(model, service)
    return customer, model, model_service


def actors(customer, model):
    return Actor(role=ROLE_CUSTOMER, id=customer.id), Actor(role=ROLE_MODEL, id=model.id)


def balance_of(db_session, customer):
    return WalletRepository.get_customer_wallet(db_session, customer.id).total_balance


def connected_call(db_session, call_setup, started_at=NOW):
    """Create, ring, accept and start a call; returns (service, booking, customer_actor, model_actor)"""
    customer, model, model_service = call_setup
    as_customer, as_model = actors(customer, model)
    service = CallService(db_session)
    booking = service.create_call_booking(CallBookingCreate(modelServiceId=model_service.id), customer, now=NOW)
    service.initiate_call(booking.id, as_customer, now=NOW)
    service.accept_call(booking.id, as_model)
    service.start_call(booking.id, as_customer, now=started_at)
    return service, booking, as_customer, as_model


class TestBilledMinutes:
    @pytest.mark.parametrize("seconds,minutes", [(0, 1), (1, 1), (60, 1), (61, 2), (150, 3)])
    def test_every_started_minute_counts(self, seconds, minutes):
        assert billed_minutes(seconds) == minutes


class TestCreateCallBooking:
    def test_holds_whole_balance_up_to_limit(self, db_session, call_setup):
        customer, _, model_service = call_setup
        service = CallService(db_session)
        booking = service.create_call_booking(
            CallBookingCreate(modelServiceId=model_service.id, callType="audio"), customer, now=NOW
        )

        assert booking.call_status == CALL_READY
        assert booking.call_minute_rate == RATE
        assert booking.location == "Online"
        assert booking.call_room_id.startswith("call_")
        assert balance_of(db_session, customer) == 0

        state = service.describe(booking, NOW)
        assert state["holdAmount"] == 100000
        assert state["maxMinutes"] == 20

    def test_hold_capped_at_two_hours(self, db_session, make_customer, call_setup):
        _, _, model_service = call_setup
        rich = make_customer(balance=1000000)
        CallService(db_session).create_call_booking(
            CallBookingCreate(modelServiceId=model_service.id), rich, now=NOW
        )
        assert balance_of(db_session, rich) == 1000000 - RATE * 120

    def test_scheduled_call(self, db_session, call_setup):
        customer, _, model_service = call_setup
        booking = CallService(db_session).create_call_booking(
            CallBookingCreate(modelServiceId=model_service.id, scheduledTime=NOW + timedelta(hours=2)),
            customer,
            now=NOW,
        )
        assert booking.call_status == CALL_SCHEDULED
        assert booking.scheduled_call_time == NOW + timedelta(hours=2)

    def test_insufficient_balance(self, db_session, make_customer, call_setup):
        _, _, model_service = call_setup
        poor = make_customer(balance=3000)
        with pytest.raises(HTTPException) as exc_info:
            CallService(db_session).create_call_booking(
                CallBookingCreate(modelServiceId=model_service.id), poor, now=NOW
            )
        assert exc_info.value.detail == "Insufficient balance! You need at least 5,000 LAK (1 minute) for this call."

    def test_service_must_be_per_minute(self, db_session, make_customer, make_model, make_service, make_model_service):
        offer = make_model_service(make_model(), make_service(billing_type="per_hour", hourly_rate=50000))
        with pytest.raises(HTTPException) as exc_info:
            CallService(db_session).create_call_booking(
                CallBookingCreate(modelServiceId=offer.id), make_customer(balance=100000), now=NOW
            )
        assert exc_info.value.status_code == 400

    def test_invalid_call_type(self, call_setup):
        _, _, model_service = call_setup
        with pytest.raises(ValueError):
            CallBookingCreate(modelServiceId=model_service.id, callType="hologram")


class TestCallFlow:
    def test_end_bills_started_minutes_and_refunds_rest(self, db_session, call_setup):
        customer, model, _ = call_setup
        service, booking, as_customer, _ = connected_call(db_session, call_setup)

        ended = service.end_call(booking.id, as_customer, now=NOW + timedelta(seconds=150))
        assert ended.call_status == CALL_COMPLETED
        assert ended.minutes == 3
        assert ended.price == 15000
        assert ended.call_ended_by == ROLE_CUSTOMER
        assert balance_of(db_session, customer) == 85000
        assert WalletRepository.get_model_wallet(db_session, model.id).total_balance == 12000

        unused = db_session.query(TransactionHistory).filter(TransactionHistory.identifier == CALL_REFUND_UNUSED).one()
        assert unused.amount == 85000

    def test_only_customer_initiates(self, db_session, call_setup):
        customer, model, model_service = call_setup
        _, as_model = actors(customer, model)
        service = CallService(db_session)
        booking = service.create_call_booking(CallBookingCreate(modelServiceId=model_service.id), customer, now=NOW)
        with pytest.raises(HTTPException) as exc_info:
            service.initiate_call(booking.id, as_model, now=NOW)
        assert exc_info.value.status_code == 403

    def test_incoming_call_notifies_model(self, db_session, call_setup):
        customer, model, model_service = call_setup
        as_customer, _ = actors(customer, model)
        service = CallService(db_session)
        booking = service.create_call_booking(CallBookingCreate(modelServiceId=model_service.id), customer, now=NOW)
        service.initiate_call(booking.id, as_customer, now=NOW)

        notification = db_session.query(Notification).filter(Notification.model_id == model.id).one()
        assert notification.type == "incoming_call"
        assert notification.data["roomId"] == booking.call_room_id

    def test_decline_refunds_everything(self, db_session, call_setup):
        customer, model, model_service = call_setup
        as_customer, as_model = actors(customer, model)
        service = CallService(db_session)
        booking = service.create_call_booking(CallBookingCreate(modelServiceId=model_service.id), customer, now=NOW)
        service.initiate_call(booking.id, as_customer, now=NOW)

        declined = service.decline_call(booking.id, as_model, "Busy")
        assert declined.call_status == CALL_CANCELLED
        assert declined.reject_reason == "Busy"
        assert balance_of(db_session, customer) == 100000

        state = service.describe(declined, NOW)
        assert state["holdAmount"] == 0
        assert state["remainingBalance"] == 0

    def test_hang_up_while_connecting_refunds(self, db_session, call_setup):
        customer, model, model_service = call_setup
        as_customer, as_model = actors(customer, model)
        service = CallService(db_session)
        booking = service.create_call_booking(CallBookingCreate(modelServiceId=model_service.id), customer, now=NOW)
        service.initiate_call(booking.id, as_customer, now=NOW)
        service.accept_call(booking.id, as_model)
        assert booking.call_status == CALL_CONNECTING

        ended = service.end_call(booking.id, as_customer, now=NOW + timedelta(seconds=5))
        assert ended.call_status == CALL_CANCELLED
        assert balance_of(db_session, customer) == 100000

    def test_unanswered_call_becomes_missed_on_poll(self, db_session, call_setup):
        customer, model, model_service = call_setup
        as_customer, _ = actors(customer, model)
        service = CallService(db_session)
        booking = service.create_call_booking(CallBookingCreate(modelServiceId=model_service.id), customer, now=NOW)
        service.initiate_call(booking.id, as_customer, now=NOW)

        still_ringing = service.get_call_status(booking.id, as_customer, now=NOW + timedelta(seconds=30))
        assert still_ringing.call_status == CALL_RINGING
        assert service.describe(still_ringing, NOW + timedelta(seconds=30))["ringSecondsLeft"] == 30

        missed = service.get_call_status(booking.id, as_customer, now=NOW + timedelta(seconds=61))
        assert missed.call_status == CALL_MISSED
        assert missed.call_ended_by == ENDED_BY_SYSTEM
        assert balance_of(db_session, customer) == 100000
        assert service.describe(missed, NOW + timedelta(seconds=61))["remainingBalance"] == 0

    def test_mark_missed_waits_for_timeout(self, db_session, call_setup):
        customer, model, model_service = call_setup
        as_customer, _ = actors(customer, model)
        service = CallService(db_session)
        booking = service.create_call_booking(CallBookingCreate(modelServiceId=model_service.id), customer, now=NOW)
        service.initiate_call(booking.id, as_customer, now=NOW)

        with pytest.raises(HTTPException) as exc_info:
            service.mark_missed(booking.id, as_customer, now=NOW + timedelta(seconds=10))
        assert exc_info.value.detail == "The call is still ringing"
        assert service.mark_missed(booking.id, as_customer, now=NOW + timedelta(seconds=60)).call_status == CALL_MISSED

    def test_start_is_idempotent(self, db_session, call_setup):
        service, booking, as_customer, as_model = connected_call(db_session, call_setup)
        again = service.start_call(booking.id, as_model, now=NOW + timedelta(seconds=20))
        assert again.call_started_at == NOW

    def test_outsider_gets_forbidden(self, db_session, make_customer, call_setup):
        service, booking, _, _ = connected_call(db_session, call_setup)
        outsider = Actor(role=ROLE_CUSTOMER, id=make_customer().id)
        with pytest.raises(HTTPException) as exc_info:
            service.get_call_status(booking.id, outsider)
        assert exc_info.value.status_code == 403


class TestHeartbeat:
    def test_reports_running_cost(self, db_session, call_setup):
        service, booking, as_customer, _ = connected_call(db_session, call_setup)
        beat = service.heartbeat(booking.id, as_customer, now=NOW + timedelta(seconds=90))
        assert beat["callStatus"] == CALL_IN_CALL
        assert beat["durationSeconds"] == 90
        assert beat["currentCost"] == 10000
        assert beat["remainingBalance"] == 90000
        assert booking.call_last_heartbeat == NOW + timedelta(seconds=90)

    def test_ends_call_when_hold_is_used_up(self, db_session, call_setup):
        customer, model, _ = call_setup
        service, booking, as_customer, _ = connected_call(db_session, call_setup)

        beat = service.heartbeat(booking.id, as_customer, now=NOW + timedelta(minutes=20))
        assert beat["callStatus"] == CALL_COMPLETED
        assert beat["remainingBalance"] == 0
        assert booking.call_ended_by == ENDED_BY_SYSTEM
        assert booking.price == 100000
        assert balance_of(db_session, customer) == 0
        assert WalletRepository.get_model_wallet(db_session, model.id).total_balance == 80000

    def test_requires_active_call(self, db_session, call_setup):
        customer, model, model_service = call_setup
        as_customer, _ = actors(customer, model)
        service = CallService(db_session)
        booking = service.create_call_booking(CallBookingCreate(modelServiceId=model_service.id), customer, now=NOW)
        with pytest.raises(HTTPException):
            service.heartbeat(booking.id, as_customer, now=NOW)


class TestSweep:
    def test_times_out_ringing_and_ends_abandoned_calls(
        self, db_session, make_customer, make_model, call_setup
    ):
        customer, model, model_service = call_setup
        service, connected, as_customer, _ = connected_call(db_session, call_setup)
        service.heartbeat(connected.id, as_customer, now=NOW + timedelta(seconds=60))

        other = make_customer(balance=50000)
        other_actor = Actor(role=ROLE_CUSTOMER, id=other.id)
        ringing = service.create_call_booking(CallBookingCreate(modelServiceId=model_service.id), other, now=NOW)
        service.initiate_call(ringing.id, other_actor, now=NOW)

        summary = service.sweep_stale_calls(now=NOW + timedelta(seconds=200))
        assert summary == {"missed": 1, "ended": 1, "failed": 0}

        assert ringing.call_status == CALL_MISSED
        assert balance_of(db_session, other) == 50000

        # Billed up to the last heartbeat only
        assert connected.call_status == CALL_COMPLETED
        assert connected.minutes == 1
        assert connected.price == RATE
        assert balance_of(db_session, customer) == 100000 - RATE

    def test_nothing_to_do(self, db_session, call_setup):
        assert CallService(db_session).sweep_stale_calls(now=NOW) == {"missed": 0, "ended": 0, "failed": 0}


class TestCallsStayOutOfServiceBookings:
    def accepted_call(self, db_session, call_setup):
        customer, model, model_service = call_setup
        as_customer, as_model = actors(customer, model)
        service = CallService(db_session)
        booking = service.create_call_booking(CallBookingCreate(modelServiceId=model_service.id), customer, now=NOW)
        service.initiate_call(booking.id, as_customer, now=NOW)
        service.accept_call(booking.id, as_model)
        return booking

    def test_model_cannot_complete_call_as_service_booking(self, client, db_session, call_setup):
        customer, model, _ = call_setup
        booking = self.accepted_call(db_session, call_setup)

        response = client.post(f"/model/bookings/{booking.id}/complete", headers=model_headers(model))
        assert response.status_code == 404
        for action in ("accept", "reject", "check-in"):
            assert client.post(f"/model/bookings/{booking.id}/{action}", headers=model_headers(model)).status_code in (
                404,
                422,
            )

        db_session.refresh(booking)
        assert booking.call_status == CALL_CONNECTING
        assert booking.payment_status == "held"
        assert WalletRepository.get_model_wallet(db_session, model.id) is None

    def test_customer_booking_endpoints_do_not_see_calls(self, client, db_session, call_setup):
        customer, _, _ = call_setup
        booking = self.accepted_call(db_session, call_setup)
        headers = customer_headers(customer)

        assert client.get(f"/bookings/{booking.id}", headers=headers).status_code == 404
        assert client.post(f"/bookings/{booking.id}/cancel", headers=headers).status_code == 404
        assert client.post(f"/bookings/{booking.id}/confirm", headers=headers).status_code == 404
        assert client.delete(f"/bookings/{booking.id}", headers=headers).status_code == 404

    def test_auto_release_skips_call_bookings(self, db_session, call_setup):
        _, model, _ = call_setup
        booking = self.accepted_call(db_session, call_setup)
        booking.status = "awaiting_confirmation"
        booking.payment_status = "pending_release"
        booking.auto_release_at = NOW - timedelta(hours=1)
        db_session.commit()

        summary = BookingService(db_session).process_auto_release(now=NOW)
        assert summary["processed"] == 0
        assert WalletRepository.get_model_wallet(db_session, model.id) is None


class TestCallApi:
    def test_booking_and_polling(self, client, call_setup):
        customer, model, model_service = call_setup
        response = client.post(
            "/calls", json={"modelServiceId": model_service.id, "callType": "video"}, headers=customer_headers(customer)
        )
        assert response.status_code == 200
        call = response.json()["booking"]
        assert call["callStatus"] == CALL_READY
        assert call["minuteRate"] == RATE
        assert call["maxMinutes"] == 20

        polled = client.get(f"/calls/{call['id']}", headers=model_headers(model))
        assert polled.status_code == 200
        assert polled.json()["roomId"] == call["roomId"]

        history = client.get("/calls", headers=customer_headers(customer)).json()
        assert history["pagination"]["totalCount"] == 1

    def test_register_peer(self, client, call_setup):
        customer, model, model_service = call_setup
        call = client.post(
            "/calls", json={"modelServiceId": model_service.id}, headers=customer_headers(customer)
        ).json()["booking"]

        response = client.post(
            f"/calls/{call['id']}/register-peer", json={"peerId": "model_abc123"}, headers=model_headers(model)
        )
        assert response.status_code == 200
        assert response.json()["modelPeerId"] == "model_abc123"

    def test_invalid_peer_id(self, client, call_setup):
        customer, _, model_service = call_setup
        call = client.post(
            "/calls", json={"modelServiceId": model_service.id}, headers=customer_headers(customer)
        ).json()["booking"]
        response = client.post(
            f"/calls/{call['id']}/register-peer", json={"peerId": "bad peer!"}, headers=customer_headers(customer)
        )
        assert response.status_code == 422
