"""
Tests for service bookings: pricing on create, escrow, cancellation, check-in,
completion by QR token and the auto-release job.
"""

from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from tests.conftest import customer_headers, model_headers
from xaosao.auth import ROLE_CUSTOMER, ROLE_MODEL, Actor
from xaosao.domain.bookings.schemas import BookingCreate, BookingUpdate, CheckInRequest
from xaosao.domain.bookings.service import (
    AWAITING_CONFIRMATION,
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    DISPUTED,
    IN_PROGRESS,
    PAYMENT_HELD,
    PAYMENT_PENDING_RELEASE,
    PAYMENT_REFUNDED,
    PAYMENT_RELEASED,
    PENDING,
    REJECTED,
    BookingService,
)
from xaosao.domain.calls.schemas import CallBookingCreate
from xaosao.domain.calls.service import CallService
from xaosao.domain.wallet.repository import WalletRepository
from xaosao.models import AuditLog, Notification
from xaosao.shared.timeutils import utcnow

NOW = datetime(2030, 3, 1, 12, 0)
VENUE = (17.9757, 102.6331)


@pytest.fixture
def setup(make_customer, make_model, make_service, make_model_service):
    customer = make_customer(balance=500000)
    model = make_model(address="Vientiane")
    service = make_service(billing_type="per_hour", hourly_rate=50000, commission=20)
    model_service = make_model_service(model, service)
    return customer, model, model_service


def booking_data(model_service, **fields):
    values = {
        "modelServiceId": model_service.id,
        "startDate": NOW + timedelta(days=1),
        "hours": 2,
        "location": "Sengdara Fitness, Vientiane",
        "locationLatitude": VENUE[0],
        "locationLongitude": VENUE[1],
    }
    values.update(fields)
    return BookingCreate(**values)


def balance(db_session, customer):
    return WalletRepository.get_customer_wallet(db_session, customer.id).total_balance


class TestCreateBooking:
    def test_price_is_computed_and_held(self, db_session, setup):
        customer, model, model_service = setup
        booking = BookingService(db_session).create_booking(booking_data(model_service), customer, now=NOW)

        assert booking.price == 100000
        assert booking.status == PENDING
        assert booking.payment_status == PAYMENT_HELD
        assert booking.end_date == NOW + timedelta(days=1, hours=2)
        assert balance(db_session, customer) == 400000

        notification = db_session.query(Notification).filter(Notification.model_id == model.id).one()
        assert notification.data == {"bookingId": booking.id}
        audit = db_session.query(AuditLog).filter(AuditLog.action == "CREATE_SERVICE_BOOKING").one()
        assert audit.customer_id == customer.id

    def test_start_in_past_rejected(self, db_session, setup):
        customer, _, model_service = setup
        with pytest.raises(HTTPException) as exc_info:
            BookingService(db_session).create_booking(
                booking_data(model_service, startDate=NOW - timedelta(hours=1)), customer, now=NOW
            )
        assert exc_info.value.detail == "Start date must be in the future"
        assert balance(db_session, customer) == 500000

    def test_insufficient_balance_records_failed_audit(self, db_session, make_customer, setup):
        _, _, model_service = setup
        poor = make_customer(balance=1000)
        with pytest.raises(HTTPException) as exc_info:
            BookingService(db_session).create_booking(booking_data(model_service), poor, now=NOW)
        assert exc_info.value.status_code == 400
        audit = db_session.query(AuditLog).filter(AuditLog.action == "CREATE_SERVICE_BOOKING").one()
        assert audit.status == "failed"

    def test_unavailable_service(self, db_session, setup):
        customer, _, model_service = setup
        model_service.is_available = False
        db_session.commit()
        with pytest.raises(HTTPException) as exc_info:
            BookingService(db_session).create_booking(booking_data(model_service), customer, now=NOW)
        assert exc_info.value.status_code == 404

    def test_variant_price(self, db_session, make_model, make_service, make_model_service, make_customer):
        customer = make_customer(balance=500000)
        massage = make_service(name="massage", billing_type="per_hour", hourly_rate=50000)
        model_service = make_model_service(make_model(), massage, variants=[("thai", 80000), ("oil", 120000)])
        oil = next(v for v in model_service.variants if v.name == "oil")

        booking = BookingService(db_session).create_booking(
            booking_data(model_service, hours=1, variantId=oil.id), customer, now=NOW
        )
        assert booking.price == 120000
        assert booking.variant_id == oil.id


class TestUpdateAndCancel:
    def test_update_adjusts_hold(self, db_session, setup):
        customer, _, model_service = setup
        service = BookingService(db_session)
        booking = service.create_booking(booking_data(model_service), customer, now=NOW)

        updated = service.update_booking(booking.id, BookingUpdate(hours=4), customer, now=NOW)
        assert updated.price == 200000
        assert updated.end_date == NOW + timedelta(days=1, hours=4)
        assert balance(db_session, customer) == 300000

    def test_moving_multi_day_booking_keeps_its_length(
        self, db_session, make_customer, make_model, make_service, make_model_service
    ):
        customer = make_customer(balance=1000000)
        model_service = make_model_service(make_model(), make_service(billing_type="per_day", base_rate=300000))
        service = BookingService(db_session)
        start = NOW + timedelta(days=3)
        booking = service.create_booking(
            booking_data(model_service, startDate=start, endDate=start + timedelta(days=2), hours=None),
            customer,
            now=NOW,
        )
        assert booking.price == 600000

        moved = service.update_booking(booking.id, BookingUpdate(startDate=NOW + timedelta(days=10)), customer, now=NOW)
        assert moved.start_date == NOW + timedelta(days=10)
        assert moved.end_date == NOW + timedelta(days=12)
        assert moved.price == 600000
        assert balance(db_session, customer) == 400000

    def test_only_pending_can_be_updated(self, db_session, setup):
        customer, _, model_service = setup
        service = BookingService(db_session)
        booking = service.create_booking(booking_data(model_service), customer, now=NOW)
        booking.status = CONFIRMED
        db_session.commit()
        with pytest.raises(HTTPException):
            service.update_booking(booking.id, BookingUpdate(hours=4), customer, now=NOW)

    def test_cancel_refunds(self, db_session, setup):
        customer, _, model_service = setup
        service = BookingService(db_session)
        booking = service.create_booking(booking_data(model_service), customer, now=NOW)

        cancelled = service.cancel_booking(booking.id, customer, now=NOW)
        assert cancelled.status == CANCELLED
        assert cancelled.payment_status == PAYMENT_REFUNDED
        assert balance(db_session, customer) == 500000

    def test_cancel_too_close_to_start(self, db_session, setup):
        customer, _, model_service = setup
        service = BookingService(db_session)
        booking = service.create_booking(booking_data(model_service), customer, now=NOW)

        with pytest.raises(HTTPException) as exc_info:
            service.cancel_booking(booking.id, customer, now=booking.start_date - timedelta(hours=1))
        assert "at least 2 hours" in exc_info.value.detail
        assert balance(db_session, customer) == 400000

    def test_delete_requires_finished_booking(self, db_session, setup):
        customer, _, model_service = setup
        service = BookingService(db_session)
        booking = service.create_booking(booking_data(model_service), customer, now=NOW)

        with pytest.raises(HTTPException):
            service.delete_booking(booking.id, customer)
        service.cancel_booking(booking.id, customer, now=NOW)
        service.delete_booking(booking.id, customer)
        with pytest.raises(HTTPException) as exc_info:
            service.get_customer_booking(booking.id, customer)
        assert exc_info.value.status_code == 404


class TestModelActions:
    def test_reject_refunds_customer(self, db_session, setup):
        customer, model, model_service = setup
        service = BookingService(db_session)
        booking = service.create_booking(booking_data(model_service), customer, now=NOW)

        rejected = service.reject_booking(booking.id, "Not available", model)
        assert rejected.status == REJECTED
        assert rejected.reject_reason == "Not available"
        assert balance(db_session, customer) == 500000

    def test_other_model_cannot_accept(self, db_session, make_model, setup):
        customer, _, model_service = setup
        service = BookingService(db_session)
        booking = service.create_booking(booking_data(model_service), customer, now=NOW)
        with pytest.raises(HTTPException) as exc_info:
            service.accept_booking(booking.id, make_model(first_name="Other"))
        assert exc_info.value.status_code == 404


class TestCheckInAndCompletion:
    @pytest.fixture
    def confirmed(self, db_session, setup):
        customer, model, model_service = setup
        service = BookingService(db_session)
        booking = service.create_booking(booking_data(model_service), customer, now=NOW)
        service.accept_booking(booking.id, model)
        return service, customer, model, booking

    def test_check_in_window(self, confirmed):
        service, customer, _, booking = confirmed
        with pytest.raises(HTTPException) as exc_info:
            service.customer_check_in(
                booking.id, CheckInRequest(latitude=VENUE[0], longitude=VENUE[1]), customer,
                now=booking.start_date - timedelta(hours=2),
            )
        assert "Check-in opens in" in exc_info.value.detail

    def test_check_in_too_far(self, confirmed):
        service, customer, _, booking = confirmed
        with pytest.raises(HTTPException) as exc_info:
            service.customer_check_in(
                booking.id, CheckInRequest(latitude=VENUE[0] + 0.01, longitude=VENUE[1]), customer,
                now=booking.start_date,
            )
        assert "away from the booking location" in exc_info.value.detail

    def test_both_check_ins_start_the_booking(self, confirmed):
        service, customer, model, booking = confirmed
        at = booking.start_date - timedelta(minutes=10)
        here = CheckInRequest(latitude=VENUE[0], longitude=VENUE[1])

        service.model_check_in(booking.id, here, model, now=at)
        assert booking.status == CONFIRMED
        service.customer_check_in(booking.id, here, customer, now=at)
        assert booking.status == IN_PROGRESS

    def test_complete_then_confirm_by_token(self, db_session, confirmed):
        service, customer, model, booking = confirmed
        done_at = booking.start_date + timedelta(hours=2)

        service.complete_booking(booking.id, model, now=done_at)
        assert booking.status == AWAITING_CONFIRMATION
        assert booking.payment_status == PAYMENT_PENDING_RELEASE
        token = booking.completion_token

        preview = service.get_booking_by_token(token, customer, now=done_at)
        assert preview["isExpired"] is False

        completed = service.confirm_by_token(token, customer, now=done_at + timedelta(minutes=5))
        assert completed.status == COMPLETED
        assert completed.payment_status == PAYMENT_RELEASED
        assert completed.completion_token is None
        assert WalletRepository.get_model_wallet(db_session, model.id).total_balance == 80000

    def test_expired_token(self, confirmed):
        service, customer, model, booking = confirmed
        done_at = booking.start_date + timedelta(hours=2)
        service.complete_booking(booking.id, model, now=done_at)

        with pytest.raises(HTTPException) as exc_info:
            service.confirm_by_token(booking.completion_token, customer, now=done_at + timedelta(hours=25))
        assert "expired" in exc_info.value.detail

    def test_token_of_another_customer(self, make_customer, confirmed):
        service, _, model, booking = confirmed
        service.complete_booking(booking.id, model, now=booking.start_date)
        with pytest.raises(HTTPException) as exc_info:
            service.confirm_by_token(booking.completion_token, make_customer(), now=booking.start_date)
        assert exc_info.value.status_code == 403

    def test_cannot_complete_before_start(self, confirmed):
        service, _, model, booking = confirmed
        with pytest.raises(HTTPException):
            service.complete_booking(booking.id, model, now=NOW)

    def test_dispute_keeps_payment_on_hold(self, db_session, confirmed):
        service, customer, model, booking = confirmed
        service.complete_booking(booking.id, model, now=booking.start_date)

        disputed = service.dispute_booking(booking.id, "The model never showed up", customer, now=booking.start_date)
        assert disputed.status == DISPUTED
        assert disputed.payment_status == PAYMENT_PENDING_RELEASE
        assert WalletRepository.get_model_wallet(db_session, model.id) is None

    def test_auto_release(self, db_session, confirmed):
        service, _, model, booking = confirmed
        service.complete_booking(booking.id, model, now=booking.start_date)

        early = service.process_auto_release(now=booking.start_date + timedelta(hours=1))
        assert early["processed"] == 0

        summary = service.process_auto_release(now=booking.start_date + timedelta(hours=25))
        assert summary["released"] == 1
        assert summary["failed"] == 0
        assert booking.status == COMPLETED
        assert WalletRepository.get_model_wallet(db_session, model.id).total_balance == 80000


class TestBookedSlots:
    @pytest.fixture
    def busy_model(self, db_session, make_customer, make_model, make_service, make_model_service):
        customer = make_customer(balance=5000000)
        model = make_model()
        hourly = make_model_service(model, make_service(billing_type="per_hour", hourly_rate=50000))
        daily = make_model_service(
            model, make_service(name="travelCompanion", billing_type="per_day", base_rate=300000)
        )
        calls = make_model_service(
            model, make_service(name="callService", billing_type="per_minute", minute_rate=5000)
        )
        return customer, model, hourly, daily, calls

    def test_only_upcoming_active_service_bookings(self, db_session, busy_model):
        customer, model, hourly, daily, calls = busy_model
        service = BookingService(db_session)

        def book(day, **fields):
            return service.create_booking(
                booking_data(hourly, startDate=NOW + timedelta(days=day), **fields), customer, now=NOW
            )

        pending = book(1)
        confirmed = service.accept_booking(book(2).id, model)
        in_progress = book(3)
        in_progress.status = IN_PROGRESS
        cancelled = service.cancel_booking(book(4).id, customer, now=NOW)
        completed = book(5)
        completed.status = COMPLETED
        earlier_today = book(1)
        earlier_today.start_date = NOW - timedelta(hours=6)
        yesterday = book(1)
        yesterday.start_date = NOW - timedelta(days=1)
        db_session.commit()

        as_customer, as_model = Actor(role=ROLE_CUSTOMER, id=customer.id), Actor(role=ROLE_MODEL, id=model.id)
        calls_service = CallService(db_session)
        call = calls_service.create_call_booking(CallBookingCreate(modelServiceId=calls.id), customer, now=NOW)
        calls_service.initiate_call(call.id, as_customer, now=NOW)
        calls_service.accept_call(call.id, as_model)
        assert call.status == CONFIRMED

        slots = service.get_booked_slots(model.id, now=NOW)
        assert [slot["startDate"] for slot in slots] == [
            earlier_today.start_date,
            pending.start_date,
            confirmed.start_date,
            in_progress.start_date,
        ]
        assert cancelled.start_date not in [slot["startDate"] for slot in slots]
        assert all(slot["isDateOnly"] is False for slot in slots)
        assert slots[1]["hours"] == 2
        assert slots[1]["endDate"] == pending.start_date + timedelta(hours=2)

    def test_per_day_bookings_are_date_only(self, db_session, busy_model):
        customer, model, hourly, daily, _ = busy_model
        service = BookingService(db_session)
        start = NOW + timedelta(days=2)
        service.create_booking(
            booking_data(daily, startDate=start, endDate=start + timedelta(days=1), hours=None), customer, now=NOW
        )
        service.create_booking(booking_data(hourly, startDate=NOW + timedelta(days=1)), customer, now=NOW)

        slots = service.get_booked_slots(model.id, now=NOW)
        assert [(slot["serviceName"], slot["isDateOnly"]) for slot in slots] == [
            ("drinkingFriend", False),
            ("travelCompanion", True),
        ]

    def test_slots_endpoint(self, client, db_session, busy_model):
        customer, model, hourly, _, _ = busy_model
        now = utcnow()
        BookingService(db_session).create_booking(
            booking_data(hourly, startDate=now + timedelta(days=1)), customer, now=now
        )

        response = client.get(f"/bookings/slots/{model.id}", headers=customer_headers(customer))
        assert response.status_code == 200
        body = response.json()
        assert len(body) == 1
        assert body[0]["hours"] == 2
        assert body[0]["isDateOnly"] is False


class TestBookingApi:
    def test_quote(self, client, setup):
        customer, _, model_service = setup
        response = client.post(
            "/bookings/quote",
            json={"modelServiceId": model_service.id, "hours": 3},
            headers=customer_headers(customer),
        )
        assert response.status_code == 200
        assert response.json()["price"] == 150000

    def test_quote_invalid_hours(self, client, setup):
        customer, _, model_service = setup
        response = client.post(
            "/bookings/quote",
            json={"modelServiceId": model_service.id, "hours": 12},
            headers=customer_headers(customer),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Hours must be between 1 and 10"

    def test_create_and_list(self, client, setup):
        customer, _, model_service = setup
        start = (utcnow() + timedelta(days=2)).isoformat()
        response = client.post(
            "/bookings",
            json={"modelServiceId": model_service.id, "hours": 2, "startDate": start, "location": "Vientiane"},
            headers=customer_headers(customer),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["booking"]["price"] == 100000

        bookings = client.get("/bookings", headers=customer_headers(customer)).json()
        assert len(bookings) == 1
        assert bookings[0]["isContact"] is False

    def test_injection_in_location_rejected(self, client, setup):
        customer, _, model_service = setup
        start = (utcnow() + timedelta(days=2)).isoformat()
        response = client.post(
            "/bookings",
            json={
                "modelServiceId": model_service.id,
                "hours": 2,
                "startDate": start,
                "location": "<script>alert(1)</script>",
            },
            headers=customer_headers(customer),
        )
        assert response.status_code == 422
        assert response.json()["message"] == "Location contains invalid content"

    def test_model_routes_require_model_token(self, client, setup):
        customer, _, _ = setup
        response = client.post("/model/bookings/any/accept", headers=customer_headers(customer))
        assert response.status_code == 403

    def test_model_complete_returns_qr(self, client, db_session, setup):
        customer, model, model_service = setup
        service = BookingService(db_session)
        now = utcnow()
        booking = service.create_booking(
            booking_data(model_service, startDate=now + timedelta(hours=3)), customer, now=now
        )
        service.accept_booking(booking.id, model)
        booking.start_date = now - timedelta(hours=1)
        db_session.commit()

        response = client.post(f"/model/bookings/{booking.id}/complete", headers=model_headers(model))
        assert response.status_code == 200
        body = response.json()
        assert body["qrCode"].startswith("data:image/png;base64,")
        assert body["completionToken"] in body["confirmationUrl"]
