"""
Tests for membership packages: plan listing, paying from the wallet, carrying
remaining days over on upgrade and the subscription history.
"""

from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from tests.conftest import customer_headers
from xaosao.domain.packages.service import PackageService, days_left
from xaosao.domain.wallet.repository import WalletRepository
from xaosao.models import AuditLog, Notification, SubscriptionPlan, TransactionHistory

NOW = datetime(2030, 3, 1, 9, 0)


@pytest.fixture
def make_plan(db_session):
    def _make(name="Basic", price=50000, duration_days=30, **fields):
        plan = SubscriptionPlan(
            name=name,
            price=price,
            duration_days=duration_days,
            status=fields.pop("status", "active"),
            **fields,
        )
        db_session.add(plan)
        db_session.commit()
        db_session.refresh(plan)
        return plan

    return _make


def balance(db_session, customer):
    return WalletRepository.get_customer_wallet(db_session, customer.id).total_balance


class TestDaysLeft:
    def test_started_day_counts(self):
        assert days_left(NOW + timedelta(days=2, hours=1), NOW) == 3

    def test_past_end_is_zero(self):
        assert days_left(NOW - timedelta(days=1), NOW) == 0


class TestSubscribe:
    def test_first_subscription_charges_wallet(self, db_session, make_customer, make_plan):
        customer = make_customer(balance=100000)
        plan = make_plan()

        subscription = PackageService(db_session).subscribe_with_wallet(plan.id, customer, now=NOW)
        assert subscription.status == "active"
        assert subscription.end_date == NOW + timedelta(days=30)
        assert subscription.notes == "New subscription activated"
        assert balance(db_session, customer) == 50000

        charge = db_session.query(TransactionHistory).filter(TransactionHistory.identifier == "subscription").one()
        assert charge.amount == -50000
        assert charge.status == "approved"
        assert subscription.transaction_id == charge.id
        assert db_session.query(Notification).filter(Notification.customer_id == customer.id).count() == 1

    def test_insufficient_balance(self, db_session, make_customer, make_plan):
        customer = make_customer(balance=10000)
        plan = make_plan()

        with pytest.raises(HTTPException) as exc_info:
            PackageService(db_session).subscribe_with_wallet(plan.id, customer, now=NOW)
        assert exc_info.value.status_code == 400
        assert "Insufficient balance" in exc_info.value.detail
        assert balance(db_session, customer) == 10000
        audit = db_session.query(AuditLog).filter(AuditLog.action == "CUSTOMER_SUBSCRIPTION_WALLET").one()
        assert audit.status == "failed"

    def test_inactive_plan(self, db_session, make_customer, make_plan):
        customer = make_customer(balance=100000)
        plan = make_plan(status="inactive")

        with pytest.raises(HTTPException) as exc_info:
            PackageService(db_session).subscribe_with_wallet(plan.id, customer, now=NOW)
        assert exc_info.value.status_code == 404

    def test_upgrade_carries_remaining_days(self, db_session, make_customer, make_plan):
        customer = make_customer(balance=500000)
        basic = make_plan()
        premium = make_plan(name="Premium", price=150000, duration_days=90)
        service = PackageService(db_session)
        first = service.subscribe_with_wallet(basic.id, customer, now=NOW)

        upgraded = service.subscribe_with_wallet(premium.id, customer, now=NOW + timedelta(days=20))
        assert upgraded.id == first.id
        assert upgraded.plan_id == premium.id
        assert upgraded.end_date == NOW + timedelta(days=20 + 90 + 10)
        assert upgraded.notes.startswith("Upgraded from Basic. 10 days")
        assert balance(db_session, customer) == 300000

        history = service.list_history(customer)["history"]
        assert (history[0].plan_name, history[0].status, history[0].duration_days) == ("Premium", "active", 100)
        assert sorted((entry.plan_name, entry.status, entry.duration_days) for entry in history[1:]) == [
            ("Basic", "active", 30),
            ("Basic", "upgraded", 30),
        ]

    def test_expired_subscription_is_renewed_without_carry_over(self, db_session, make_customer, make_plan):
        customer = make_customer(balance=500000)
        plan = make_plan()
        service = PackageService(db_session)
        service.subscribe_with_wallet(plan.id, customer, now=NOW)

        renewed = service.subscribe_with_wallet(plan.id, customer, now=NOW + timedelta(days=45))
        assert renewed.end_date == NOW + timedelta(days=75)
        assert renewed.notes == "New subscription activated"
        assert [entry.status for entry in service.list_history(customer)["history"]] == ["active", "active"]


class TestPlans:
    def test_current_plan_is_flagged(self, db_session, make_customer, make_plan):
        customer = make_customer(balance=100000)
        basic = make_plan()
        make_plan(name="Premium", price=150000)
        make_plan(name="Retired", status="inactive")
        service = PackageService(db_session)
        service.subscribe_with_wallet(basic.id, customer, now=NOW)

        plans = service.list_plans(customer, now=NOW + timedelta(days=1))
        assert [(plan.name, current) for plan, current in plans] == [("Basic", True), ("Premium", False)]

        expired = service.list_plans(customer, now=NOW + timedelta(days=31))
        assert all(current is False for _, current in expired)

    def test_history_filters(self, db_session, make_customer, make_plan):
        customer = make_customer(balance=500000)
        basic = make_plan()
        premium = make_plan(name="Premium", price=150000)
        service = PackageService(db_session)
        service.subscribe_with_wallet(basic.id, customer, now=NOW)
        service.subscribe_with_wallet(premium.id, customer, now=NOW + timedelta(days=5))

        upgraded = service.list_history(customer, status="upgraded")
        assert upgraded["pagination"]["totalCount"] == 1
        assert service.list_history(customer, status="all")["pagination"]["totalCount"] == 3

        later = service.list_history(customer, start_from=NOW + timedelta(days=1))
        assert [entry.plan_name for entry in later["history"]] == ["Premium"]

        page = service.list_history(customer, page=2, limit=2)
        assert len(page["history"]) == 1
        assert page["pagination"]["hasPreviousPage"] is True


class TestPackageApi:
    def test_list_subscribe_and_current(self, client, make_customer, make_plan):
        customer = make_customer(balance=100000)
        plan = make_plan(features={"chat": "unlimited"}, is_popular=True)
        headers = customer_headers(customer)

        listed = client.get("/packages", headers=headers).json()
        assert listed[0]["features"] == {"chat": "unlimited"}
        assert listed[0]["current"] is False
        assert client.get("/packages/current", headers=headers).json()["subscription"] is None

        response = client.post(f"/packages/{plan.id}/subscribe", headers=headers)
        assert response.status_code == 200
        assert response.json()["subscription"]["planName"] == "Basic"

        assert client.get(f"/packages/{plan.id}", headers=headers).json()["current"] is True
        current = client.get("/packages/current", headers=headers).json()["subscription"]
        assert current["planId"] == plan.id

        history = client.get("/packages/history", params={"status": "all"}, headers=headers).json()
        assert history["pagination"]["totalCount"] == 1
        assert history["history"][0]["planPrice"] == 50000

    def test_unknown_plan(self, client, make_customer):
        customer = make_customer(balance=100000)
        response = client.post("/packages/missing/subscribe", headers=customer_headers(customer))
        assert response.status_code == 404
        assert response.json()["message"] == "Plan not found or inactive"
