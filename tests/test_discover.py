"""
Tests for discover lists, scoring and public model profiles.
"""

from datetime import datetime

import pytest

from tests.conftest import customer_headers
from xaosao.domain.discover.schemas import ForYouFilters
from xaosao.domain.discover.service import DiscoverService, popularity_score
from xaosao.models import CustomerInteraction, ModelImage, ModelInteraction

NOW = datetime(2030, 3, 1, 12, 0)
VIENTIANE = (17.9757, 102.6331)
NEAR_VIENTIANE = (17.9850, 102.6300)
LUANG_PRABANG = (19.8856, 102.1347)


class TestPopularityScore:
    def test_weights(self):
        assert popularity_score(2, 1, 3, 4.5, 10, 5, None) == 98.0

    def test_distance_bonus(self):
        assert popularity_score(0, 0, 0, 0, 0, 30, 50) == 10.0
        assert popularity_score(0, 0, 0, 0, 0, 30, 500) == 0

    def test_stale_profiles_get_no_activity_bonus(self):
        assert popularity_score(0, 0, 0, 0, 0, 90, None) == 0


class TestDiscoverLists:
    def test_discover_orders_by_rating_and_skips_passed(self, db_session, make_customer, make_model):
        customer = make_customer()
        top = make_model(first_name="Top", rating=4.8)
        make_model(first_name="Mid", rating=3.0)
        passed = make_model(first_name="Passed", rating=5.0)
        db_session.add(CustomerInteraction(customer_id=customer.id, model_id=passed.id, action="PASS"))
        db_session.commit()

        cards = DiscoverService(db_session).discover(customer, now=NOW)
        assert [c["firstName"] for c in cards] == ["Top", "Mid"]
        assert cards[0]["id"] == top.id

    def test_card_details(self, db_session, make_customer, make_model):
        customer = make_customer(latitude=VIENTIANE[0], longitude=VIENTIANE[1])
        model = make_model(dob=datetime(2000, 6, 1), latitude=NEAR_VIENTIANE[0], longitude=NEAR_VIENTIANE[1])
        db_session.add(ModelImage(model_id=model.id, name="https://cdn.xaosao.com/a.jpg"))
        db_session.add(ModelImage(model_id=model.id, name="https://cdn.xaosao.com/b.jpg", status="deleted"))
        db_session.add(CustomerInteraction(customer_id=customer.id, model_id=model.id, action="LIKE"))
        db_session.add(ModelInteraction(model_id=model.id, customer_id=customer.id, action="LIKE"))
        db_session.commit()

        card = DiscoverService(db_session).discover(customer, now=NOW)[0]
        assert card["age"] == 29
        assert card["distance"] is not None and card["distance"] < 2
        assert len(card["images"]) == 1
        assert card["customerAction"] == "LIKE"
        assert card["totalLikes"] == 1
        assert card["popularity"] == 2

    def test_nearby_within_radius(self, db_session, make_customer, make_model):
        customer = make_customer(latitude=VIENTIANE[0], longitude=VIENTIANE[1])
        make_model(first_name="Close", latitude=NEAR_VIENTIANE[0], longitude=NEAR_VIENTIANE[1])
        make_model(first_name="Far", latitude=LUANG_PRABANG[0], longitude=LUANG_PRABANG[1])
        make_model(first_name="Unknown")

        service = DiscoverService(db_session)
        assert [c["firstName"] for c in service.nearby(customer, now=NOW)] == ["Close"]
        assert len(service.nearby(customer, max_distance_km=500, now=NOW)) == 2

    def test_nearby_requires_location(self, client, make_customer):
        response = client.get("/discover/nearby", headers=customer_headers(make_customer()))
        assert response.status_code == 400
        assert "location is missing" in response.json()["message"]

    def test_hot_ranks_liked_models_first(self, db_session, make_customer, make_model):
        customer = make_customer()
        fans = [make_customer(first_name=f"Fan{i}") for i in range(3)]
        make_model(first_name="Quiet")
        popular = make_model(first_name="Popular")
        for fan in fans:
            db_session.add(CustomerInteraction(customer_id=fan.id, model_id=popular.id, action="LIKE"))
        db_session.commit()

        cards = DiscoverService(db_session).hot(customer, limit=5)
        assert cards[0]["firstName"] == "Popular"
        assert cards[0]["totalLikes"] == 3
        assert cards[0]["popularityScore"] > cards[1]["popularityScore"]

    def test_for_you_filters_age_and_paginates(self, db_session, make_customer, make_model):
        customer = make_customer()
        make_model(first_name="Young", dob=datetime(2008, 1, 1))
        for i in range(3):
            make_model(first_name=f"Older{i}", dob=datetime(1990, 1, 1))

        result = DiscoverService(db_session).for_you(customer, ForYouFilters(minAge=30, limit=2), now=NOW)
        assert result["pagination"]["totalCount"] == 3
        assert len(result["models"]) == 2
        assert all(m["firstName"].startswith("Older") for m in result["models"])

    def test_for_you_invalid_age_range(self):
        with pytest.raises(ValueError):
            ForYouFilters(minAge=40, maxAge=20)

    def test_liked_me(self, db_session, make_customer, make_model):
        customer = make_customer()
        admirer = make_model(first_name="Admirer")
        make_model(first_name="Other")
        db_session.add(ModelInteraction(model_id=admirer.id, customer_id=customer.id, action="LIKE"))
        db_session.commit()

        result = DiscoverService(db_session).liked_me(customer, now=NOW)
        assert [m["firstName"] for m in result["models"]] == ["Admirer"]

    def test_interactions_endpoint_validates_action(self, client, make_customer):
        response = client.get("/discover/interactions/maybe", headers=customer_headers(make_customer()))
        assert response.status_code == 400


class TestModelProfile:
    def test_profile_with_services(self, client, make_customer, make_model, make_service, make_model_service):
        customer = make_customer()
        model = make_model(career="Designer", interests=["music", "travel"])
        massage = make_service(name="massage", billing_type="per_hour", hourly_rate=50000)
        make_model_service(model, massage, variants=[("thai", 80000)])

        response = client.get(f"/models/{model.id}", headers=customer_headers(customer))
        assert response.status_code == 200
        body = response.json()
        assert body["career"] == "Designer"
        assert body["interests"] == ["music", "travel"]
        assert body["services"][0]["variants"][0]["pricePerHour"] == 80000
        assert body["canReview"] is False
        assert body["reviewReason"] == "no_completed_booking"

    def test_model_service_form(self, client, make_customer, make_model, make_service, make_model_service):
        model = make_model(address="Vientiane")
        offer = make_model_service(model, make_service(billing_type="per_day", base_rate=300000))

        response = client.get(f"/models/{model.id}/services/{offer.id}", headers=customer_headers(make_customer()))
        assert response.status_code == 200
        body = response.json()
        assert body["service"]["baseRate"] == 300000
        assert body["modelAddress"] == "Vientiane"
        assert body["bookedSlots"] == []

    def test_unknown_model(self, client, make_customer):
        response = client.get("/models/missing", headers=customer_headers(make_customer()))
        assert response.status_code == 404
