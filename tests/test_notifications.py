"""
Tests for in-app notifications.
"""

from tests.conftest import customer_headers, model_headers
from xaosao.services import notification_service


class TestNotificationService:
    def test_notify_customer(self, db_session, make_customer):
        customer = make_customer()
        notification = notification_service.notify_customer(
            db_session, customer.id, notification_service.PAYMENT_REFUNDED, "Refund", "Refunded", bookingId="b1"
        )
        assert notification.customer_id == customer.id
        assert notification.data == {"bookingId": "b1"}
        assert notification.is_read is False

    def test_notification_without_data(self, db_session, make_model):
        notification = notification_service.notify_model(
            db_session, make_model().id, notification_service.NEW_REVIEW, "Review", "New review"
        )
        assert notification.data is None


class TestNotificationApi:
    def test_list_and_mark_read(self, client, db_session, make_customer):
        customer = make_customer()
        for i in range(3):
            notification_service.notify_customer(
                db_session, customer.id, notification_service.BOOKING_UPDATED, f"Update {i}", "Booking changed"
            )
        headers = customer_headers(customer)

        body = client.get("/notifications", headers=headers).json()
        assert body["unreadCount"] == 3
        assert len(body["notifications"]) == 3

        first_id = body["notifications"][0]["id"]
        assert client.post(f"/notifications/{first_id}/read", headers=headers).status_code == 200
        unread = client.get("/notifications?unread_only=true", headers=headers).json()
        assert unread["unreadCount"] == 2
        assert first_id not in [n["id"] for n in unread["notifications"]]

        client.post("/notifications/read-all", headers=headers)
        assert client.get("/notifications", headers=headers).json()["unreadCount"] == 0

    def test_models_see_their_own_notifications(self, client, db_session, make_customer, make_model):
        customer = make_customer()
        model = make_model()
        notification_service.notify_customer(db_session, customer.id, notification_service.NEW_LIKE, "x", "x")
        notification_service.notify_model(db_session, model.id, notification_service.NEW_LIKE, "Like", "Liked")

        body = client.get("/notifications", headers=model_headers(model)).json()
        assert [n["title"] for n in body["notifications"]] == ["Like"]

    def test_cannot_read_someone_elses_notification(self, client, db_session, make_customer):
        owner, other = make_customer(), make_customer()
        notification = notification_service.notify_customer(
            db_session, owner.id, notification_service.NEW_LIKE, "x", "x"
        )
        response = client.post(f"/notifications/{notification.id}/read", headers=customer_headers(other))
        assert response.status_code == 404
