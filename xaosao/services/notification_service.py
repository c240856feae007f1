"""
In-app notification service
Persists notifications for customers and models; a failed notification never
fails the workflow that triggered it
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models import Notification

logger = logging.getLogger(__name__)

# Notification types
BOOKING_CREATED = "booking_created"
BOOKING_UPDATED = "booking_updated"
BOOKING_CANCELLED = "booking_cancelled"
BOOKING_COMPLETED = "booking_completed"
BOOKING_DISPUTED = "booking_disputed"
PAYMENT_RELEASED = "payment_released"
PAYMENT_REFUNDED = "payment_refunded"
NEW_LIKE = "new_like"
FRIEND_ADDED = "friend_added"
INCOMING_CALL = "incoming_call"
CALL_MISSED = "call_missed"
CALL_DECLINED = "call_declined"
CALL_ENDED = "call_ended"
NEW_REVIEW = "new_review"
SUBSCRIPTION_ACTIVATED = "subscription_activated"


def send_notification(
    db: Session,
    notification_type: str,
    title: str,
    message: str,
    customer_id: Optional[str] = None,
    model_id: Optional[str] = None,
    data: Optional[dict[str, Any]] = None,
) -> Optional[Notification]:
    """
    Store a notification for one recipient (customer_id or model_id)

    Returns:
        The notification, or None when it could not be stored
    """
    recipient = f"customer {customer_id}" if customer_id else f"model {model_id}"
    try:
        notification = Notification(
            type=notification_type,
            title=title,
            message=message,
            customer_id=customer_id,
            model_id=model_id,
            data=data,
        )
        db.add(notification)
        db.commit()
        logger.info(f"🔔 {notification_type} notification sent to {recipient}")
        return notification
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to send {notification_type} notification to {recipient}: {e}")
        return None


def notify_model(db: Session, model_id: str, notification_type: str, title: str, message: str, **data):
    return send_notification(db, notification_type, title, message, model_id=model_id, data=data or None)


def notify_customer(
    db: Session, customer_id: str, notification_type: str, title: str, message: str, **data
):
    return send_notification(
        db, notification_type, title, message, customer_id=customer_id, data=data or None
    )
