"""Interaction service - like/pass toggling and adding models as friends"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Customer, Model
from ...services import notification_service
from ...services.audit_service import audited
from ...shared.responses import success_response, warning_response
from .repository import LIKE, InteractionRepository

logger = logging.getLogger(__name__)


class InteractionService:
    """Service layer for customer -> model interactions"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = InteractionRepository()

    def _get_active_model(self, model_id: str) -> Model:
        model = self.db.query(Model).filter(Model.id == model_id, Model.status == "active").first()
        if not model:
            raise HTTPException(status_code=404, detail="Model not found")
        return model

    @audited("CUSTOMER_INTERACTION")
    def toggle_interaction(self, model_id: str, action: str, customer: Customer) -> dict:
        """Create the interaction, or remove it when it already exists (unlike / unpass)"""
        model = self._get_active_model(model_id)

        existing = self.repo.get_interaction(self.db, customer.id, model.id, action)
        if existing:
            self.repo.delete_interaction(self.db, existing)
            logger.info(f"↩️ Customer {customer.id} removed {action} on model {model.id}")
            return success_response(f"{action.capitalize()} removed", action=action, active=False)

        self.repo.create_interaction(self.db, customer.id, model.id, action)
        logger.info(f"👍 Customer {customer.id} {action} model {model.id}")

        if action == LIKE:
            notification_service.notify_model(
                self.db,
                model.id,
                notification_service.NEW_LIKE,
                "New like",
                f"{customer.first_name} liked your profile",
                customerId=customer.id,
            )
        return success_response(f"{action.capitalize()} saved", action=action, active=True)

    @audited("CUSTOMER_ADD_FRIEND")
    def add_friend(self, model_id: str, customer: Customer) -> dict:
        model = self._get_active_model(model_id)

        if self.repo.get_friend_contact(self.db, customer.id, model.id):
            return warning_response(f"You are already friends with {model.first_name}")

        contact = self.repo.create_friend_contact(self.db, customer.id, model.id)
        logger.info(f"🤝 Customer {customer.id} added model {model.id} as friend")

        notification_service.notify_model(
            self.db,
            model.id,
            notification_service.FRIEND_ADDED,
            "New friend",
            f"{customer.first_name} added you as a friend",
            customerId=customer.id,
        )
        return success_response(f"{model.first_name} added to your friends", contactId=contact.id)
