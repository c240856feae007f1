"""Interaction repository - likes, passes and friend contacts"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import CustomerInteraction, FriendContact, ModelInteraction

LIKE = "LIKE"
PASS = "PASS"
ADDER_CUSTOMER = "CUSTOMER"
CONTACT_MODEL = "MODEL"


class InteractionRepository:
    """Repository for customer/model interaction database operations"""

    @staticmethod
    def get_interaction(
        db: Session, customer_id: str, model_id: str, action: str
    ) -> Optional[CustomerInteraction]:
        return (
            db.query(CustomerInteraction)
            .filter(
                CustomerInteraction.customer_id == customer_id,
                CustomerInteraction.model_id == model_id,
                CustomerInteraction.action == action,
            )
            .first()
        )

    @staticmethod
    def create_interaction(db: Session, customer_id: str, model_id: str, action: str) -> CustomerInteraction:
        interaction = CustomerInteraction(customer_id=customer_id, model_id=model_id, action=action)
        db.add(interaction)
        db.commit()
        db.refresh(interaction)
        return interaction

    @staticmethod
    def delete_interaction(db: Session, interaction: CustomerInteraction) -> None:
        db.delete(interaction)
        db.commit()

    @staticmethod
    def customer_actions(db: Session, customer_id: str, model_ids: list[str]) -> dict[str, str]:
        """model_id -> latest action of this customer; LIKE wins when both exist"""
        if not model_ids:
            return {}
        rows = (
            db.query(CustomerInteraction.model_id, CustomerInteraction.action)
            .filter(
                CustomerInteraction.customer_id == customer_id,
                CustomerInteraction.model_id.in_(model_ids),
            )
            .all()
        )
        actions: dict[str, str] = {}
        for model_id, action in rows:
            if actions.get(model_id) != LIKE:
                actions[model_id] = action
        return actions

    @staticmethod
    def passed_model_ids(db: Session, customer_id: str) -> list[str]:
        rows = (
            db.query(CustomerInteraction.model_id)
            .filter(CustomerInteraction.customer_id == customer_id, CustomerInteraction.action == PASS)
            .all()
        )
        return [r[0] for r in rows]

    @staticmethod
    def customer_like_counts(db: Session, model_ids: list[str]) -> dict[str, int]:
        if not model_ids:
            return {}
        rows = (
            db.query(CustomerInteraction.model_id, func.count(CustomerInteraction.id))
            .filter(CustomerInteraction.model_id.in_(model_ids), CustomerInteraction.action == LIKE)
            .group_by(CustomerInteraction.model_id)
            .all()
        )
        return dict(rows)

    @staticmethod
    def model_like_counts(db: Session, model_ids: list[str]) -> dict[str, int]:
        """Likes given by each model to customers"""
        if not model_ids:
            return {}
        rows = (
            db.query(ModelInteraction.model_id, func.count(ModelInteraction.id))
            .filter(ModelInteraction.model_id.in_(model_ids), ModelInteraction.action == LIKE)
            .group_by(ModelInteraction.model_id)
            .all()
        )
        return dict(rows)

    # Friend contacts
    @staticmethod
    def get_friend_contact(db: Session, customer_id: str, model_id: str) -> Optional[FriendContact]:
        return (
            db.query(FriendContact)
            .filter(FriendContact.customer_id == customer_id, FriendContact.model_id == model_id)
            .first()
        )

    @staticmethod
    def create_friend_contact(db: Session, customer_id: str, model_id: str) -> FriendContact:
        contact = FriendContact(
            customer_id=customer_id,
            model_id=model_id,
            adder_type=ADDER_CUSTOMER,
            contact_type=CONTACT_MODEL,
        )
        db.add(contact)
        db.commit()
        db.refresh(contact)
        return contact

    @staticmethod
    def contact_model_ids(db: Session, customer_id: str, model_ids: list[str]) -> set[str]:
        if not model_ids:
            return set()
        rows = (
            db.query(FriendContact.model_id)
            .filter(FriendContact.customer_id == customer_id, FriendContact.model_id.in_(model_ids))
            .all()
        )
        return {r[0] for r in rows}

    @staticmethod
    def count_friends(db: Session, model_id: str) -> int:
        return (
            db.query(func.count(FriendContact.id)).filter(FriendContact.model_id == model_id).scalar()
            or 0
        )
