"""Wallet repository - Database operations for wallets and transactions"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import TransactionHistory, Wallet


class WalletRepository:
    """Repository for wallet database operations"""

    @staticmethod
    def get_customer_wallet(db: Session, customer_id: str, for_update: bool = False) -> Optional[Wallet]:
        query = db.query(Wallet).filter(Wallet.customer_id == customer_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_model_wallet(db: Session, model_id: str, for_update: bool = False) -> Optional[Wallet]:
        query = db.query(Wallet).filter(Wallet.model_id == model_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def create_wallet(
        db: Session, customer_id: Optional[str] = None, model_id: Optional[str] = None
    ) -> Wallet:
        """Create an empty active wallet (flushed, not committed)"""
        wallet = Wallet(
            customer_id=customer_id,
            model_id=model_id,
            total_balance=0,
            total_recharge=0,
            total_deposit=0,
            status="active",
        )
        db.add(wallet)
        db.flush()
        return wallet

    @staticmethod
    def add_transaction(db: Session, **fields) -> TransactionHistory:
        transaction = TransactionHistory(**fields)
        db.add(transaction)
        db.flush()
        return transaction

    @staticmethod
    def get_transaction(db: Session, transaction_id: Optional[str]) -> Optional[TransactionHistory]:
        if not transaction_id:
            return None
        return db.query(TransactionHistory).filter(TransactionHistory.id == transaction_id).first()

    @staticmethod
    def get_customer_transaction(
        db: Session, transaction_id: str, customer_id: str
    ) -> Optional[TransactionHistory]:
        return (
            db.query(TransactionHistory)
            .filter(
                TransactionHistory.id == transaction_id,
                TransactionHistory.customer_id == customer_id,
            )
            .first()
        )

    @staticmethod
    def list_customer_transactions(
        db: Session,
        customer_id: str,
        offset: int,
        limit: int,
        identifier: Optional[str] = None,
    ) -> tuple[list[TransactionHistory], int]:
        """Newest first; returns (page, total_count)"""
        query = db.query(TransactionHistory).filter(TransactionHistory.customer_id == customer_id)
        if identifier:
            query = query.filter(TransactionHistory.identifier == identifier)

        total = query.with_entities(func.count(TransactionHistory.id)).scalar() or 0
        items = (
            query.order_by(TransactionHistory.created_at.desc(), TransactionHistory.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def delete_transaction(db: Session, transaction: TransactionHistory) -> None:
        db.delete(transaction)
        db.commit()
