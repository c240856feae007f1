"""Wallet service - Business logic for customer wallets and top-ups"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Customer, TransactionHistory, Wallet
from ...services.audit_service import audited
from ...shared.pagination import build_pagination, page_offset
from .escrow import RECHARGE, TXN_PENDING
from .repository import WalletRepository
from .schemas import TopUpRequest, TopUpUpdate

logger = logging.getLogger(__name__)


class WalletService:
    """Service layer for wallet business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = WalletRepository()

    def get_wallet(self, customer: Customer) -> Wallet:
        wallet = self.repo.get_customer_wallet(self.db, customer.id)
        if not wallet:
            raise HTTPException(status_code=404, detail="Wallet not found")
        return wallet

    def create_wallet(self, customer_id: str) -> Wallet:
        """Create the wallet of a new customer; one wallet per owner"""
        if self.repo.get_customer_wallet(self.db, customer_id):
            raise HTTPException(status_code=409, detail="Wallet already exists")
        return self.repo.create_wallet(self.db, customer_id=customer_id)

    @audited("TOP_UP_WALLET")
    def top_up(self, data: TopUpRequest, customer: Customer) -> TransactionHistory:
        """Record a pending recharge; an administrator credits the wallet after checking the slip"""
        wallet = self.get_wallet(customer)
        if wallet.status != "active":
            raise HTTPException(status_code=403, detail="Wallet is not active")

        transaction = self.repo.add_transaction(
            self.db,
            identifier=RECHARGE,
            amount=data.amount,
            status=TXN_PENDING,
            payment_slip=data.paymentSlip,
            customer_id=customer.id,
            reason="Wallet top-up",
        )
        self.db.commit()
        self.db.refresh(transaction)
        logger.info(f"💳 Top-up of {data.amount} LAK requested by customer {customer.id}")
        return transaction

    def list_transactions(
        self, customer: Customer, page: int = 1, limit: int = 10, identifier: Optional[str] = None
    ) -> dict:
        items, total = self.repo.list_customer_transactions(
            self.db, customer.id, page_offset(page, limit), limit, identifier
        )
        return {"transactions": items, "pagination": build_pagination(page, limit, total)}

    def get_transaction(self, transaction_id: str, customer: Customer) -> TransactionHistory:
        transaction = self.repo.get_customer_transaction(self.db, transaction_id, customer.id)
        if not transaction:
            raise HTTPException(status_code=404, detail="Transaction not found")
        return transaction

    def _get_pending_top_up(self, transaction_id: str, customer: Customer) -> TransactionHistory:
        transaction = self.get_transaction(transaction_id, customer)
        if transaction.identifier != RECHARGE or transaction.status != TXN_PENDING:
            raise HTTPException(
                status_code=400, detail="Only pending top-up requests can be changed"
            )
        return transaction

    @audited("UPDATE_TOP_UP")
    def update_top_up(
        self, transaction_id: str, data: TopUpUpdate, customer: Customer
    ) -> TransactionHistory:
        transaction = self._get_pending_top_up(transaction_id, customer)
        if data.amount is not None:
            transaction.amount = data.amount
        if data.paymentSlip is not None:
            transaction.payment_slip = data.paymentSlip
        self.db.commit()
        self.db.refresh(transaction)
        return transaction

    @audited("DELETE_TOP_UP")
    def delete_top_up(self, transaction_id: str, customer: Customer) -> None:
        transaction = self._get_pending_top_up(transaction_id, customer)
        self.repo.delete_transaction(self.db, transaction)
        logger.info(f"🗑️ Top-up {transaction_id} deleted by customer {customer.id}")
