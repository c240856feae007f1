"""
Escrow primitives shared by service bookings and call bookings, plus the
direct wallet charge used for package purchases.

A booking's price is *held* from the customer wallet when it is created,
then either *released* to the model (minus the platform commission) or
*refunded* to the customer. These functions only flush; the caller commits
so that the wallet movement and the booking state change land together.
"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ServiceBooking, TransactionHistory, Wallet
from .repository import WalletRepository

logger = logging.getLogger(__name__)

# Transaction identifiers
RECHARGE = "recharge"
BOOKING_HOLD = "booking_hold"
BOOKING_REFUND = "booking_refund"
BOOKING_EARNING = "booking_earning"
CALL_HOLD = "call_hold"
CALL_REFUND = "call_refund"
CALL_REFUND_UNUSED = "call_refund_unused"
CALL_EARNING = "call_earning"
SUBSCRIPTION = "subscription"

# Transaction statuses
TXN_PENDING = "pending"
TXN_APPROVED = "approved"
TXN_HELD = "held"
TXN_RELEASED = "released"
TXN_REFUNDED = "refunded"


def calculate_commission(amount: int, commission_rate: Optional[int]) -> int:
    """Platform share of amount, rounded down to whole kip"""
    return amount * (commission_rate or 0) // 100


def hold_payment(
    db: Session,
    customer_id: str,
    amount: int,
    booking_id: Optional[str] = None,
    identifier: str = BOOKING_HOLD,
    reason: Optional[str] = None,
) -> TransactionHistory:
    """Debit the customer wallet into a held transaction"""
    repo = WalletRepository()
    wallet = repo.get_customer_wallet(db, customer_id, for_update=True)
    if not wallet or wallet.status != "active":
        raise HTTPException(status_code=404, detail="Wallet not found. Please contact support.")

    if wallet.total_balance < amount:
        logger.warning(
            f"⚠️ Insufficient balance for customer {customer_id}: {wallet.total_balance} < {amount}"
        )
        raise HTTPException(
            status_code=400,
            detail=(
                f"Insufficient balance. Required: {amount:,} LAK, "
                f"available: {wallet.total_balance:,} LAK. Please top up your wallet."
            ),
        )

    wallet.total_balance -= amount
    transaction = repo.add_transaction(
        db,
        identifier=identifier,
        amount=-amount,
        status=TXN_HELD,
        customer_id=customer_id,
        booking_id=booking_id,
        reason=reason or "Payment held for booking",
    )
    logger.info(f"💰 Held {amount} LAK from customer {customer_id} ({identifier})")
    return transaction


def charge_wallet(
    db: Session, customer_id: str, amount: int, identifier: str = SUBSCRIPTION, reason: Optional[str] = None
) -> TransactionHistory:
    """Debit the customer wallet for an immediate purchase; nothing is held for later release"""
    repo = WalletRepository()
    wallet = repo.get_customer_wallet(db, customer_id, for_update=True)
    if not wallet or wallet.status != "active":
        raise HTTPException(status_code=404, detail="Wallet not found. Please contact support.")
    if wallet.total_balance < amount:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Insufficient balance. Required: {amount:,} LAK, "
                f"available: {wallet.total_balance:,} LAK. Please top up your wallet."
            ),
        )

    wallet.total_balance -= amount
    transaction = repo.add_transaction(
        db,
        identifier=identifier,
        amount=-amount,
        status=TXN_APPROVED,
        customer_id=customer_id,
        reason=reason,
    )
    logger.info(f"💳 Charged {amount} LAK to customer {customer_id} ({identifier})")
    return transaction


def get_or_create_model_wallet(db: Session, model_id: str) -> Wallet:
    repo = WalletRepository()
    wallet = repo.get_model_wallet(db, model_id, for_update=True)
    if not wallet:
        logger.info(f"🆕 Creating wallet for model {model_id}")
        wallet = repo.create_wallet(db, model_id=model_id)
    return wallet


def release_payment(
    db: Session,
    booking: ServiceBooking,
    amount: int,
    commission_rate: Optional[int],
    identifier: str = BOOKING_EARNING,
) -> TransactionHistory:
    """Pay amount minus commission into the model wallet and close the hold"""
    repo = WalletRepository()
    commission = calculate_commission(amount, commission_rate)
    net_amount = amount - commission

    hold = repo.get_transaction(db, booking.hold_transaction_id)
    if hold:
        hold.status = TXN_RELEASED

    wallet = get_or_create_model_wallet(db, booking.model_id)
    wallet.total_balance += net_amount
    wallet.total_deposit += net_amount

    transaction = repo.add_transaction(
        db,
        identifier=identifier,
        amount=net_amount,
        status=TXN_APPROVED,
        commission=commission,
        model_id=booking.model_id,
        booking_id=booking.id,
        reason=f"Earning for booking {booking.id}",
    )
    logger.info(
        f"✅ Released {net_amount} LAK to model {booking.model_id} "
        f"(commission {commission}, booking {booking.id})"
    )
    return transaction


def refund_payment(
    db: Session,
    booking: ServiceBooking,
    amount: int,
    identifier: str = BOOKING_REFUND,
    close_hold: bool = True,
    reason: Optional[str] = None,
) -> Optional[TransactionHistory]:
    """Credit amount back to the customer wallet; a zero amount refunds nothing"""
    repo = WalletRepository()

    if close_hold:
        hold = repo.get_transaction(db, booking.hold_transaction_id)
        if hold:
            hold.status = TXN_REFUNDED

    if amount <= 0:
        return None

    wallet = repo.get_customer_wallet(db, booking.customer_id, for_update=True)
    if not wallet:
        raise HTTPException(status_code=404, detail="Wallet not found. Please contact support.")
    wallet.total_balance += amount

    transaction = repo.add_transaction(
        db,
        identifier=identifier,
        amount=amount,
        status=TXN_APPROVED,
        customer_id=booking.customer_id,
        booking_id=booking.id,
        reason=reason or f"Refund for booking {booking.id}",
    )
    logger.info(f"↩️ Refunded {amount} LAK to customer {booking.customer_id} ({identifier})")
    return transaction


def held_amount(db: Session, booking: ServiceBooking) -> int:
    """Positive amount currently held for booking"""
    hold = WalletRepository.get_transaction(db, booking.hold_transaction_id)
    return abs(hold.amount) if hold else 0
