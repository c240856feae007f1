"""Wallet router - FastAPI endpoints for wallet and top-up operations"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_customer
from ...database import get_db
from ...models import Customer, TransactionHistory, Wallet
from ...shared.responses import success_response
from .schemas import TopUpRequest, TopUpUpdate, TransactionResponse, WalletResponse
from .service import WalletService

router = APIRouter(prefix="/wallet", tags=["Wallet"])


def get_wallet_service(db: Session = Depends(get_db)) -> WalletService:
    """Dependency injection for WalletService"""
    return WalletService(db)


def wallet_response(wallet: Wallet) -> WalletResponse:
    return WalletResponse(
        id=wallet.id,
        totalBalance=wallet.total_balance,
        totalRecharge=wallet.total_recharge,
        totalDeposit=wallet.total_deposit,
        status=wallet.status,
    )


def transaction_response(t: TransactionHistory) -> TransactionResponse:
    return TransactionResponse(
        id=t.id,
        identifier=t.identifier,
        amount=t.amount,
        status=t.status,
        commission=t.commission or 0,
        fee=t.fee or 0,
        paymentSlip=t.payment_slip,
        reason=t.reason,
        bookingId=t.booking_id,
        createdAt=t.created_at,
    )


@router.get("", response_model=WalletResponse)
async def get_wallet(
    current_customer: Customer = Depends(get_current_customer),
    service: WalletService = Depends(get_wallet_service),
):
    """Current balance of the logged-in customer"""
    return wallet_response(service.get_wallet(current_customer))


@router.post("/top-up")
async def top_up_wallet(
    data: TopUpRequest,
    current_customer: Customer = Depends(get_current_customer),
    service: WalletService = Depends(get_wallet_service),
):
    transaction = service.top_up(data, current_customer)
    return success_response(
        "Top-up request submitted. Your balance will be updated once it is approved.",
        transaction=transaction_response(transaction),
    )


@router.get("/transactions")
async def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    identifier: Optional[str] = Query(None, description="Filter by transaction type"),
    current_customer: Customer = Depends(get_current_customer),
    service: WalletService = Depends(get_wallet_service),
):
    result = service.list_transactions(current_customer, page, limit, identifier)
    return {
        "transactions": [transaction_response(t) for t in result["transactions"]],
        "pagination": result["pagination"],
    }


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: str,
    current_customer: Customer = Depends(get_current_customer),
    service: WalletService = Depends(get_wallet_service),
):
    return transaction_response(service.get_transaction(transaction_id, current_customer))


@router.patch("/transactions/{transaction_id}")
async def update_top_up(
    transaction_id: str,
    data: TopUpUpdate,
    current_customer: Customer = Depends(get_current_customer),
    service: WalletService = Depends(get_wallet_service),
):
    """Edit a top-up request that has not been reviewed yet"""
    transaction = service.update_top_up(transaction_id, data, current_customer)
    return success_response("Top-up request updated", transaction=transaction_response(transaction))


@router.delete("/transactions/{transaction_id}")
async def delete_top_up(
    transaction_id: str,
    current_customer: Customer = Depends(get_current_customer),
    service: WalletService = Depends(get_wallet_service),
):
    service.delete_top_up(transaction_id, current_customer)
    return success_response("Top-up request deleted")
