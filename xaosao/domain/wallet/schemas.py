"""Wallet domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator


class TopUpRequest(BaseModel):
    """Schema for requesting a wallet top-up with a bank transfer slip"""

    amount: int
    paymentSlip: str

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        if v <= 0:
            raise ValueError("Amount must be greater than 0")
        return v

    @field_validator("paymentSlip")
    @classmethod
    def validate_slip(cls, v):
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("Payment slip must be an uploaded image URL")
        return v


class TopUpUpdate(BaseModel):
    amount: Optional[int] = None
    paymentSlip: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Amount must be greater than 0")
        return v


class WalletResponse(BaseModel):
    id: str
    totalBalance: int
    totalRecharge: int
    totalDeposit: int
    status: str


class TransactionResponse(BaseModel):
    id: str
    identifier: str
    amount: int
    status: str
    commission: int = 0
    fee: int = 0
    paymentSlip: Optional[str] = None
    reason: Optional[str] = None
    bookingId: Optional[str] = None
    createdAt: Optional[datetime] = None
