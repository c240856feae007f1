"""Call domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.timeutils import to_naive_utc
from ...shared.validators import validate_safe_text

CALL_TYPES = ("audio", "video")


class CallBookingCreate(BaseModel):
    modelServiceId: str
    callType: str = "video"
    scheduledTime: Optional[datetime] = None

    @field_validator("callType")
    @classmethod
    def validate_call_type(cls, v):
        v = (v or "").lower()
        if v not in CALL_TYPES:
            raise ValueError("Call type must be audio or video")
        return v

    @field_validator("scheduledTime")
    @classmethod
    def normalize_scheduled_time(cls, v):
        return to_naive_utc(v)


class DeclineCallRequest(BaseModel):
    reason: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        return validate_safe_text(v, "Reason", max_length=500)


class RegisterPeerRequest(BaseModel):
    peerId: str

    @field_validator("peerId")
    @classmethod
    def validate_peer_id(cls, v):
        v = (v or "").strip()
        if not v or len(v) > 128:
            raise ValueError("Peer ID is required (max 128 characters)")
        if not all(c.isalnum() or c in "-_" for c in v):
            raise ValueError("Peer ID may only contain letters, digits, '-' and '_'")
        return v


class CallStateResponse(BaseModel):
    id: str
    callType: str
    callStatus: str
    status: str
    paymentStatus: str
    roomId: Optional[str] = None
    customerPeerId: Optional[str] = None
    modelPeerId: Optional[str] = None
    modelId: str
    modelName: Optional[str] = None
    modelProfile: Optional[str] = None
    minuteRate: int
    holdAmount: int
    maxMinutes: int
    currentDuration: int = 0
    currentCost: int = 0
    remainingBalance: int = 0
    ringSecondsLeft: Optional[int] = None
    scheduledCallTime: Optional[datetime] = None
    callStartedAt: Optional[datetime] = None
    callEndedAt: Optional[datetime] = None
    endedBy: Optional[str] = None
    billedMinutes: Optional[int] = None
    price: int
    createdAt: Optional[datetime] = None


class HeartbeatResponse(BaseModel):
    callStatus: str
    durationSeconds: int
    currentCost: int
    remainingBalance: int
