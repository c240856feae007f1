import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import Customer, Model
from .security_utils import verify_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer()

ROLE_CUSTOMER = "customer"
ROLE_MODEL = "model"


@dataclass
class Actor:
    """Authenticated party of a request"""

    role: str
    id: str


def decode_credentials(credentials: HTTPAuthorizationCredentials) -> dict:
    if not credentials:
        logger.error("❌ No credentials provided")
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise HTTPException(status_code=401, detail="Invalid token format. Expected a valid JWT token.")

    payload = verify_access_token(token)
    if not payload or not payload.get("sub") or payload.get("role") not in (ROLE_CUSTOMER, ROLE_MODEL):
        raise HTTPException(
            status_code=401,
            detail="Session expired or invalid. Please log in again.",
            headers={"X-Token-Expired": "true"},
        )
    return payload


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    """Either party; used by endpoints both customers and models call (e.g. calls)"""
    payload = decode_credentials(credentials)
    return Actor(role=payload["role"], id=payload["sub"])


async def get_current_customer(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Customer:
    """Get the logged-in customer from the bearer token"""
    payload = decode_credentials(credentials)
    if payload["role"] != ROLE_CUSTOMER:
        raise HTTPException(status_code=403, detail="Customer account required")

    customer = db.query(Customer).filter(Customer.id == payload["sub"]).first()
    if not customer:
        logger.warning(f"⚠️ Token for unknown customer {payload['sub']}")
        raise HTTPException(status_code=401, detail="Account not found. Please log in again.")
    if customer.status != "active":
        logger.warning(f"⚠️ Inactive customer {customer.id} attempted access")
        raise HTTPException(status_code=403, detail="Your account is not active")

    logger.debug(f"✅ Customer authenticated: {customer.id}")
    return customer


async def get_current_model(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Model:
    """Get the logged-in model from the bearer token"""
    payload = decode_credentials(credentials)
    if payload["role"] != ROLE_MODEL:
        raise HTTPException(status_code=403, detail="Model account required")

    model = db.query(Model).filter(Model.id == payload["sub"]).first()
    if not model:
        raise HTTPException(status_code=401, detail="Account not found. Please log in again.")
    if model.status != "active":
        raise HTTPException(status_code=403, detail="Your account is not active")

    logger.debug(f"✅ Model authenticated: {model.id}")
    return model
