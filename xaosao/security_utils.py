"""
Security Utilities
Password hashing, access tokens, opaque identifiers and input sanitization
"""

import base64
import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

# Input sanitization
import bleach

# Token generation and validation
from jose import JWTError
from jose import jwt as jose_jwt

# Password hashing
from passlib.context import CryptContext

from .config import JWT_ALGORITHM, JWT_EXPIRE_MINUTES, SECRET_KEY

logger = logging.getLogger(__name__)

COMPLETION_TOKEN_PREFIX = "xao_"

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        logger.error(f"Password verification error: {e}")
        return False


# ============================================================================
# ACCESS TOKENS
# ============================================================================


def create_access_token(subject: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT for a customer or model session

    Args:
        subject: Customer or model id
        role: "customer" or "model"
        expires_delta: Token lifetime (default JWT_EXPIRE_MINUTES)
    """
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=JWT_EXPIRE_MINUTES))
    to_encode = {"sub": subject, "role": role, "exp": expire}
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_access_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a JWT token

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


# ============================================================================
# OPAQUE IDENTIFIERS
# ============================================================================


def generate_completion_token() -> str:
    """Single-use token embedded in the booking completion QR code"""
    raw = base64.urlsafe_b64encode(secrets.token_bytes(24)).decode().rstrip("=")
    return f"{COMPLETION_TOKEN_PREFIX}{raw}"


def generate_reset_code() -> str:
    """Six character code texted for a password reset"""
    return secrets.token_hex(3).upper()


def generate_call_room_id() -> str:
    return f"call_{secrets.token_hex(16)}"


def generate_peer_id(prefix: str) -> str:
    """Peer id for the WebRTC signalling layer, e.g. cust_xxx / model_xxx"""
    return f"{prefix}_{secrets.token_hex(8)}"


# ============================================================================
# INPUT SANITIZATION
# ============================================================================


def sanitize_text(value: Optional[str]) -> Optional[str]:
    """Strip all HTML from user supplied free text"""
    if value is None:
        return None
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()
