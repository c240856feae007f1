import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./xaosao.db")

# Connection pool (ignored for SQLite)
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "30"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
DB_LOG_SLOW_QUERIES = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
DB_SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = "HS256"
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", str(60 * 24 * 7)))

# Frontend base URL for share links and QR codes
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "https://xaosao.com,https://www.xaosao.com,http://localhost:5173,http://localhost:3000",
).split(",")
SLOW_REQUEST_SECONDS = float(os.getenv("SLOW_REQUEST_SECONDS", "2.0"))

# Rate limiting (login / register). Disable only for local development and tests
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
LOGIN_RATE_LIMIT = int(os.getenv("LOGIN_RATE_LIMIT", "10"))
LOGIN_RATE_WINDOW_SECONDS = int(os.getenv("LOGIN_RATE_WINDOW_SECONDS", "300"))

# Booking rules (amounts are LAK, no minor unit)
MIN_BOOKING_PRICE = int(os.getenv("MIN_BOOKING_PRICE", "10000"))
CANCELLATION_CUTOFF_HOURS = int(os.getenv("CANCELLATION_CUTOFF_HOURS", "2"))
CHECK_IN_RADIUS_KM = float(os.getenv("CHECK_IN_RADIUS_KM", "0.05"))  # 50 metres
CHECK_IN_EARLY_MINUTES = int(os.getenv("CHECK_IN_EARLY_MINUTES", "30"))
AUTO_RELEASE_HOURS = int(os.getenv("AUTO_RELEASE_HOURS", "24"))
COMPLETION_TOKEN_HOURS = int(os.getenv("COMPLETION_TOKEN_HOURS", "24"))
DEFAULT_COMMISSION_RATE = int(os.getenv("DEFAULT_COMMISSION_RATE", "0"))

# Call booking
CALL_RING_TIMEOUT_SECONDS = int(os.getenv("CALL_RING_TIMEOUT_SECONDS", "60"))
CALL_HEARTBEAT_TIMEOUT_SECONDS = int(os.getenv("CALL_HEARTBEAT_TIMEOUT_SECONDS", "90"))
CALL_MAX_HOLD_MINUTES = int(os.getenv("CALL_MAX_HOLD_MINUTES", "120"))

# Discover
NEARBY_MAX_DISTANCE_KM = float(os.getenv("NEARBY_MAX_DISTANCE_KM", "50"))

# Password reset codes sent by SMS
SMS_API_URL = os.getenv("SMS_API_URL", "")
SMS_API_KEY = os.getenv("SMS_API_KEY", "")
SMS_API_SECRET = os.getenv("SMS_API_SECRET", "")
SMS_SENDER = os.getenv("SMS_SENDER", "OTP")
RESET_TOKEN_MINUTES = int(os.getenv("RESET_TOKEN_MINUTES", "10"))
RESET_VERIFIED_MINUTES = int(os.getenv("RESET_VERIFIED_MINUTES", "5"))
RESET_RESEND_SECONDS = int(os.getenv("RESET_RESEND_SECONDS", "60"))
