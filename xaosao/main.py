import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

# Import models so every table is registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS, SLOW_REQUEST_SECONDS
from .database import Base, engine, get_db
from .domain.bookings.router import model_router as model_bookings_router
from .domain.bookings.router import router as bookings_router
from .domain.calls.router import router as calls_router
from .domain.discover.router import models_router
from .domain.discover.router import router as discover_router
from .domain.interactions.router import router as interactions_router
from .domain.packages.router import router as packages_router
from .domain.reviews.router import router as reviews_router
from .domain.wallet.router import router as wallet_router
from .rate_limiter import limiter
from .routes.auth import router as auth_router
from .routes.notifications import router as notifications_router
from .shared.responses import error_body

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

ROUTERS = (
    auth_router,
    discover_router,
    models_router,
    interactions_router,
    wallet_router,
    packages_router,
    bookings_router,
    model_bookings_router,
    calls_router,
    reviews_router,
    notifications_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 XaoSao API starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("✅ Database tables ready")
    except SQLAlchemyError as e:
        # Several workers racing on the first start; whoever loses sees the tables already there
        if "already exists" in str(e) or "duplicate key" in str(e):
            logger.info("Database tables already created by another worker")
        else:
            logger.error(f"❌ Failed to create database tables: {e}")

    if limiter.get_client() is None:
        logger.warning("⚠️ Redis not reachable, login rate limits are per process")

    yield
    logger.info("👋 XaoSao API shutting down...")


app = FastAPI(title="XaoSao API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Every error leaves the API as {success: false, error: true, message}"""
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.detail), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    A missing or malformed Authorization header is an authentication failure
    (401). Anything else is a 422 carrying the first field message plus a
    map of every failing field.
    """
    errors = exc.errors()
    if any("authorization" in str(error.get("loc", "")).lower() for error in errors):
        logger.warning(f"🔒 Missing or invalid Authorization header on {request.url.path}")
        return JSONResponse(
            status_code=401,
            content=error_body("Not authenticated. Please provide a valid Bearer token in the Authorization header."),
        )

    logger.warning(f"Validation error for {request.url.path}: {errors}")
    first = errors[0].get("msg", "Invalid input") if errors else "Invalid input"
    fields = {".".join(str(part) for part in error.get("loc", ())[1:]): error.get("msg") for error in errors}
    return JSONResponse(
        status_code=422,
        content={**error_body(first.removeprefix("Value error, ")), "errors": fields},
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise

    elapsed = time.perf_counter() - started
    if elapsed > SLOW_REQUEST_SECONDS:
        logger.warning(f"🐌 {request.method} {request.url.path} took {elapsed:.2f}s ({response.status_code})")
    return response


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

for router in ROUTERS:
    app.include_router(router)


@app.get("/")
def root():
    return {"message": "XaoSao API is running"}


@app.get("/health")
def health(db: Session = Depends(get_db)):
    """Liveness plus a round trip to the database"""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"❌ Health check could not reach the database: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "database": False})
    return {"status": "healthy", "database": True}


@app.get("/health/redis")
def redis_health():
    """Redis backs the shared rate limit windows; without it limits are per process"""
    client = limiter.get_client()
    if client is None:
        return {"status": "degraded", "redis": {"connected": False}}

    started = time.perf_counter()
    try:
        client.ping()
    except Exception as e:
        logger.warning(f"⚠️ Redis ping failed: {e}")
        return {"status": "degraded", "redis": {"connected": False, "error": str(e)}}
    return {
        "status": "healthy",
        "redis": {"connected": True, "response_time_ms": round((time.perf_counter() - started) * 1000, 2)},
    }
