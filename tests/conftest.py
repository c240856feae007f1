"""
Pytest configuration and shared fixtures for XaoSao API tests.
"""

import os
import tempfile
import uuid
from datetime import datetime

# Configure the app for tests before anything from xaosao is imported
os.environ.setdefault("SECRET_KEY", "test_secret")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.setdefault("DATABASE_URL", "sqlite:///" + os.path.join(tempfile.gettempdir(), "xaosao_test.db"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from xaosao import models  # noqa: F401
from xaosao.auth import ROLE_CUSTOMER, ROLE_MODEL
from xaosao.database import Base, get_db
from xaosao.main import app
from xaosao.models import (
    Customer,
    Model,
    ModelService,
    ModelServiceVariant,
    Service,
    Wallet,
)
from xaosao.security_utils import create_access_token, hash_password


@pytest.fixture(scope="function")
def engine():
    """Create test database engine with fresh schema for each test."""
    test_db_fd, test_db_file = tempfile.mkstemp(suffix=f"_{uuid.uuid4().hex}.db")
    os.close(test_db_fd)
    test_engine = create_engine(f"sqlite:///{test_db_file}", connect_args={"check_same_thread": False})

    Base.metadata.create_all(bind=test_engine)

    yield test_engine

    test_engine.dispose()
    try:
        if os.path.exists(test_db_file):
            os.unlink(test_db_file)
    except OSError:
        pass


@pytest.fixture(scope="function")
def db_session(engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client that shares the test database session."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

_phone_counter = iter(range(2050000000, 2059999999))


def next_phone() -> int:
    return next(_phone_counter)


@pytest.fixture
def make_customer(db_session):
    def _make(balance=0, first_name="Noy", latitude=None, longitude=None, with_wallet=True, **fields):
        customer = Customer(
            first_name=first_name,
            whatsapp=fields.pop("whatsapp", next_phone()),
            password=fields.pop("password", hash_password("password123")),
            gender=fields.pop("gender", "male"),
            dob=fields.pop("dob", datetime(1995, 5, 5)),
            latitude=latitude,
            longitude=longitude,
            status=fields.pop("status", "active"),
            **fields,
        )
        db_session.add(customer)
        db_session.flush()
        if with_wallet:
            db_session.add(
                Wallet(
                    customer_id=customer.id,
                    total_balance=balance,
                    total_recharge=balance,
                    total_deposit=0,
                    status="active",
                )
            )
        db_session.commit()
        db_session.refresh(customer)
        return customer

    return _make


@pytest.fixture
def make_model(db_session):
    def _make(first_name="Kham", rating=0, latitude=None, longitude=None, **fields):
        model = Model(
            first_name=first_name,
            whatsapp=fields.pop("whatsapp", next_phone()),
            password=fields.pop("password", hash_password("password123")),
            gender=fields.pop("gender", "female"),
            dob=fields.pop("dob", datetime(1999, 1, 1)),
            rating=rating,
            latitude=latitude,
            longitude=longitude,
            status=fields.pop("status", "active"),
            **fields,
        )
        db_session.add(model)
        db_session.commit()
        db_session.refresh(model)
        return model

    return _make


@pytest.fixture
def make_service(db_session):
    def _make(name="drinkingFriend", billing_type="per_hour", **fields):
        service = Service(
            name=name,
            billing_type=billing_type,
            base_rate=fields.pop("base_rate", 0),
            commission=fields.pop("commission", 0),
            status="active",
            **fields,
        )
        db_session.add(service)
        db_session.commit()
        db_session.refresh(service)
        return service

    return _make


@pytest.fixture
def make_model_service(db_session):
    def _make(model, service, variants=None, **fields):
        model_service = ModelService(
            model_id=model.id,
            service_id=service.id,
            is_available=fields.pop("is_available", True),
            status=fields.pop("status", "active"),
            **fields,
        )
        db_session.add(model_service)
        db_session.flush()
        for name, price in variants or []:
            db_session.add(
                ModelServiceVariant(model_service_id=model_service.id, name=name, price_per_hour=price)
            )
        db_session.commit()
        db_session.refresh(model_service)
        return model_service

    return _make


def customer_headers(customer) -> dict:
    return {"Authorization": f"Bearer {create_access_token(customer.id, ROLE_CUSTOMER)}"}


def model_headers(model) -> dict:
    return {"Authorization": f"Bearer {create_access_token(model.id, ROLE_MODEL)}"}
