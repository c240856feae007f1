import uuid

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=generate_id)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=True)
    whatsapp = Column(BigInteger, unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)  # bcrypt hash
    gender = Column(String(20), nullable=True)  # male, female, other
    dob = Column(DateTime, nullable=True)
    profile = Column(String(500), nullable=True)  # profile image URL
    bio = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    status = Column(String(20), default="active", nullable=False)  # active, inactive, suspended
    # Password reset by SMS code
    reset_token = Column(String(10), nullable=True)
    reset_token_expiry = Column(DateTime, nullable=True)
    reset_token_verified = Column(Boolean, default=False, nullable=False)
    reset_requested_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    wallet = relationship("Wallet", back_populates="customer", uselist=False)
    bookings = relationship("ServiceBooking", back_populates="customer")
    interactions = relationship("CustomerInteraction", back_populates="customer")


class Model(Base):
    """A companion profile that customers browse and book"""

    __tablename__ = "models"

    id = Column(String(36), primary_key=True, default=generate_id)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=True)
    whatsapp = Column(BigInteger, unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    gender = Column(String(20), nullable=True)
    dob = Column(DateTime, nullable=True)
    bio = Column(Text, nullable=True)
    address = Column(String(255), nullable=True)
    career = Column(String(100), nullable=True)
    education = Column(String(100), nullable=True)
    interests = Column(JSON, nullable=True)  # list of interest labels
    profile = Column(String(500), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    rating = Column(Float, default=0, nullable=False)
    total_review = Column(Integer, default=0, nullable=False)
    available_status = Column(String(20), default="available", nullable=True)  # available, busy, offline
    status = Column(String(20), default="active", nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    images = relationship("ModelImage", back_populates="model", cascade="all, delete-orphan")
    model_services = relationship("ModelService", back_populates="model")
    wallet = relationship("Wallet", back_populates="model", uselist=False)


class ModelImage(Base):
    __tablename__ = "model_images"

    id = Column(String(36), primary_key=True, default=generate_id)
    model_id = Column(String(36), ForeignKey("models.id"), index=True, nullable=False)
    name = Column(String(500), nullable=False)  # image URL
    status = Column(String(20), default="active", nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    model = relationship("Model", back_populates="images")


class Service(Base):
    """Service catalogue entry and its default pricing for every billing type"""

    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(50), unique=True, nullable=False)  # e.g. massage, drinkingFriend
    description = Column(Text, nullable=True)
    billing_type = Column(String(20), default="per_day", nullable=False)
    base_rate = Column(Integer, default=0, nullable=False)  # per day
    hourly_rate = Column(Integer, nullable=True)
    one_time_price = Column(Integer, nullable=True)
    one_night_price = Column(Integer, nullable=True)
    minute_rate = Column(Integer, nullable=True)
    commission = Column(Integer, default=0, nullable=False)  # percent kept by the platform
    order = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default="active", nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    model_services = relationship("ModelService", back_populates="service")


class ModelService(Base):
    """A model's offer of a catalogue service, optionally with custom prices"""

    __tablename__ = "model_services"
    __table_args__ = (UniqueConstraint("model_id", "service_id", name="uq_model_service"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    model_id = Column(String(36), ForeignKey("models.id"), index=True, nullable=False)
    service_id = Column(String(36), ForeignKey("services.id"), index=True, nullable=False)
    custom_rate = Column(Integer, nullable=True)
    custom_hourly_rate = Column(Integer, nullable=True)
    custom_one_time_price = Column(Integer, nullable=True)
    custom_one_night_price = Column(Integer, nullable=True)
    custom_minute_rate = Column(Integer, nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    service_location = Column(String(255), nullable=True)
    status = Column(String(20), default="active", nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    model = relationship("Model", back_populates="model_services")
    service = relationship("Service", back_populates="model_services")
    variants = relationship(
        "ModelServiceVariant", back_populates="model_service", cascade="all, delete-orphan"
    )


class ModelServiceVariant(Base):
    """Priced sub-option of a model service (e.g. Thai or oil massage)"""

    __tablename__ = "model_service_variants"

    id = Column(String(36), primary_key=True, default=generate_id)
    model_service_id = Column(
        String(36), ForeignKey("model_services.id"), index=True, nullable=False
    )
    name = Column(String(100), nullable=False)
    price_per_hour = Column(Integer, nullable=False)
    status = Column(String(20), default="active", nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    model_service = relationship("ModelService", back_populates="variants")


class ServiceBooking(Base):
    """A customer's booking of a model service, including per-minute call bookings"""

    __tablename__ = "service_bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    customer_id = Column(String(36), ForeignKey("customers.id"), index=True, nullable=False)
    model_id = Column(String(36), ForeignKey("models.id"), index=True, nullable=False)
    model_service_id = Column(String(36), ForeignKey("model_services.id"), nullable=False)
    variant_id = Column(String(36), ForeignKey("model_service_variants.id"), nullable=True)

    price = Column(Integer, nullable=False)
    day_amount = Column(Integer, nullable=True)
    hours = Column(Integer, nullable=True)
    session_type = Column(String(20), nullable=True)  # one_time, one_night
    minutes = Column(Integer, nullable=True)
    location = Column(String(1000), nullable=True)
    location_latitude = Column(Float, nullable=True)
    location_longitude = Column(Float, nullable=True)
    preferred_attire = Column(String(255), nullable=True)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)

    # pending, confirmed, rejected, cancelled, in_progress, awaiting_confirmation, completed, disputed
    status = Column(String(30), default="pending", nullable=False, index=True)
    # pending, held, pending_release, released, refunded
    payment_status = Column(String(30), default="pending", nullable=False)
    hold_transaction_id = Column(String(36), nullable=True)
    release_transaction_id = Column(String(36), nullable=True)
    reject_reason = Column(Text, nullable=True)

    # Check-in and completion
    model_checked_in_at = Column(DateTime, nullable=True)
    model_check_in_lat = Column(Float, nullable=True)
    model_check_in_lng = Column(Float, nullable=True)
    customer_checked_in_at = Column(DateTime, nullable=True)
    customer_check_in_lat = Column(Float, nullable=True)
    customer_check_in_lng = Column(Float, nullable=True)
    completion_token = Column(String(64), unique=True, nullable=True)
    completion_token_expires_at = Column(DateTime, nullable=True)
    auto_release_at = Column(DateTime, nullable=True)
    dispute_reason = Column(Text, nullable=True)
    disputed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Per-minute call fields
    call_type = Column(String(10), nullable=True)  # audio, video
    call_status = Column(String(20), nullable=True)
    call_minute_rate = Column(Integer, nullable=True)  # rate fixed when the call is booked
    call_room_id = Column(String(64), nullable=True)
    scheduled_call_time = Column(DateTime, nullable=True)
    customer_peer_id = Column(String(64), nullable=True)
    model_peer_id = Column(String(64), nullable=True)
    call_ring_started_at = Column(DateTime, nullable=True)
    call_started_at = Column(DateTime, nullable=True)
    call_last_heartbeat = Column(DateTime, nullable=True)
    call_ended_at = Column(DateTime, nullable=True)
    call_ended_by = Column(String(20), nullable=True)  # customer, model, system

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="bookings")
    model = relationship("Model")
    model_service = relationship("ModelService")
    variant = relationship("ModelServiceVariant")


class Wallet(Base):
    __tablename__ = "wallets"

    id = Column(String(36), primary_key=True, default=generate_id)
    customer_id = Column(String(36), ForeignKey("customers.id"), unique=True, nullable=True)
    model_id = Column(String(36), ForeignKey("models.id"), unique=True, nullable=True)
    total_balance = Column(Integer, default=0, nullable=False)
    total_recharge = Column(Integer, default=0, nullable=False)
    total_deposit = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default="active", nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="wallet")
    model = relationship("Model", back_populates="wallet")


class TransactionHistory(Base):
    """Wallet ledger entry; amounts are signed (debits negative)"""

    __tablename__ = "transaction_histories"

    id = Column(String(36), primary_key=True, default=generate_id)
    # recharge, booking_hold, booking_refund, booking_earning,
    # call_hold, call_refund, call_refund_unused, call_earning, subscription
    identifier = Column(String(30), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    # pending, approved, rejected, held, released, refunded
    status = Column(String(20), default="pending", nullable=False)
    commission = Column(Integer, default=0, nullable=False)
    fee = Column(Integer, default=0, nullable=False)
    payment_slip = Column(String(500), nullable=True)
    reason = Column(Text, nullable=True)
    booking_id = Column(String(36), ForeignKey("service_bookings.id"), nullable=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), index=True, nullable=True)
    model_id = Column(String(36), ForeignKey("models.id"), index=True, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class CustomerInteraction(Base):
    """Customer LIKE / PASS on a model"""

    __tablename__ = "customer_interactions"
    __table_args__ = (
        UniqueConstraint("customer_id", "model_id", "action", name="uq_customer_interaction"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    customer_id = Column(String(36), ForeignKey("customers.id"), index=True, nullable=False)
    model_id = Column(String(36), ForeignKey("models.id"), index=True, nullable=False)
    action = Column(String(10), nullable=False)  # LIKE, PASS
    created_at = Column(DateTime, server_default=func.now())

    customer = relationship("Customer", back_populates="interactions")
    model = relationship("Model")


class ModelInteraction(Base):
    """Model LIKE / PASS on a customer"""

    __tablename__ = "model_interactions"
    __table_args__ = (
        UniqueConstraint("model_id", "customer_id", "action", name="uq_model_interaction"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    model_id = Column(String(36), ForeignKey("models.id"), index=True, nullable=False)
    customer_id = Column(String(36), ForeignKey("customers.id"), index=True, nullable=False)
    action = Column(String(10), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    model = relationship("Model")


class FriendContact(Base):
    __tablename__ = "friend_contacts"
    __table_args__ = (UniqueConstraint("model_id", "customer_id", name="uq_friend_contact"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    model_id = Column(String(36), ForeignKey("models.id"), index=True, nullable=False)
    customer_id = Column(String(36), ForeignKey("customers.id"), index=True, nullable=False)
    adder_type = Column(String(10), nullable=False)  # CUSTOMER, MODEL
    contact_type = Column(String(10), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (UniqueConstraint("customer_id", "model_id", name="uq_review_customer_model"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    model_id = Column(String(36), ForeignKey("models.id"), index=True, nullable=False)
    customer_id = Column(String(36), ForeignKey("customers.id"), index=True, nullable=False)
    booking_id = Column(String(36), ForeignKey("service_bookings.id"), nullable=True)
    rating = Column(Integer, nullable=False)
    title = Column(String(100), nullable=True)
    review_text = Column(String(500), nullable=True)
    is_anonymous = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    customer = relationship("Customer")


class SubscriptionPlan(Base):
    """Membership package a customer buys from the wallet"""

    __tablename__ = "subscription_plans"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Integer, nullable=False)
    duration_days = Column(Integer, nullable=False)
    features = Column(JSON, nullable=True)  # {label: value}
    is_popular = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default="active", nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Subscription(Base):
    """The customer's single subscription row, moved to a new plan on every purchase"""

    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=generate_id)
    customer_id = Column(String(36), ForeignKey("customers.id"), unique=True, nullable=False)
    plan_id = Column(String(36), ForeignKey("subscription_plans.id"), nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String(20), default="active", nullable=False)  # active, expired, pending_payment
    auto_renew = Column(Boolean, default=True, nullable=False)
    payment_method = Column(String(20), default="wallet", nullable=False)
    transaction_id = Column(String(36), ForeignKey("transaction_histories.id"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    plan = relationship("SubscriptionPlan")


class SubscriptionHistory(Base):
    __tablename__ = "subscription_histories"

    id = Column(String(36), primary_key=True, default=generate_id)
    subscription_id = Column(String(36), ForeignKey("subscriptions.id"), nullable=False)
    customer_id = Column(String(36), ForeignKey("customers.id"), index=True, nullable=False)
    plan_name = Column(String(100), nullable=False)
    plan_price = Column(Integer, nullable=False)
    duration_days = Column(Integer, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    payment_method = Column(String(20), nullable=False)
    transaction_id = Column(String(36), nullable=True)
    status = Column(String(20), nullable=False)  # active, upgraded
    created_at = Column(DateTime, server_default=func.now())


class Report(Base):
    """Problem report sent by a customer to the support team"""

    __tablename__ = "reports"

    id = Column(String(36), primary_key=True, default=generate_id)
    customer_id = Column(String(36), ForeignKey("customers.id"), index=True, nullable=False)
    type = Column(String(30), nullable=False)  # general, booking, payment, safety, bug
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(20), default="open", nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_id)
    customer_id = Column(String(36), ForeignKey("customers.id"), index=True, nullable=True)
    model_id = Column(String(36), ForeignKey("models.id"), index=True, nullable=True)
    type = Column(String(50), nullable=False)  # booking_created, new_like, incoming_call, ...
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=generate_id)
    action = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False)  # success, failed
    payload = Column(JSON, nullable=True)
    customer_id = Column(String(36), nullable=True)
    model_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
