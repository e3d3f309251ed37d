import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
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


def generate_uuid():
    """Generate a UUID string primary key (Supabase tables use uuid ids)"""
    return str(uuid.uuid4())


class Provider(Base):
    __tablename__ = "providers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), unique=True, index=True, nullable=True)  # Supabase auth user
    business_name = Column(String(255), nullable=False)
    license_number = Column(String(100), nullable=True)

    # Contact (internal only, never shown on public listings)
    contact_person = Column(String(255), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)

    # Location
    address = Column(String(500), nullable=True)
    city = Column(String(255), nullable=True, index=True)
    state = Column(String(2), default="MN", nullable=True)
    zip_code = Column(String(10), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    formatted_address = Column(String(500), nullable=True)

    # Services & waivers
    service_types = Column(JSON, default=list, nullable=True)  # FRS, CRS, ICS, ADL, Assisted_Living
    accepted_waivers = Column(JSON, default=list, nullable=True)  # CADI, CAC, DD, BI, Elderly

    # Capacity
    total_capacity = Column(Integer, default=0, nullable=False)
    current_capacity = Column(Integer, default=0, nullable=False)
    is_at_capacity = Column(Boolean, default=False, nullable=False)
    is_ghosted = Column(Boolean, default=False, nullable=False)  # Hidden from availability search

    # Details
    description = Column(Text, nullable=True)
    amenities = Column(JSON, default=list, nullable=True)
    languages_spoken = Column(JSON, default=list, nullable=True)
    years_in_business = Column(Integer, nullable=True)

    # Photos (public URLs in object storage)
    primary_photo_url = Column(String(1000), nullable=True)
    photo_urls = Column(JSON, default=list, nullable=True)

    verified_245d = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, active, inactive, suspended

    # Subscription state
    subscription_status = Column(
        String(20), nullable=True
    )  # pending, trial, active, past_due, expired
    subscription_source = Column(String(20), nullable=True)  # manual, stripe
    subscription_plan_id = Column(String(36), ForeignKey("subscription_plans.id"), nullable=True)
    stripe_customer_id = Column(String(255), nullable=True, index=True)
    stripe_subscription_id = Column(String(255), nullable=True, index=True)
    subscription_start_date = Column(DateTime, nullable=True)
    subscription_end_date = Column(DateTime, nullable=True)
    trial_ends_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    plan = relationship("SubscriptionPlan")
    bookings = relationship("Booking", back_populates="provider", cascade="all, delete-orphan")
    conversations = relationship(
        "Conversation", back_populates="provider", cascade="all, delete-orphan"
    )
    history = relationship(
        "SubscriptionHistory", back_populates="provider", cascade="all, delete-orphan"
    )
    inquiries = relationship(
        "ProviderInquiry", back_populates="provider", cascade="all, delete-orphan"
    )
    saved_by = relationship(
        "SavedProvider", back_populates="provider", cascade="all, delete-orphan"
    )


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    slug = Column(String(50), unique=True, nullable=False)  # basic, premium
    name = Column(String(255), nullable=False)
    price = Column(Float, nullable=False)
    interval = Column(String(20), default="month", nullable=False)
    stripe_price_id = Column(String(255), unique=True, nullable=True)
    max_photos = Column(Integer, default=10, nullable=False)
    features = Column(JSON, default=list, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class SubscriptionHistory(Base):
    __tablename__ = "subscription_history"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    provider_id = Column(String(36), ForeignKey("providers.id"), nullable=False, index=True)
    plan_id = Column(String(36), ForeignKey("subscription_plans.id"), nullable=True)
    amount = Column(Float, default=0, nullable=False)
    status = Column(String(20), nullable=False)  # completed, failed
    payment_method = Column(String(50), default="stripe", nullable=False)
    stripe_invoice_id = Column(String(255), nullable=True)
    # Invoice or checkout session id; webhook retries must not duplicate rows
    idempotency_key = Column(String(255), unique=True, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    provider = relationship("Provider", back_populates="history")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    provider_id = Column(String(36), ForeignKey("providers.id"), nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(50), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String(10), nullable=False)  # HH:MM
    notes = Column(Text, nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, confirmed, cancelled, completed
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    provider = relationship("Provider", back_populates="bookings")


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    provider_id = Column(String(36), ForeignKey("providers.id"), nullable=False, index=True)
    customer_email = Column(String(255), nullable=False, index=True)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=True)
    status = Column(String(20), default="active", nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    provider = relationship("Provider", back_populates="conversations")
    booking = relationship("Booking")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    conversation_id = Column(
        String(36), ForeignKey("conversations.id"), nullable=False, index=True
    )
    sender_type = Column(String(20), nullable=False)  # provider, customer, support
    sender_id = Column(String(255), nullable=False)  # provider id or customer email
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    is_flagged = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), index=True)

    conversation = relationship("Conversation", back_populates="messages")


class CareSeeker(Base):
    __tablename__ = "care_seekers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    city = Column(String(255), nullable=True)
    zip_code = Column(String(10), nullable=True)
    waiver_type = Column(String(20), nullable=True)
    status = Column(String(20), default="active", nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    inquiries = relationship(
        "ProviderInquiry", back_populates="care_seeker", cascade="all, delete-orphan"
    )
    saved_providers = relationship(
        "SavedProvider", back_populates="care_seeker", cascade="all, delete-orphan"
    )


class ProviderInquiry(Base):
    __tablename__ = "provider_inquiries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    care_seeker_id = Column(String(36), ForeignKey("care_seekers.id"), nullable=False, index=True)
    provider_id = Column(String(36), ForeignKey("providers.id"), nullable=False, index=True)
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, read, responded, archived
    is_read = Column(Boolean, default=False, nullable=False)
    provider_response = Column(Text, nullable=True)
    responded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    care_seeker = relationship("CareSeeker", back_populates="inquiries")
    provider = relationship("Provider", back_populates="inquiries")


class SavedProvider(Base):
    __tablename__ = "saved_providers"
    __table_args__ = (UniqueConstraint("care_seeker_id", "provider_id"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    care_seeker_id = Column(String(36), ForeignKey("care_seekers.id"), nullable=False, index=True)
    provider_id = Column(String(36), ForeignKey("providers.id"), nullable=False, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    care_seeker = relationship("CareSeeker", back_populates="saved_providers")
    provider = relationship("Provider", back_populates="saved_by")


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), unique=True, index=True, nullable=False)
    role = Column(String(20), default="admin", nullable=False)  # super_admin, admin, staff
    permissions = Column(JSON, default=list, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class ContactSubmission(Base):
    __tablename__ = "contact_submissions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    subject = Column(String(255), nullable=True)
    message = Column(Text, nullable=False)
    status = Column(String(20), default="new", nullable=False)  # new, read, resolved
    created_at = Column(DateTime, server_default=func.now())
