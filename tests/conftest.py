"""
Pytest configuration and shared fixtures
"""

import os

# Configure the app before it is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("MAPBOX_TOKEN", None)

from unittest.mock import MagicMock, patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from careconnect import rate_limiter  # noqa: E402
from careconnect.auth import CurrentUser, get_current_user  # noqa: E402
from careconnect.database import Base, get_db  # noqa: E402
from careconnect.domain.billing.router import get_stripe_service  # noqa: E402
from careconnect.domain.billing.stripe_service import StripeService  # noqa: E402
from careconnect.main import app  # noqa: E402
from careconnect.models import AdminUser, Provider, SubscriptionPlan  # noqa: E402

PROVIDER_USER_ID = "11111111-1111-1111-1111-111111111111"
ADMIN_USER_ID = "22222222-2222-2222-2222-222222222222"


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def memory_only_rate_limits():
    """Rate limits count in memory and start fresh for each test"""
    rate_limiter.memory_cache.clear()
    with patch("careconnect.rate_limiter.get_redis_client_or_none", return_value=None):
        yield
    rate_limiter.memory_cache.clear()


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_provider(db):
    def _make(**overrides) -> Provider:
        fields = {
            "user_id": None,
            "business_name": "Sunrise Family Home",
            "contact_person": "Dana Reyes",
            "contact_email": "dana@sunrise.example",
            "contact_phone": "+16125550100",
            "address": "100 Main St",
            "city": "Minneapolis",
            "state": "MN",
            "zip_code": "55401",
            "service_types": ["FRS"],
            "accepted_waivers": ["CADI"],
            "total_capacity": 4,
            "current_capacity": 2,
            "status": "active",
        }
        fields.update(overrides)
        provider = Provider(**fields)
        db.add(provider)
        db.commit()
        db.refresh(provider)
        return provider

    return _make


@pytest.fixture
def my_provider(make_provider):
    """Provider owned by the signed-in user, with an active subscription"""
    return make_provider(user_id=PROVIDER_USER_ID, subscription_status="active")


@pytest.fixture
def plans(db):
    basic = SubscriptionPlan(
        slug="basic", name="Basic Provider Plan", price=99.99, stripe_price_id="price_basic", max_photos=10
    )
    premium = SubscriptionPlan(
        slug="premium", name="Premium Provider Plan", price=139.99, stripe_price_id="price_premium", max_photos=50
    )
    db.add_all([basic, premium])
    db.commit()
    return {"basic": basic, "premium": premium}


@pytest.fixture
def admin(db):
    admin = AdminUser(user_id=ADMIN_USER_ID, role="admin")
    db.add(admin)
    db.commit()
    return admin


# =============================================================================
# API client
# =============================================================================


@pytest.fixture
def current_user():
    """The signed-in user; tests switch identity by mutating it"""
    return CurrentUser(user_id=PROVIDER_USER_ID, email="dana@sunrise.example")


@pytest.fixture
def stripe_mock():
    stripe_client = MagicMock(spec=StripeService)
    stripe_client.is_available.return_value = False
    stripe_client.can_verify_webhooks.return_value = True
    return stripe_client


@pytest.fixture
def client(db, current_user, stripe_mock):
    """Test client sharing the test session, with auth and Stripe overridden"""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: current_user
    app.dependency_overrides[get_stripe_service] = lambda: stripe_mock

    # No context manager: table creation and plan seeding at startup are skipped
    yield TestClient(app)

    app.dependency_overrides.clear()
