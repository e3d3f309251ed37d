"""Tests for the scheduled worker jobs"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from careconnect import worker
from careconnect.models import Provider
from careconnect.services.geocoding import GeocodeResult
from careconnect.shared.dates import utcnow


@pytest.fixture
def worker_db(db):
    """Jobs open their own session; hand them the test session instead"""
    with patch("careconnect.worker.SessionLocal", return_value=db):
        yield db


async def test_trial_reminders_task(worker_db, make_provider):
    make_provider(subscription_status="trial", trial_ends_at=utcnow() + timedelta(days=3))

    with patch(
        "careconnect.domain.billing.subscription_service.send_trial_ending_email",
        new_callable=AsyncMock,
        return_value=True,
    ) as send:
        summary = await worker.trial_reminders_task({})

    assert summary == {"checked": 1, "emails_sent": 1, "errors": []}
    assert send.await_args.kwargs["days_left"] == 3


async def test_sync_task_skips_without_stripe(worker_db, stripe_mock):
    with patch("careconnect.worker.stripe_service", stripe_mock):
        assert await worker.sync_subscriptions_task({}) == {"skipped": True}
    stripe_mock.list_subscriptions.assert_not_called()


async def test_sync_task_expires_providers_without_subscriptions(worker_db, make_provider, stripe_mock):
    provider_id = make_provider(subscription_status="active", stripe_customer_id="cus_gone").id
    make_provider(
        business_name="Granted",
        subscription_status="active",
        subscription_source="manual",
        subscription_end_date=utcnow() + timedelta(days=30),
        stripe_customer_id="cus_granted",
    )
    stripe_mock.is_available.return_value = True
    stripe_mock.list_subscriptions.return_value = []

    with patch("careconnect.worker.stripe_service", stripe_mock):
        summary = await worker.sync_subscriptions_task({})

    assert summary == {"total": 2, "synced": 2, "failed": 0}
    stripe_mock.list_subscriptions.assert_called_once_with("cus_gone", limit=10)
    assert worker_db.get(Provider, provider_id).subscription_status == "expired"


async def test_geocode_backfill_task(worker_db, make_provider):
    provider_id = make_provider(address="100 Main St").id
    result = GeocodeResult(latitude=44.98, longitude=-93.27, formatted_address="100 Main St, MN")

    with patch(
        "careconnect.domain.providers.service.geocode_address",
        new_callable=AsyncMock,
        return_value=result,
    ):
        summary = await worker.geocode_backfill_task({})

    assert summary["total"] == 1
    assert summary["succeeded"] == 1
    assert worker_db.get(Provider, provider_id).latitude == 44.98
