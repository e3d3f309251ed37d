"""Tests for admin routes"""

from datetime import date, datetime
from unittest.mock import AsyncMock, patch

import pytest

from careconnect.domain.messaging.service import MessagingService
from careconnect.email_service import EmailNotConfiguredError
from careconnect.models import Booking, Message, Provider
from careconnect.services.geocoding import GeocodeResult


@pytest.fixture
def as_admin(admin, current_user):
    current_user.user_id = admin.user_id
    return admin


def test_non_admin_is_forbidden(client):
    assert client.get("/admin/stats").status_code == 403


def test_stats(client, as_admin, make_provider):
    make_provider()
    make_provider(status="pending")

    response = client.get("/admin/stats")

    assert response.status_code == 200
    stats = response.json()
    assert stats["total_providers"] == 2
    assert stats["active_providers"] == 1
    assert stats["total_bookings"] == 0


# =============================================================================
# Providers
# =============================================================================


def test_list_and_moderate_providers(client, as_admin, make_provider):
    provider = make_provider(business_name="Maple House", status="pending")
    make_provider(business_name="Oak House")

    listed = client.get("/admin/providers", params={"status": "pending"}).json()
    assert [p["business_name"] for p in listed] == ["Maple House"]
    assert listed[0]["contact_email"] == provider.contact_email

    response = client.put(
        f"/admin/providers/{provider.id}", json={"status": "active", "verified_245d": True}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "active"
    assert response.json()["verified_245d"] is True

    bad = client.put(f"/admin/providers/{provider.id}", json={"status": "deleted"})
    assert bad.status_code == 422


def test_delete_provider_cascades(client, db, as_admin, make_provider):
    provider = make_provider()
    db.add(
        Booking(
            provider_id=provider.id,
            customer_name="A",
            customer_email="a@b.co",
            customer_phone="+16125550100",
            date=date(2026, 5, 1),
            time="10:00",
        )
    )
    db.commit()
    MessagingService(db).open_conversation(provider, "a@b.co", opened_by="provider")

    response = client.delete(f"/admin/providers/{provider.id}")

    assert response.status_code == 200
    assert db.query(Provider).count() == 0
    assert db.query(Booking).count() == 0
    assert db.query(Message).count() == 0


def test_get_missing_provider(client, as_admin):
    assert client.get("/admin/providers/missing").status_code == 404


# =============================================================================
# Subscriptions
# =============================================================================


def test_grant_lifetime_access_survives_stripe_cancellation(client, db, as_admin, make_provider, plans):
    provider = make_provider(subscription_status="expired", stripe_customer_id="cus_1")

    response = client.post(
        f"/admin/providers/{provider.id}/subscription/grant",
        json={"duration": "lifetime", "plan": "premium"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["subscription_status"] == "active"
    assert body["subscription_source"] == "manual"
    assert body["subscription_end_date"].startswith("2099-12-31")
    assert body["subscription_plan_id"] == plans["premium"].id

    event = {
        "id": "evt_del",
        "type": "customer.subscription.deleted",
        "data": {"object": {"id": "sub_old", "customer": "cus_1"}},
    }
    client.post("/webhooks/stripe", json=event, headers={"stripe-signature": "t=1,v1=x"})
    db.refresh(provider)
    assert provider.subscription_status == "active"


def test_grant_rejects_unknown_duration(client, as_admin, make_provider):
    provider = make_provider()
    response = client.post(
        f"/admin/providers/{provider.id}/subscription/grant", json={"duration": "forever"}
    )
    assert response.status_code == 422


def test_start_trial_and_expire(client, as_admin, make_provider):
    provider = make_provider(subscription_status="expired", subscription_source="manual")

    trial = client.post(f"/admin/providers/{provider.id}/subscription/trial", json={"days": 14}).json()
    assert trial["subscription_status"] == "trial"
    assert trial["subscription_source"] is None
    assert trial["trial_ends_at"] is not None

    expired = client.post(f"/admin/providers/{provider.id}/subscription/expire").json()
    assert expired["subscription_status"] == "expired"


def test_subscription_filter(client, as_admin, make_provider):
    make_provider(business_name="Paying", subscription_status="active")
    make_provider(business_name="Lapsed", subscription_status="past_due")

    body = client.get("/admin/subscriptions", params={"status": "past_due"}).json()

    assert [p["business_name"] for p in body] == ["Lapsed"]


def test_sync_pulls_state_from_stripe(client, db, as_admin, make_provider, plans, stripe_mock):
    provider = make_provider(subscription_status="trial", stripe_customer_id="cus_1")
    stripe_mock.is_available.return_value = True
    stripe_mock.list_subscriptions.return_value = [
        {"id": "sub_old", "status": "canceled"},
        {
            "id": "sub_live",
            "status": "active",
            "current_period_start": 1772798400,
            "current_period_end": 1775476800,
            "items": {"data": [{"price": {"id": "price_basic", "unit_amount": 9999}}]},
        },
    ]

    response = client.post(f"/admin/providers/{provider.id}/subscription/sync", json={})

    assert response.status_code == 200
    assert response.json()["stripe_status"] == "active"
    db.refresh(provider)
    assert provider.subscription_status == "active"
    assert provider.stripe_subscription_id == "sub_live"
    assert provider.subscription_plan_id == plans["basic"].id
    assert provider.subscription_end_date == datetime(2026, 4, 6, 12, 0)


def test_sync_skips_manual_grant_unless_forced(client, as_admin, make_provider, stripe_mock):
    provider = make_provider(
        subscription_status="active", subscription_source="manual", stripe_customer_id="cus_1"
    )
    stripe_mock.is_available.return_value = True
    stripe_mock.list_subscriptions.return_value = []

    skipped = client.post(f"/admin/providers/{provider.id}/subscription/sync", json={}).json()
    assert skipped["message"] == "Manual grant, skipped"
    stripe_mock.list_subscriptions.assert_not_called()

    forced = client.post(
        f"/admin/providers/{provider.id}/subscription/sync", json={"force": True}
    ).json()
    assert forced["db_status"] == "expired"


def test_sync_picks_up_lapsed_grant(client, db, as_admin, make_provider, stripe_mock):
    provider = make_provider(
        subscription_status="active",
        subscription_source="manual",
        subscription_end_date=datetime(2020, 1, 31),
        stripe_customer_id="cus_1",
    )
    stripe_mock.is_available.return_value = True
    stripe_mock.list_subscriptions.return_value = [
        {"id": "sub_new", "status": "active", "current_period_end": 4102444800}
    ]

    body = client.post(f"/admin/providers/{provider.id}/subscription/sync", json={}).json()

    assert body["message"] == "Synced successfully"
    db.refresh(provider)
    assert provider.subscription_source == "stripe"
    assert provider.stripe_subscription_id == "sub_new"


def test_sync_all_reports_failures(client, as_admin, make_provider, stripe_mock):
    make_provider(business_name="Good", stripe_customer_id="cus_good")
    make_provider(business_name="Bad", stripe_customer_id="cus_bad")
    stripe_mock.is_available.return_value = True

    def list_subscriptions(customer_id, limit=10):
        if customer_id == "cus_bad":
            raise RuntimeError("Stripe timeout")
        return []

    stripe_mock.list_subscriptions.side_effect = list_subscriptions

    body = client.post("/admin/subscriptions/sync-all", json={}).json()

    assert body["total"] == 2
    assert body["synced"] == 1
    assert body["failed"] == 1


def test_update_plan(client, as_admin, plans):
    response = client.put(f"/admin/plans/{plans['basic'].id}", json={"price": 89.99})
    assert response.status_code == 200
    assert response.json()["price"] == 89.99
    assert client.put("/admin/plans/missing", json={"price": 1}).status_code == 404


# =============================================================================
# Moderation
# =============================================================================


def test_support_message_and_flag(client, db, as_admin, make_provider):
    provider = make_provider()
    conversation = MessagingService(db).open_conversation(provider, "jordan@example.com")

    listed = client.get("/admin/conversations").json()
    assert [c["id"] for c in listed] == [conversation.id]

    sent = client.post(
        f"/admin/conversations/{conversation.id}/messages", json={"content": "Support here."}
    ).json()
    assert sent["sender_type"] == "support"
    assert sent["sender_id"] == as_admin.user_id

    flagged = client.post(f"/admin/messages/{sent['id']}/flag", json={"is_flagged": True}).json()
    assert flagged["is_flagged"] is True
    assert client.post("/admin/messages/missing/flag", json={}).status_code == 404


# =============================================================================
# Outreach
# =============================================================================


def test_custom_email_without_provider_configured(client, as_admin):
    with patch(
        "careconnect.domain.admin.service.send_custom_email",
        new_callable=AsyncMock,
        side_effect=EmailNotConfiguredError("Email service not configured"),
    ):
        response = client.post(
            "/admin/emails/custom",
            json={"to": "dana@sunrise.example", "subject": "Hello", "message": "Welcome aboard"},
        )
    assert response.status_code == 503


def test_custom_email_sent(client, as_admin):
    with patch(
        "careconnect.domain.admin.service.send_custom_email",
        new_callable=AsyncMock,
        return_value={"id": "email_1"},
    ) as send:
        response = client.post(
            "/admin/emails/custom",
            json={"to": "Dana@Sunrise.example", "subject": "Hello", "message": "Welcome aboard"},
        )
    assert response.json() == {"success": True, "id": "email_1"}
    assert send.await_args.args[0] == "dana@sunrise.example"


def test_batch_geocode(client, db, as_admin, make_provider):
    found = make_provider(business_name="Found", address="1 Found St")
    make_provider(business_name="Lost", address="0 Nowhere")
    make_provider(business_name="Placed", latitude=45.0, longitude=-93.0)

    async def fake_geocode(address, city, state, zip_code):
        if address.startswith("1"):
            return GeocodeResult(latitude=44.98, longitude=-93.27, formatted_address="1 Found St, MN")
        return None

    with patch(
        "careconnect.domain.providers.service.geocode_address", side_effect=fake_geocode
    ), patch("careconnect.domain.admin.service.BATCH_GEOCODE_DELAY_SECONDS", 0):
        body = client.post("/admin/geocode/batch").json()

    assert body["total"] == 2
    assert body["succeeded"] == 1
    assert body["failures"][0]["business_name"] == "Lost"
    db.refresh(found)
    assert found.latitude == 44.98
