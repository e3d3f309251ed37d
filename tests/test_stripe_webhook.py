"""Tests for the Stripe webhook endpoint"""

import json
from datetime import datetime
from unittest.mock import AsyncMock, patch

import stripe

from careconnect.models import SubscriptionHistory

WEBHOOK_URL = "/webhooks/stripe"


def post_event(client, event, signature="t=1,v1=abc"):
    headers = {"Content-Type": "application/json"}
    if signature:
        headers["stripe-signature"] = signature
    return client.post(WEBHOOK_URL, content=json.dumps(event), headers=headers)


def failed_invoice_event(subscription_id="sub_123"):
    return {
        "id": "evt_fail",
        "type": "invoice.payment_failed",
        "data": {
            "object": {
                "id": "in_1",
                "subscription": subscription_id,
                "customer": "cus_123",
                "amount_due": 9999,
            }
        },
    }


def test_missing_signature_is_rejected(client, stripe_mock):
    response = post_event(client, failed_invoice_event(), signature=None)

    assert response.status_code == 400
    stripe_mock.construct_event.assert_not_called()


def test_bad_signature_is_rejected(client, stripe_mock):
    stripe_mock.construct_event.side_effect = stripe.SignatureVerificationError(
        "No signatures found", "t=1,v1=abc"
    )

    response = post_event(client, failed_invoice_event())

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid signature"


def test_unconfigured_webhook_returns_500(client, stripe_mock):
    stripe_mock.can_verify_webhooks.return_value = False

    response = post_event(client, failed_invoice_event())

    assert response.status_code == 500


def test_payment_failed_event_updates_provider(client, db, make_provider, stripe_mock):
    provider = make_provider(
        subscription_status="active",
        subscription_source="stripe",
        stripe_customer_id="cus_123",
        stripe_subscription_id="sub_123",
        subscription_end_date=datetime(2026, 12, 1),
    )

    response = post_event(client, failed_invoice_event())

    assert response.status_code == 200
    assert response.json() == {"received": True}
    stripe_mock.construct_event.assert_called_once()
    db.refresh(provider)
    assert provider.subscription_status == "past_due"
    assert db.query(SubscriptionHistory).count() == 1


def test_unknown_subscription_still_acknowledged(client, db, make_provider):
    provider = make_provider(subscription_status="active", stripe_subscription_id="sub_123")

    response = post_event(client, failed_invoice_event(subscription_id="sub_other"))

    assert response.status_code == 200
    db.refresh(provider)
    assert provider.subscription_status == "active"


def test_processing_error_still_acknowledged(client, make_provider):
    make_provider(stripe_subscription_id="sub_123")

    with patch(
        "careconnect.domain.billing.subscription_service.SubscriptionService.reconcile",
        side_effect=RuntimeError("database unavailable"),
    ):
        response = post_event(client, failed_invoice_event())

    assert response.status_code == 200


def test_checkout_event_sends_confirmation(client, db, make_provider):
    provider = make_provider(subscription_status="trial")
    event = {
        "id": "evt_checkout",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_1",
                "customer": "cus_9",
                "subscription": "sub_9",
                "amount_total": 9999,
                "metadata": {"provider_id": provider.id},
            }
        },
    }

    with patch(
        "careconnect.domain.billing.subscription_service.send_subscription_confirmed_email",
        new_callable=AsyncMock,
    ) as send_confirmation:
        response = post_event(client, event)

    assert response.status_code == 200
    db.refresh(provider)
    assert provider.subscription_status == "active"
    assert provider.stripe_subscription_id == "sub_9"
    send_confirmation.assert_awaited_once()
    assert send_confirmation.await_args.kwargs["to"] == provider.contact_email
