"""Tests for provider billing endpoints: checkout, portal and history"""

from unittest.mock import MagicMock, patch

from careconnect.config import STRIPE_TRIAL_DAYS
from careconnect.domain.billing.stripe_service import StripeService
from careconnect.models import SubscriptionHistory


def checkout_session(url="https://checkout.stripe.com/c/cs_1"):
    return {"id": "cs_1", "url": url}


# =============================================================================
# Checkout
# =============================================================================


def test_checkout_creates_customer_on_first_use(client, db, my_provider, plans, stripe_mock):
    stripe_mock.is_available.return_value = True
    stripe_mock.create_customer.return_value = "cus_new"
    stripe_mock.create_checkout_session.return_value = checkout_session()

    response = client.post("/billing/checkout", json={"plan": "basic"})

    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout.stripe.com/c/cs_1", "session_id": "cs_1"}
    stripe_mock.create_customer.assert_called_once_with(
        email=my_provider.contact_email, name=my_provider.business_name, provider_id=my_provider.id
    )
    kwargs = stripe_mock.create_checkout_session.call_args.kwargs
    assert kwargs["customer_id"] == "cus_new"
    assert kwargs["price_id"] == "price_basic"
    assert kwargs["provider_id"] == my_provider.id
    assert kwargs["trial_days"] == STRIPE_TRIAL_DAYS
    db.refresh(my_provider)
    assert my_provider.stripe_customer_id == "cus_new"


def test_checkout_reuses_existing_customer(client, db, my_provider, plans, stripe_mock):
    my_provider.stripe_customer_id = "cus_existing"
    db.commit()
    stripe_mock.is_available.return_value = True
    stripe_mock.create_checkout_session.return_value = checkout_session()

    response = client.post("/billing/checkout", json={"plan": "Premium"})

    assert response.status_code == 200
    stripe_mock.create_customer.assert_not_called()
    kwargs = stripe_mock.create_checkout_session.call_args.kwargs
    assert kwargs["customer_id"] == "cus_existing"
    assert kwargs["price_id"] == "price_premium"
    assert kwargs["plan"] == "premium"


def test_checkout_for_unpriced_plan(client, my_provider, stripe_mock):
    stripe_mock.is_available.return_value = True

    with patch("careconnect.domain.billing.subscription_service.PRICE_IDS", {}):
        response = client.post("/billing/checkout", json={"plan": "basic"})

    assert response.status_code == 400
    stripe_mock.create_checkout_session.assert_not_called()


def test_checkout_without_stripe(client, my_provider, plans):
    response = client.post("/billing/checkout", json={"plan": "basic"})
    assert response.status_code == 503


def test_checkout_rejects_unknown_plan(client, my_provider):
    assert client.post("/billing/checkout", json={"plan": "gold"}).status_code == 422


def test_checkout_session_carries_trial_and_provider_metadata():
    stripe_client = StripeService(api_key="sk_test_123", webhook_secret="whsec_123")
    session = MagicMock(id="cs_1", url="https://checkout.stripe.com/c/cs_1")

    with patch(
        "careconnect.domain.billing.stripe_service.stripe.checkout.Session.create",
        return_value=session,
    ) as create:
        result = stripe_client.create_checkout_session(
            customer_id="cus_1",
            price_id="price_basic",
            provider_id="prov_1",
            plan="basic",
            success_url="https://app.example/dashboard",
            cancel_url="https://app.example/subscribe",
            trial_days=14,
        )

    assert result == {"id": "cs_1", "url": "https://checkout.stripe.com/c/cs_1"}
    kwargs = create.call_args.kwargs
    assert kwargs["mode"] == "subscription"
    assert kwargs["metadata"] == {"provider_id": "prov_1", "plan": "basic"}
    assert kwargs["subscription_data"]["trial_period_days"] == 14
    assert kwargs["subscription_data"]["metadata"]["provider_id"] == "prov_1"


# =============================================================================
# Portal and history
# =============================================================================


def test_portal_without_customer(client, my_provider, stripe_mock):
    stripe_mock.is_available.return_value = True

    response = client.post("/billing/portal")

    assert response.status_code == 404
    stripe_mock.create_portal_session.assert_not_called()


def test_portal_session(client, db, my_provider, stripe_mock):
    my_provider.stripe_customer_id = "cus_1"
    db.commit()
    stripe_mock.is_available.return_value = True
    stripe_mock.create_portal_session.return_value = "https://billing.stripe.com/p/session"

    response = client.post("/billing/portal")

    assert response.json() == {"url": "https://billing.stripe.com/p/session"}
    assert stripe_mock.create_portal_session.call_args.kwargs["customer_id"] == "cus_1"


def test_history_lists_only_own_payments(client, db, my_provider, make_provider):
    other = make_provider(business_name="Other Home")
    db.add_all(
        [
            SubscriptionHistory(
                provider_id=my_provider.id,
                amount=99.99,
                status="completed",
                idempotency_key="invoice:in_mine:paid",
                stripe_invoice_id="in_mine",
            ),
            SubscriptionHistory(
                provider_id=other.id,
                amount=139.99,
                status="completed",
                idempotency_key="invoice:in_other:paid",
            ),
        ]
    )
    db.commit()

    history = client.get("/billing/history").json()["history"]

    assert [row["stripe_invoice_id"] for row in history] == ["in_mine"]
    assert history[0]["amount"] == 99.99
