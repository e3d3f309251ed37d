"""Tests for parsing raw Stripe payloads into billing events"""

from datetime import datetime, timezone

from careconnect.domain.billing.events import (
    CheckoutCompleted,
    InvoicePaymentFailed,
    InvoicePaymentSucceeded,
    SubscriptionDeleted,
    SubscriptionUpdated,
    UnhandledEvent,
    parse_stripe_event,
    parse_subscription,
)

PERIOD_START = 1772798400  # 2026-03-06 12:00 UTC
PERIOD_END = 1775476800  # 2026-04-06 12:00 UTC


def as_naive(timestamp):
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).replace(tzinfo=None)


def stripe_event(event_type, obj, event_id="evt_1"):
    return {"id": event_id, "type": event_type, "data": {"object": obj}}


def test_checkout_session_completed():
    event = parse_stripe_event(
        stripe_event(
            "checkout.session.completed",
            {
                "id": "cs_test_1",
                "customer": "cus_1",
                "subscription": "sub_1",
                "amount_total": 9999,
                "metadata": {"provider_id": "prov-1"},
            },
        )
    )

    assert isinstance(event, CheckoutCompleted)
    assert event.session_id == "cs_test_1"
    assert event.provider_id == "prov-1"
    assert event.customer_id == "cus_1"
    assert event.subscription_id == "sub_1"
    assert event.amount_total == 99.99
    assert event.subscription is None


def test_subscription_updated_reads_period_from_items():
    raw = {
        "id": "sub_1",
        "customer": {"id": "cus_1", "object": "customer"},
        "status": "trialing",
        "trial_end": PERIOD_END,
        "items": {
            "data": [
                {
                    "current_period_start": PERIOD_START,
                    "current_period_end": PERIOD_END,
                    "price": {"id": "price_basic", "unit_amount": 9999},
                }
            ]
        },
    }

    event = parse_stripe_event(stripe_event("customer.subscription.updated", raw))

    assert isinstance(event, SubscriptionUpdated)
    snapshot = event.subscription
    assert snapshot.customer_id == "cus_1"
    assert snapshot.current_period_start == as_naive(PERIOD_START)
    assert snapshot.current_period_end == as_naive(PERIOD_END)
    assert snapshot.trial_end == as_naive(PERIOD_END)
    assert snapshot.price_id == "price_basic"
    assert snapshot.unit_amount == 99.99


def test_subscription_created_parses_as_update():
    event = parse_stripe_event(
        stripe_event("customer.subscription.created", {"id": "sub_2", "status": "active"})
    )
    assert isinstance(event, SubscriptionUpdated)
    assert event.subscription.status == "active"


def test_top_level_period_wins_over_items():
    snapshot = parse_subscription(
        {
            "id": "sub_1",
            "status": "active",
            "current_period_end": PERIOD_END,
            "items": {"data": [{"current_period_end": PERIOD_START}]},
            "latest_invoice": "in_1",
        }
    )
    assert snapshot.current_period_end == as_naive(PERIOD_END)
    assert snapshot.latest_invoice_id == "in_1"


def test_subscription_deleted():
    event = parse_stripe_event(
        stripe_event("customer.subscription.deleted", {"id": "sub_1", "customer": "cus_1"})
    )
    assert isinstance(event, SubscriptionDeleted)
    assert event.subscription_id == "sub_1"
    assert event.customer_id == "cus_1"


def test_invoice_payment_failed_with_parent_subscription():
    event = parse_stripe_event(
        stripe_event(
            "invoice.payment_failed",
            {
                "id": "in_1",
                "customer": "cus_1",
                "amount_due": 13999,
                "parent": {"subscription_details": {"subscription": "sub_1"}},
            },
        )
    )
    assert isinstance(event, InvoicePaymentFailed)
    assert event.subscription_id == "sub_1"
    assert event.amount_due == 139.99


def test_invoice_paid_reads_line_period_and_price():
    event = parse_stripe_event(
        stripe_event(
            "invoice.paid",
            {
                "id": "in_2",
                "subscription": "sub_1",
                "amount_paid": 9999,
                "lines": {
                    "data": [
                        {
                            "period": {"start": PERIOD_START, "end": PERIOD_END},
                            "pricing": {"price_details": {"price": "price_basic"}},
                        }
                    ]
                },
            },
        )
    )
    assert isinstance(event, InvoicePaymentSucceeded)
    assert event.invoice_id == "in_2"
    assert event.amount_paid == 99.99
    assert event.period_end == as_naive(PERIOD_END)
    assert event.price_id == "price_basic"


def test_unknown_event_type_is_unhandled():
    event = parse_stripe_event(stripe_event("customer.created", {"id": "cus_1"}, event_id="evt_9"))
    assert isinstance(event, UnhandledEvent)
    assert event.event_type == "customer.created"
    assert event.event_id == "evt_9"
