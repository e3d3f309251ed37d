"""Tests for applying billing events to provider subscription state"""

from datetime import datetime, timedelta

import pytest

from careconnect.domain.billing.events import (
    CheckoutCompleted,
    InvoicePaymentFailed,
    InvoicePaymentSucceeded,
    SubscriptionDeleted,
    SubscriptionSnapshot,
    SubscriptionUpdated,
    UnhandledEvent,
)
from careconnect.domain.billing.reconciler import (
    ExternalSubscription,
    ManualGrant,
    NoSubscription,
    SubscriptionReconciler,
    map_stripe_status,
    subscription_source,
)
from careconnect.models import Provider, SubscriptionHistory
from careconnect.plan_limits import check_subscription_access

NOW = datetime(2026, 3, 10, 12, 0, 0)
PERIOD_END = datetime(2026, 4, 10, 12, 0, 0)


@pytest.fixture
def reconciler(db):
    return SubscriptionReconciler(db, now=lambda: NOW)


@pytest.fixture
def subscribed(make_provider):
    return make_provider(
        subscription_status="active",
        subscription_source="stripe",
        stripe_customer_id="cus_123",
        stripe_subscription_id="sub_123",
        subscription_end_date=datetime(2026, 3, 20),
    )


def history_keys(db):
    return [row.idempotency_key for row in db.query(SubscriptionHistory).all()]


# =============================================================================
# Status mapping
# =============================================================================


@pytest.mark.parametrize(
    "stripe_status,expected",
    [
        ("active", "active"),
        ("trialing", "trial"),
        ("past_due", "past_due"),
        ("incomplete", "past_due"),
        ("canceled", "expired"),
        ("unpaid", "expired"),
        ("incomplete_expired", "expired"),
        ("paused", "expired"),
        ("something_new", "expired"),
        (None, "expired"),
    ],
)
def test_map_stripe_status(stripe_status, expected):
    assert map_stripe_status(stripe_status) == expected


@pytest.mark.parametrize(
    "stripe_status,expected",
    [("active", "active"), ("trialing", "trial"), ("past_due", "past_due"), ("canceled", "expired")],
)
def test_subscription_updated_sets_mapped_status(db, reconciler, subscribed, stripe_status, expected):
    event = SubscriptionUpdated(
        event_id="evt_upd",
        subscription=SubscriptionSnapshot(
            id="sub_123",
            customer_id="cus_123",
            status=stripe_status,
            current_period_end=PERIOD_END,
            trial_end=PERIOD_END,
        ),
    )

    result = reconciler.handle(event)

    db.refresh(subscribed)
    assert result.action == "updated"
    assert subscribed.subscription_status == expected


# =============================================================================
# Subscription source
# =============================================================================


def test_subscription_source_classification(make_provider):
    manual = make_provider(subscription_source="manual", subscription_end_date=NOW + timedelta(days=30))
    legacy = make_provider(subscription_end_date=datetime(2099, 12, 31))
    external = make_provider(stripe_subscription_id="sub_ext")
    nothing = make_provider()

    assert isinstance(subscription_source(manual, NOW), ManualGrant)
    assert isinstance(subscription_source(legacy, NOW), ManualGrant)
    assert subscription_source(external, NOW) == ExternalSubscription("sub_ext")
    assert isinstance(subscription_source(nothing, NOW), NoSubscription)


def test_far_future_end_with_subscription_is_not_a_grant(make_provider):
    provider = make_provider(
        stripe_subscription_id="sub_1", subscription_end_date=datetime(2099, 12, 31)
    )
    assert isinstance(subscription_source(provider, NOW), ExternalSubscription)


# =============================================================================
# Checkout
# =============================================================================


def test_checkout_activates_and_records_history_once(db, reconciler, make_provider, plans):
    provider = make_provider(subscription_status="trial")
    event = CheckoutCompleted(
        event_id="evt_checkout",
        session_id="cs_1",
        provider_id=provider.id,
        customer_id="cus_new",
        subscription_id="sub_new",
        amount_total=99.99,
    )

    first = reconciler.handle(event)
    db.refresh(provider)
    state_after_first = (
        provider.subscription_status,
        provider.subscription_source,
        provider.stripe_customer_id,
        provider.stripe_subscription_id,
    )

    second = reconciler.handle(event)
    db.refresh(provider)

    assert first.action == "updated"
    assert first.history_recorded is True
    assert second.history_recorded is False
    assert state_after_first == ("active", "stripe", "cus_new", "sub_new")
    assert (
        provider.subscription_status,
        provider.subscription_source,
        provider.stripe_customer_id,
        provider.stripe_subscription_id,
    ) == state_after_first
    assert provider.subscription_start_date == NOW
    assert history_keys(db) == ["checkout:cs_1"]


def test_checkout_with_trialing_subscription_starts_trial(db, reconciler, make_provider, plans):
    provider = make_provider()
    event = CheckoutCompleted(
        event_id="evt_checkout",
        session_id="cs_2",
        provider_id=provider.id,
        customer_id="cus_2",
        subscription_id="sub_2",
        subscription=SubscriptionSnapshot(
            id="sub_2",
            customer_id="cus_2",
            status="trialing",
            current_period_start=NOW,
            current_period_end=PERIOD_END,
            trial_end=PERIOD_END,
            price_id="price_premium",
            unit_amount=139.99,
            latest_invoice_id="in_first",
        ),
    )

    reconciler.handle(event)

    db.refresh(provider)
    assert provider.subscription_status == "trial"
    assert provider.trial_ends_at == PERIOD_END
    assert provider.subscription_end_date == PERIOD_END
    assert provider.subscription_plan_id == plans["premium"].id
    row = db.query(SubscriptionHistory).one()
    assert row.idempotency_key == "invoice:in_first:paid"
    assert row.amount == 139.99


def test_checkout_and_first_invoice_share_history_entry(db, reconciler, make_provider, plans):
    provider = make_provider()
    reconciler.handle(
        CheckoutCompleted(
            event_id="evt_checkout",
            session_id="cs_3",
            provider_id=provider.id,
            customer_id="cus_3",
            subscription_id="sub_3",
            subscription=SubscriptionSnapshot(
                id="sub_3", status="active", latest_invoice_id="in_3", price_id="price_basic"
            ),
        )
    )
    result = reconciler.handle(
        InvoicePaymentSucceeded(
            event_id="evt_paid",
            invoice_id="in_3",
            subscription_id="sub_3",
            amount_paid=99.99,
            period_end=PERIOD_END,
        )
    )

    assert result.history_recorded is False
    assert history_keys(db) == ["invoice:in_3:paid"]


# =============================================================================
# Invoices and cancellation
# =============================================================================


def test_payment_failed_marks_past_due(db, reconciler, subscribed):
    event = InvoicePaymentFailed(
        event_id="evt_fail", invoice_id="in_1", subscription_id="sub_123", amount_due=99.99
    )

    result = reconciler.handle(event)
    repeat = reconciler.handle(event)

    db.refresh(subscribed)
    assert result.status == "past_due"
    assert subscribed.subscription_status == "past_due"
    assert result.history_recorded is True
    assert repeat.history_recorded is False
    row = db.query(SubscriptionHistory).one()
    assert row.idempotency_key == "invoice:in_1:failed"
    assert row.status == "failed"


def test_payment_succeeded_sets_active_with_period_end(db, reconciler, subscribed):
    subscribed.subscription_status = "past_due"
    db.commit()

    reconciler.handle(
        InvoicePaymentSucceeded(
            event_id="evt_paid",
            invoice_id="in_2",
            subscription_id="sub_123",
            amount_paid=99.99,
            period_end=PERIOD_END,
        )
    )

    db.refresh(subscribed)
    assert subscribed.subscription_status == "active"
    assert subscribed.subscription_end_date == PERIOD_END
    assert history_keys(db) == ["invoice:in_2:paid"]


def test_zero_amount_trial_invoice_keeps_trial(db, reconciler, make_provider):
    provider = make_provider(
        subscription_status="trial",
        subscription_source="stripe",
        stripe_subscription_id="sub_trial",
        trial_ends_at=PERIOD_END,
    )

    result = reconciler.handle(
        InvoicePaymentSucceeded(
            event_id="evt_trial_invoice",
            invoice_id="in_trial",
            subscription_id="sub_trial",
            amount_paid=0,
            period_end=PERIOD_END,
        )
    )

    db.refresh(provider)
    assert result.status == "trial"
    assert provider.subscription_status == "trial"
    assert provider.trial_ends_at == PERIOD_END


def test_subscription_deleted_expires_now(db, reconciler, subscribed):
    result = reconciler.handle(
        SubscriptionDeleted(event_id="evt_del", subscription_id="sub_123", customer_id="cus_123")
    )

    db.refresh(subscribed)
    assert result.status == "expired"
    assert subscribed.subscription_status == "expired"
    assert subscribed.subscription_end_date == NOW


# =============================================================================
# Manual grants
# =============================================================================


@pytest.mark.parametrize(
    "event",
    [
        SubscriptionDeleted(event_id="evt_del", subscription_id="sub_gone", customer_id="cus_legacy"),
        InvoicePaymentFailed(event_id="evt_fail", invoice_id="in_9", customer_id="cus_legacy"),
        SubscriptionUpdated(
            event_id="evt_upd",
            subscription=SubscriptionSnapshot(id="sub_gone", customer_id="cus_legacy", status="canceled"),
        ),
    ],
)
def test_legacy_lifetime_grant_is_not_overwritten(db, reconciler, make_provider, event):
    lifetime_end = datetime(2099, 12, 31)
    provider = make_provider(
        subscription_status="active",
        stripe_customer_id="cus_legacy",
        subscription_end_date=lifetime_end,
    )

    result = reconciler.handle(event)

    db.refresh(provider)
    assert result.action == "skipped_manual"
    assert provider.subscription_status == "active"
    assert provider.subscription_end_date == lifetime_end
    assert db.query(SubscriptionHistory).count() == 0


def test_manual_grant_checkout_links_ids_and_keeps_status(db, reconciler, make_provider):
    grant_end = NOW + timedelta(days=60)
    provider = make_provider(
        subscription_status="active", subscription_source="manual", subscription_end_date=grant_end
    )

    result = reconciler.handle(
        CheckoutCompleted(
            event_id="evt_checkout",
            session_id="cs_manual",
            provider_id=provider.id,
            customer_id="cus_m",
            subscription_id="sub_m",
            amount_total=99.99,
        )
    )

    db.refresh(provider)
    assert result.action == "skipped_manual"
    assert result.history_recorded is True
    assert provider.stripe_customer_id == "cus_m"
    assert provider.stripe_subscription_id == "sub_m"
    assert provider.subscription_source == "manual"
    assert provider.subscription_end_date == grant_end


def test_lapsed_grant_is_no_longer_a_grant(make_provider):
    lapsed = make_provider(subscription_source="manual", subscription_end_date=NOW - timedelta(days=1))
    linked = make_provider(
        subscription_source="manual",
        subscription_end_date=NOW - timedelta(days=1),
        stripe_subscription_id="sub_after",
    )
    open_ended = make_provider(subscription_source="manual", subscription_end_date=None)

    assert isinstance(subscription_source(lapsed, NOW), NoSubscription)
    assert subscription_source(linked, NOW) == ExternalSubscription("sub_after")
    assert isinstance(subscription_source(open_ended, NOW), ManualGrant)


def test_paying_after_lapsed_grant_restores_access(db, reconciler, make_provider, plans):
    provider = make_provider(
        subscription_status="active",
        subscription_source="manual",
        subscription_start_date=NOW - timedelta(days=60),
        subscription_end_date=NOW - timedelta(days=30),
    )
    next_period_end = NOW + timedelta(days=30)

    checkout = reconciler.handle(
        CheckoutCompleted(
            event_id="evt_checkout",
            session_id="cs_after",
            provider_id=provider.id,
            customer_id="cus_after",
            subscription_id="sub_after",
            subscription=SubscriptionSnapshot(
                id="sub_after",
                status="active",
                current_period_start=NOW,
                current_period_end=next_period_end,
                price_id="price_basic",
            ),
        )
    )
    renewal = reconciler.handle(
        InvoicePaymentSucceeded(
            event_id="evt_paid",
            invoice_id="in_renewal",
            subscription_id="sub_after",
            amount_paid=99.99,
            period_end=next_period_end + timedelta(days=30),
        )
    )

    db.refresh(provider)
    assert checkout.action == "updated"
    assert renewal.action == "updated"
    assert provider.subscription_source == "stripe"
    assert provider.subscription_status == "active"
    assert provider.subscription_end_date == next_period_end + timedelta(days=30)
    assert check_subscription_access(provider, NOW, 14).has_access is True


# =============================================================================
# Lookup
# =============================================================================


def test_unknown_subscription_is_ignored(db, reconciler, subscribed):
    result = reconciler.handle(
        InvoicePaymentFailed(event_id="evt_x", invoice_id="in_x", subscription_id="sub_unknown")
    )

    db.refresh(subscribed)
    assert result.action == "ignored"
    assert subscribed.subscription_status == "active"
    assert db.query(SubscriptionHistory).count() == 0


def test_customer_match_ignored_when_another_subscription_is_linked(db, reconciler, subscribed):
    result = reconciler.handle(
        SubscriptionDeleted(event_id="evt_del", subscription_id="sub_old", customer_id="cus_123")
    )

    db.refresh(subscribed)
    assert result.action == "ignored"
    assert subscribed.subscription_status == "active"


def test_customer_match_used_when_no_subscription_is_linked(db, reconciler, make_provider):
    provider = make_provider(subscription_status="trial", stripe_customer_id="cus_only")

    result = reconciler.handle(
        InvoicePaymentSucceeded(
            event_id="evt_paid",
            invoice_id="in_c",
            subscription_id="sub_c",
            customer_id="cus_only",
            amount_paid=99.99,
        )
    )

    db.refresh(provider)
    assert result.provider_id == provider.id
    assert provider.subscription_status == "active"
    assert provider.stripe_subscription_id == "sub_c"


def test_unhandled_event_changes_nothing(db, reconciler, subscribed):
    result = reconciler.handle(UnhandledEvent(event_id="evt_u", event_type="customer.created"))

    assert result.action == "unhandled"
    assert db.query(Provider).filter(Provider.subscription_status == "active").count() == 1
