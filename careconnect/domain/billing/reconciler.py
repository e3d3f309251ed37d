"""Subscription reconciler - applies billing events to provider subscription state

A provider's subscription state has two possible sources: an admin grant
(manual activation or lifetime access) or a Stripe subscription. A running
admin grant is never overwritten by Stripe events. Once a time-limited
grant has ended, the provider's Stripe subscription (if any) takes over and
everything is derived from the latest event seen for it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Union

from sqlalchemy.orm import Session

from ...models import Provider
from ...shared.dates import utcnow
from .events import (
    BillingEvent,
    CheckoutCompleted,
    InvoicePaymentFailed,
    InvoicePaymentSucceeded,
    SubscriptionDeleted,
    SubscriptionUpdated,
    UnhandledEvent,
)
from .repository import BillingRepository

logger = logging.getLogger(__name__)

# Rows predating subscription_source marked lifetime grants with a far-future end date
LEGACY_GRANT_YEAR = 2090

STRIPE_STATUS_MAP = {
    "active": "active",
    "trialing": "trial",
    "past_due": "past_due",
    "incomplete": "past_due",
    "canceled": "expired",
    "unpaid": "expired",
    "incomplete_expired": "expired",
    "paused": "expired",
}


def map_stripe_status(stripe_status: Optional[str]) -> str:
    """Map a Stripe subscription status onto a local subscription status"""
    return STRIPE_STATUS_MAP.get(stripe_status or "", "expired")


# ============================================================================
# SUBSCRIPTION SOURCE
# ============================================================================


@dataclass(frozen=True)
class ManualGrant:
    end_date: Optional[datetime]


@dataclass(frozen=True)
class ExternalSubscription:
    subscription_id: str


@dataclass(frozen=True)
class NoSubscription:
    pass


SubscriptionSource = Union[ManualGrant, ExternalSubscription, NoSubscription]


def subscription_source(provider: Provider, now: datetime) -> SubscriptionSource:
    """Classify where a provider's subscription state comes from

    A manual grant only counts while it is running; a lapsed grant falls
    through to the linked Stripe subscription or to no subscription.
    """
    if provider.subscription_source == "manual":
        end_date = provider.subscription_end_date
        if end_date is None or end_date > now:
            return ManualGrant(end_date)
    elif (
        not provider.stripe_subscription_id
        and provider.subscription_end_date is not None
        and provider.subscription_end_date.year > LEGACY_GRANT_YEAR
    ):
        return ManualGrant(provider.subscription_end_date)
    if provider.stripe_subscription_id:
        return ExternalSubscription(provider.stripe_subscription_id)
    return NoSubscription()


@dataclass
class ReconcileResult:
    action: str  # updated, skipped_manual, ignored, unhandled
    provider_id: Optional[str] = None
    status: Optional[str] = None
    history_recorded: bool = False


# ============================================================================
# RECONCILER
# ============================================================================


class SubscriptionReconciler:
    """Applies parsed billing events to providers"""

    def __init__(
        self,
        db: Session,
        repo: Optional[BillingRepository] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.repo = repo or BillingRepository()
        self.now = now

    def handle(self, event: BillingEvent) -> ReconcileResult:
        if isinstance(event, UnhandledEvent):
            logger.info(f"ℹ️ Unhandled billing event type: {event.event_type}")
            return ReconcileResult(action="unhandled")

        provider = self._find_provider(event)
        if provider is None:
            logger.warning(
                f"⚠️ No provider found for {event.kind} event {event.event_id} "
                f"(subscription={self._subscription_id(event)})"
            )
            return ReconcileResult(action="ignored")

        source = subscription_source(provider, self.now())
        if isinstance(source, ManualGrant):
            return self._handle_manual_grant(provider, event)

        if isinstance(event, CheckoutCompleted):
            return self._checkout_completed(provider, event)
        if isinstance(event, SubscriptionUpdated):
            return self._subscription_updated(provider, event)
        if isinstance(event, SubscriptionDeleted):
            return self._subscription_deleted(provider, event)
        if isinstance(event, InvoicePaymentFailed):
            return self._invoice_failed(provider, event)
        return self._invoice_succeeded(provider, event)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @staticmethod
    def _subscription_id(event: BillingEvent) -> Optional[str]:
        if isinstance(event, SubscriptionUpdated):
            return event.subscription.id
        return getattr(event, "subscription_id", None)

    @staticmethod
    def _customer_id(event: BillingEvent) -> Optional[str]:
        if isinstance(event, SubscriptionUpdated):
            return event.subscription.customer_id
        return getattr(event, "customer_id", None)

    def _find_provider(self, event: BillingEvent) -> Optional[Provider]:
        if isinstance(event, CheckoutCompleted) and event.provider_id:
            provider = self.repo.get_provider_by_id(self.db, event.provider_id)
            if provider is not None:
                return provider

        subscription_id = self._subscription_id(event)
        if subscription_id:
            provider = self.repo.get_provider_by_subscription_id(self.db, subscription_id)
            if provider is not None:
                return provider

        # A customer match only counts when the provider has no other subscription linked
        customer_id = self._customer_id(event)
        if customer_id:
            provider = self.repo.get_provider_by_customer_id(self.db, customer_id)
            if provider is not None and (
                not provider.stripe_subscription_id
                or isinstance(event, CheckoutCompleted)
            ):
                return provider
        return None

    # ------------------------------------------------------------------
    # Manual grants
    # ------------------------------------------------------------------

    def _handle_manual_grant(self, provider: Provider, event: BillingEvent) -> ReconcileResult:
        """Status and dates stay as granted; a completed checkout is still recorded"""
        history_recorded = False
        if isinstance(event, CheckoutCompleted):
            if event.customer_id:
                provider.stripe_customer_id = event.customer_id
            if event.subscription_id:
                provider.stripe_subscription_id = event.subscription_id
            provider.subscription_source = "manual"
            self.repo.save_provider(self.db, provider)
            history_recorded = self._record_checkout_history(provider, event)

        logger.info(
            f"🔒 Provider {provider.id} has a manual grant, keeping status "
            f"{provider.subscription_status} ({event.kind})"
        )
        return ReconcileResult(
            action="skipped_manual",
            provider_id=provider.id,
            status=provider.subscription_status,
            history_recorded=history_recorded,
        )

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _apply_plan(self, provider: Provider, price_id: Optional[str]) -> None:
        plan = self.repo.get_plan_by_price_id(self.db, price_id)
        if plan is not None:
            provider.subscription_plan_id = plan.id

    def _checkout_completed(self, provider: Provider, event: CheckoutCompleted) -> ReconcileResult:
        subscription = event.subscription
        now = self.now()

        if event.customer_id:
            provider.stripe_customer_id = event.customer_id
        if event.subscription_id:
            provider.stripe_subscription_id = event.subscription_id
        provider.subscription_source = "stripe"

        if subscription is not None and subscription.status == "trialing":
            provider.subscription_status = "trial"
            provider.trial_ends_at = subscription.trial_end or subscription.current_period_end
        else:
            provider.subscription_status = "active"

        provider.subscription_start_date = (
            subscription.current_period_start if subscription and subscription.current_period_start else now
        )
        if subscription is not None:
            provider.subscription_end_date = subscription.current_period_end
            self._apply_plan(provider, subscription.price_id)

        self.repo.save_provider(self.db, provider)
        history_recorded = self._record_checkout_history(provider, event)

        logger.info(
            f"✅ Checkout completed for provider {provider.id}: {provider.subscription_status}"
        )
        return ReconcileResult(
            action="updated",
            provider_id=provider.id,
            status=provider.subscription_status,
            history_recorded=history_recorded,
        )

    def _record_checkout_history(self, provider: Provider, event: CheckoutCompleted) -> bool:
        subscription = event.subscription
        invoice_id = subscription.latest_invoice_id if subscription else None
        # The first invoice's payment_succeeded event carries the same key
        key = f"invoice:{invoice_id}:paid" if invoice_id else f"checkout:{event.session_id}"

        amount = None
        if subscription is not None:
            amount = subscription.unit_amount
        if amount is None:
            amount = event.amount_total or 0

        plan = self.repo.get_plan_by_price_id(self.db, subscription.price_id if subscription else None)
        return self.repo.add_history_if_absent(
            self.db,
            key,
            provider_id=provider.id,
            plan_id=plan.id if plan else provider.subscription_plan_id,
            amount=amount,
            status="completed",
            payment_method="stripe",
            stripe_invoice_id=invoice_id,
        )

    def _subscription_updated(self, provider: Provider, event: SubscriptionUpdated) -> ReconcileResult:
        subscription = event.subscription
        status = map_stripe_status(subscription.status)

        provider.stripe_subscription_id = subscription.id
        if subscription.customer_id:
            provider.stripe_customer_id = subscription.customer_id
        provider.subscription_source = "stripe"
        provider.subscription_status = status

        if status in ("active", "trial") and subscription.current_period_end:
            provider.subscription_end_date = subscription.current_period_end
        if status == "trial":
            provider.trial_ends_at = subscription.trial_end or subscription.current_period_end
        self._apply_plan(provider, subscription.price_id)

        self.repo.save_provider(self.db, provider)
        logger.info(
            f"🔄 Subscription {subscription.id} is {subscription.status}, "
            f"provider {provider.id} -> {status}"
        )
        return ReconcileResult(action="updated", provider_id=provider.id, status=status)

    def _subscription_deleted(self, provider: Provider, event: SubscriptionDeleted) -> ReconcileResult:
        provider.subscription_status = "expired"
        provider.subscription_end_date = self.now()
        self.repo.save_provider(self.db, provider)

        logger.info(f"🚫 Subscription {event.subscription_id} deleted, provider {provider.id} expired")
        return ReconcileResult(action="updated", provider_id=provider.id, status="expired")

    def _invoice_failed(self, provider: Provider, event: InvoicePaymentFailed) -> ReconcileResult:
        provider.subscription_status = "past_due"
        self.repo.save_provider(self.db, provider)

        history_recorded = self.repo.add_history_if_absent(
            self.db,
            f"invoice:{event.invoice_id}:failed",
            provider_id=provider.id,
            plan_id=provider.subscription_plan_id,
            amount=event.amount_due,
            status="failed",
            payment_method="stripe",
            stripe_invoice_id=event.invoice_id,
            notes="Payment failed",
        )
        logger.warning(f"⚠️ Payment failed for provider {provider.id} (invoice {event.invoice_id})")
        return ReconcileResult(
            action="updated",
            provider_id=provider.id,
            status="past_due",
            history_recorded=history_recorded,
        )

    def _invoice_succeeded(self, provider: Provider, event: InvoicePaymentSucceeded) -> ReconcileResult:
        # The $0 invoice issued when a Stripe trial starts leaves the trial running
        status = "active"
        if not event.amount_paid and provider.subscription_status == "trial":
            status = "trial"
        provider.subscription_status = status
        provider.subscription_source = "stripe"
        if event.subscription_id and not provider.stripe_subscription_id:
            provider.stripe_subscription_id = event.subscription_id
        if event.period_end:
            provider.subscription_end_date = event.period_end
        self._apply_plan(provider, event.price_id)
        self.repo.save_provider(self.db, provider)

        history_recorded = self.repo.add_history_if_absent(
            self.db,
            f"invoice:{event.invoice_id}:paid",
            provider_id=provider.id,
            plan_id=provider.subscription_plan_id,
            amount=event.amount_paid,
            status="completed",
            payment_method="stripe",
            stripe_invoice_id=event.invoice_id,
        )
        logger.info(f"✅ Payment succeeded for provider {provider.id} (invoice {event.invoice_id})")
        return ReconcileResult(
            action="updated",
            provider_id=provider.id,
            status=status,
            history_recorded=history_recorded,
        )
