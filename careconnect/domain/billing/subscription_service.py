"""Subscription service - Business logic for subscription management"""

import logging
from datetime import datetime, time, timedelta
from typing import Callable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import (
    FRONTEND_URL,
    STRIPE_BASIC_PRICE_ID,
    STRIPE_PREMIUM_PRICE_ID,
    STRIPE_TRIAL_DAYS,
)
from ...email_service import send_subscription_confirmed_email, send_trial_ending_email
from ...models import Provider, SubscriptionPlan
from ...plan_limits import PLAN_DEFAULTS, check_subscription_access, start_trial
from ...shared.dates import utcnow
from .events import (
    BillingEvent,
    CheckoutCompleted,
    InvoicePaymentSucceeded,
    parse_subscription,
)
from .reconciler import (
    ManualGrant,
    ReconcileResult,
    SubscriptionReconciler,
    map_stripe_status,
    subscription_source,
)
from .repository import BillingRepository
from .schemas import PlanUpdate
from .stripe_service import StripeService

logger = logging.getLogger(__name__)

# Lifetime grants end on this date
LIFETIME_END = datetime(2099, 12, 31)

GRANT_DAYS = {"month": 30, "3months": 90, "year": 365}

TRIAL_REMINDER_DAYS = (3, 1)

PRICE_IDS = {"basic": STRIPE_BASIC_PRICE_ID, "premium": STRIPE_PREMIUM_PRICE_ID}


def seed_default_plans(db: Session) -> None:
    """Create the basic and premium plan rows if they are missing"""
    repo = BillingRepository()
    created = 0
    for slug, defaults in PLAN_DEFAULTS.items():
        if repo.get_plan_by_slug(db, slug):
            continue
        db.add(
            SubscriptionPlan(
                slug=slug,
                name=defaults["name"],
                price=defaults["price"],
                interval="month",
                stripe_price_id=PRICE_IDS.get(slug),
                max_photos=defaults["max_photos"],
                features=defaults["features"],
            )
        )
        created += 1
    if created:
        db.commit()
        logger.info(f"✅ Seeded {created} subscription plans")


class SubscriptionService:
    """Service for subscription management"""

    def __init__(
        self,
        db: Session,
        stripe: Optional[StripeService] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.repo = BillingRepository()
        self.stripe = stripe
        self.now = now

    def _require_stripe(self) -> StripeService:
        if self.stripe is None or not self.stripe.is_available():
            raise HTTPException(status_code=503, detail="Billing service temporarily unavailable")
        return self.stripe

    def _get_provider(self, provider_id: str) -> Provider:
        provider = self.repo.get_provider_by_id(self.db, provider_id)
        if not provider:
            raise HTTPException(status_code=404, detail="Provider not found")
        return provider

    # ========================================================================
    # PROVIDER SELF-SERVICE
    # ========================================================================

    def get_access_status(self, provider: Provider) -> dict:
        """Access check for the billing page; starts a trial for new providers"""
        now = self.now()
        check = check_subscription_access(provider, now, STRIPE_TRIAL_DAYS)
        if check.starts_trial:
            start_trial(provider, now, STRIPE_TRIAL_DAYS)
            self.repo.save_provider(self.db, provider)
            logger.info(f"🆕 Started {STRIPE_TRIAL_DAYS}-day trial for provider {provider.id}")

        plan = (
            self.repo.get_plan_by_id(self.db, provider.subscription_plan_id)
            if provider.subscription_plan_id
            else None
        )
        return {
            "has_access": check.has_access,
            "status": check.status,
            "requires_payment": check.requires_payment,
            "trial_days_left": check.trial_days_left,
            "message": check.message,
            "plan_id": plan.id if plan else None,
            "plan_name": plan.name if plan else None,
        }

    def _price_id_for(self, plan_slug: str) -> Optional[str]:
        plan = self.repo.get_plan_by_slug(self.db, plan_slug)
        if plan and plan.stripe_price_id:
            return plan.stripe_price_id
        return PRICE_IDS.get(plan_slug)

    def create_checkout_session(self, provider: Provider, plan_slug: str) -> dict:
        """Create a subscription checkout session, creating the Stripe customer on first use"""
        stripe = self._require_stripe()

        price_id = self._price_id_for(plan_slug)
        if not price_id:
            logger.error(f"❌ No Stripe price configured for plan {plan_slug}")
            raise HTTPException(status_code=400, detail=f"Plan {plan_slug} is not available")

        try:
            if not provider.stripe_customer_id:
                provider.stripe_customer_id = stripe.create_customer(
                    email=provider.contact_email,
                    name=provider.business_name,
                    provider_id=provider.id,
                )
                self.repo.save_provider(self.db, provider)

            session = stripe.create_checkout_session(
                customer_id=provider.stripe_customer_id,
                price_id=price_id,
                provider_id=provider.id,
                plan=plan_slug,
                success_url=(
                    f"{FRONTEND_URL}/dashboard?session_id={{CHECKOUT_SESSION_ID}}"
                    "&subscription_success=true"
                ),
                cancel_url=f"{FRONTEND_URL}/subscribe?canceled=true",
                trial_days=STRIPE_TRIAL_DAYS,
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to create checkout session for provider {provider.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create checkout session") from e

        logger.info(f"✅ Created checkout session for provider {provider.id}: {session['id']}")
        return {"url": session["url"], "session_id": session["id"]}

    def create_portal_session(self, provider: Provider) -> dict:
        if not provider.stripe_customer_id:
            raise HTTPException(status_code=404, detail="No billing account found")
        stripe = self._require_stripe()
        try:
            url = stripe.create_portal_session(
                customer_id=provider.stripe_customer_id,
                return_url=f"{FRONTEND_URL}/dashboard",
            )
        except Exception as e:
            logger.error(f"Failed to create portal session for provider {provider.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create portal session") from e
        return {"url": url}

    def get_history(self, provider: Provider) -> list:
        return self.repo.get_history_for_provider(self.db, provider.id)

    # ========================================================================
    # WEBHOOK EVENTS
    # ========================================================================

    def enrich_event(self, event: BillingEvent) -> BillingEvent:
        """Fill in subscription details the webhook payload does not carry

        A failed lookup leaves the event as parsed; the reconciler handles
        missing details.
        """
        if self.stripe is None or not self.stripe.is_available():
            return event

        needs_subscription = (
            isinstance(event, CheckoutCompleted)
            and event.subscription_id
            and event.subscription is None
        ) or (
            isinstance(event, InvoicePaymentSucceeded)
            and event.subscription_id
            and event.period_end is None
        )
        if not needs_subscription:
            return event

        try:
            snapshot = parse_subscription(self.stripe.retrieve_subscription(event.subscription_id))
        except Exception as e:
            logger.error(f"❌ Failed to retrieve subscription {event.subscription_id}: {e}")
            return event

        if isinstance(event, CheckoutCompleted):
            event.subscription = snapshot
        else:
            event.period_end = snapshot.current_period_end
            event.price_id = event.price_id or snapshot.price_id
        return event

    def reconcile(self, event: BillingEvent) -> ReconcileResult:
        reconciler = SubscriptionReconciler(self.db, repo=self.repo, now=self.now)
        return reconciler.handle(event)

    async def notify_checkout_completed(self, result: ReconcileResult) -> None:
        """Confirmation email after a successful checkout"""
        if result.action != "updated" or not result.provider_id:
            return
        provider = self.repo.get_provider_by_id(self.db, result.provider_id)
        if provider is None:
            return
        plan = provider.plan
        await send_subscription_confirmed_email(
            to=provider.contact_email,
            provider_name=provider.contact_person or "Provider",
            business_name=provider.business_name,
            plan_name=plan.name if plan else PLAN_DEFAULTS["basic"]["name"],
            amount=plan.price if plan else PLAN_DEFAULTS["basic"]["price"],
        )

    # ========================================================================
    # ADMIN MANAGEMENT
    # ========================================================================

    def grant_manual_access(self, provider_id: str, duration: str, plan_slug: Optional[str] = None) -> Provider:
        """Manual activation by an admin; Stripe events will not override it"""
        provider = self._get_provider(provider_id)
        now = self.now()

        if duration == "lifetime":
            end_date = LIFETIME_END
        else:
            end_date = now + timedelta(days=GRANT_DAYS[duration])

        provider.subscription_status = "active"
        provider.subscription_source = "manual"
        provider.subscription_start_date = now
        provider.subscription_end_date = end_date
        provider.trial_ends_at = None
        if plan_slug:
            plan = self.repo.get_plan_by_slug(self.db, plan_slug)
            if plan:
                provider.subscription_plan_id = plan.id

        self.repo.save_provider(self.db, provider)
        logger.info(f"✅ Granted {duration} access to provider {provider.id} until {end_date}")
        return provider

    def start_trial(self, provider_id: str, days: int) -> Provider:
        provider = self._get_provider(provider_id)
        start_trial(provider, self.now(), days)
        provider.subscription_source = None
        self.repo.save_provider(self.db, provider)
        logger.info(f"🆕 Admin started {days}-day trial for provider {provider.id}")
        return provider

    def expire(self, provider_id: str) -> Provider:
        provider = self._get_provider(provider_id)
        provider.subscription_status = "expired"
        provider.subscription_end_date = self.now()
        provider.subscription_source = None
        self.repo.save_provider(self.db, provider)
        logger.info(f"🚫 Admin expired subscription for provider {provider.id}")
        return provider

    def sync_provider(self, provider_id: str, force: bool = False) -> dict:
        """Pull the provider's subscription state from Stripe"""
        provider = self._get_provider(provider_id)
        return self._sync(provider, force)

    def _sync(self, provider: Provider, force: bool) -> dict:
        result = {
            "provider_id": provider.id,
            "business_name": provider.business_name,
            "success": True,
            "stripe_status": None,
            "db_status": provider.subscription_status,
        }

        if isinstance(subscription_source(provider, self.now()), ManualGrant) and not force:
            return {**result, "message": "Manual grant, skipped"}

        if not provider.stripe_customer_id:
            raise HTTPException(status_code=400, detail="No Stripe customer ID for this provider")

        stripe = self._require_stripe()
        subscriptions = stripe.list_subscriptions(provider.stripe_customer_id, limit=10)
        logger.info(
            f"Found {len(subscriptions)} subscriptions for customer {provider.stripe_customer_id}"
        )

        if not subscriptions:
            if provider.subscription_status == "active":
                provider.subscription_status = "expired"
                provider.stripe_subscription_id = None
                provider.subscription_source = None
                self.repo.save_provider(self.db, provider)
                return {
                    **result,
                    "message": "No active Stripe subscription found - marked as expired",
                    "stripe_status": "none",
                    "db_status": "expired",
                }
            return {**result, "message": "No Stripe subscriptions found", "stripe_status": "none"}

        raw = next(
            (sub for sub in subscriptions if sub.get("status") in ("active", "trialing")),
            subscriptions[0],
        )
        snapshot = parse_subscription(raw)
        new_status = map_stripe_status(snapshot.status)

        provider.subscription_status = new_status
        provider.subscription_source = "stripe"
        provider.stripe_subscription_id = snapshot.id
        provider.subscription_start_date = snapshot.current_period_start or self.now()
        provider.subscription_end_date = snapshot.current_period_end
        plan = self.repo.get_plan_by_price_id(self.db, snapshot.price_id)
        provider.subscription_plan_id = plan.id if plan else None
        provider.trial_ends_at = snapshot.trial_end if snapshot.status == "trialing" else None
        self.repo.save_provider(self.db, provider)

        logger.info(f"🔄 Synced provider {provider.id}: Stripe {snapshot.status} -> {new_status}")
        return {
            **result,
            "message": "Synced successfully",
            "stripe_status": snapshot.status,
            "db_status": new_status,
        }

    def sync_all(self, force: bool = False) -> dict:
        providers = self.repo.get_providers_with_customer(self.db)
        results = []
        for provider in providers:
            try:
                results.append(self._sync(provider, force))
            except HTTPException as e:
                results.append(self._sync_failure(provider, str(e.detail)))
            except Exception as e:
                self.db.rollback()
                logger.error(f"❌ Sync failed for provider {provider.id}: {e}")
                results.append(self._sync_failure(provider, str(e)))

        synced = sum(1 for r in results if r["success"])
        return {
            "total": len(results),
            "synced": synced,
            "failed": len(results) - synced,
            "results": results,
        }

    @staticmethod
    def _sync_failure(provider: Provider, message: str) -> dict:
        return {
            "provider_id": provider.id,
            "business_name": provider.business_name,
            "success": False,
            "message": message,
            "stripe_status": None,
            "db_status": provider.subscription_status,
        }

    # ========================================================================
    # TRIAL REMINDERS
    # ========================================================================

    async def send_trial_reminders(self) -> dict:
        """Email providers whose trial ends 3 days or 1 day from today"""
        now = self.now()
        results = {"checked": 0, "emails_sent": 0, "errors": []}

        for days_ahead in TRIAL_REMINDER_DAYS:
            day_start = datetime.combine((now + timedelta(days=days_ahead)).date(), time.min)
            day_end = day_start + timedelta(days=1)
            providers = self.repo.get_trial_providers_ending_between(self.db, day_start, day_end)
            results["checked"] += len(providers)

            for provider in providers:
                if not provider.contact_email:
                    continue
                sent = await send_trial_ending_email(
                    to=provider.contact_email,
                    provider_name=provider.contact_person or "Provider",
                    business_name=provider.business_name,
                    days_left=days_ahead,
                )
                if sent:
                    results["emails_sent"] += 1
                    logger.info(
                        f"📧 Trial reminder ({days_ahead}d) sent to {provider.business_name}"
                    )
                else:
                    results["errors"].append(f"Failed to send to {provider.business_name}")

        logger.info(
            f"Checked {results['checked']} providers, sent {results['emails_sent']} reminder emails"
        )
        return results

    # ========================================================================
    # PRICING
    # ========================================================================

    def list_plans(self) -> list[SubscriptionPlan]:
        return self.repo.list_plans(self.db)

    def update_plan(self, plan_id: str, data: PlanUpdate) -> SubscriptionPlan:
        plan = self.repo.get_plan_by_id(self.db, plan_id)
        if not plan:
            raise HTTPException(status_code=404, detail="Plan not found")
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(plan, field, value)
        plan = self.repo.save_plan(self.db, plan)
        logger.info(f"✅ Updated plan {plan.slug}")
        return plan
