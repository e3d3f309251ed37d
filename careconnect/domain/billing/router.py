"""Billing router - FastAPI endpoints for billing operations"""

import hmac
import json
import logging
from typing import Optional

import stripe
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from ...auth import get_current_provider
from ...config import CRON_SECRET
from ...database import get_db
from ...models import Provider
from .events import CheckoutCompleted, parse_stripe_event
from .schemas import (
    AccessStatusResponse,
    CheckoutRequest,
    CheckoutResponse,
    HistoryResponse,
    PlanResponse,
    PortalResponse,
    TrialReminderResponse,
)
from .stripe_service import StripeService, stripe_service
from .subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])
webhooks_router = APIRouter(prefix="/webhooks", tags=["Webhooks"])
cron_router = APIRouter(prefix="/cron", tags=["Cron"])


def get_stripe_service() -> StripeService:
    return stripe_service


def get_subscription_service(
    db: Session = Depends(get_db),
    stripe_client: StripeService = Depends(get_stripe_service),
) -> SubscriptionService:
    """Dependency injection for SubscriptionService"""
    return SubscriptionService(db, stripe=stripe_client)


# ============================================================================
# SUBSCRIPTION MANAGEMENT
# ============================================================================


@router.get("/status", response_model=AccessStatusResponse)
async def get_subscription_status(
    provider: Provider = Depends(get_current_provider),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Whether the current provider has dashboard access"""
    return service.get_access_status(provider)


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout_session(
    body: CheckoutRequest,
    provider: Provider = Depends(get_current_provider),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Create a checkout session"""
    return service.create_checkout_session(provider, body.plan)


@router.post("/portal", response_model=PortalResponse)
async def create_portal_session(
    provider: Provider = Depends(get_current_provider),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Open the Stripe billing portal"""
    return service.create_portal_session(provider)


@router.get("/history", response_model=HistoryResponse)
async def get_subscription_history(
    provider: Provider = Depends(get_current_provider),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return {"history": service.get_history(provider)}


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans(service: SubscriptionService = Depends(get_subscription_service)):
    """Public pricing"""
    return [plan for plan in service.list_plans() if plan.is_active]


# ============================================================================
# STRIPE WEBHOOK
# ============================================================================


@webhooks_router.post("/stripe")
async def handle_stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    stripe_client: StripeService = Depends(get_stripe_service),
):
    """
    Receive Stripe events.
    Once the signature checks out the response is always 200 so Stripe does
    not retry; processing errors are logged.
    """
    if not stripe_client.can_verify_webhooks():
        logger.error("❌ Stripe webhook received but Stripe is not configured")
        raise HTTPException(status_code=500, detail="Webhook not configured")

    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        logger.warning("⚠️ Stripe webhook without signature header")
        raise HTTPException(status_code=400, detail="Missing signature")

    try:
        stripe_client.construct_event(payload, signature)
    except ValueError as e:
        logger.warning(f"⚠️ Invalid Stripe webhook payload: {e}")
        raise HTTPException(status_code=400, detail="Invalid payload") from e
    except stripe.SignatureVerificationError as e:
        logger.warning(f"⚠️ Invalid Stripe webhook signature: {e}")
        raise HTTPException(status_code=400, detail="Invalid signature") from e

    try:
        event = parse_stripe_event(json.loads(payload))
        logger.info(f"📥 Stripe webhook received: {event.kind} ({event.event_id})")

        service = SubscriptionService(db, stripe=stripe_client)
        event = service.enrich_event(event)
        result = service.reconcile(event)
        logger.info(f"Webhook {event.event_id} processed: {result.action}")

        if isinstance(event, CheckoutCompleted):
            await service.notify_checkout_completed(result)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error processing Stripe webhook: {e}", exc_info=True)

    return {"received": True}


# ============================================================================
# SCHEDULED JOBS
# ============================================================================


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    if not CRON_SECRET:
        raise HTTPException(status_code=503, detail="Cron secret not configured")
    expected = f"Bearer {CRON_SECRET}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")


@cron_router.api_route(
    "/trial-reminders",
    methods=["GET", "POST"],
    response_model=TrialReminderResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def run_trial_reminders(service: SubscriptionService = Depends(get_subscription_service)):
    """Send trial-ending reminders (called daily by the scheduler)"""
    return await service.send_trial_reminders()
