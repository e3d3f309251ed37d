"""Stripe service - Integration with the Stripe API"""

import logging
from typing import Optional

import stripe

from ...config import STRIPE_API_VERSION, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET

logger = logging.getLogger(__name__)


def _to_dict(obj) -> dict:
    """Plain dict from a StripeObject"""
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


class StripeService:
    """Service for Stripe API operations"""

    def __init__(self, api_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.api_key = api_key or STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or STRIPE_WEBHOOK_SECRET

        if not self.api_key:
            logger.warning("STRIPE_SECRET_KEY not set; billing endpoints will fail until configured")
        else:
            stripe.api_key = self.api_key
            if STRIPE_API_VERSION:
                stripe.api_version = STRIPE_API_VERSION
            logger.info("Stripe client initialized")

    def is_available(self) -> bool:
        """Check if the Stripe API key is configured"""
        return bool(self.api_key)

    def can_verify_webhooks(self) -> bool:
        return bool(self.api_key and self.webhook_secret)

    def construct_event(self, payload: bytes, signature: str):
        """Verify a webhook signature and return the event

        Raises ValueError for a malformed payload and
        stripe.error.SignatureVerificationError for a bad signature.
        """
        return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)

    def retrieve_subscription(self, subscription_id: str) -> dict:
        subscription = stripe.Subscription.retrieve(subscription_id)
        return _to_dict(subscription)

    def list_subscriptions(self, customer_id: str, limit: int = 10) -> list[dict]:
        result = stripe.Subscription.list(customer=customer_id, status="all", limit=limit)
        return [_to_dict(subscription) for subscription in result.data]

    def create_customer(self, email: Optional[str], name: str, provider_id: str) -> str:
        customer = stripe.Customer.create(
            email=email,
            name=name,
            metadata={"provider_id": provider_id},
        )
        logger.info(f"✅ Created Stripe customer {customer.id} for provider {provider_id}")
        return customer.id

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        provider_id: str,
        plan: str,
        success_url: str,
        cancel_url: str,
        trial_days: Optional[int] = None,
    ) -> dict:
        """Create a subscription-mode checkout session"""
        subscription_data = {"metadata": {"provider_id": provider_id, "plan": plan}}
        if trial_days:
            subscription_data["trial_period_days"] = trial_days

        session = stripe.checkout.Session.create(
            customer=customer_id,
            mode="subscription",
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata={"provider_id": provider_id, "plan": plan},
            subscription_data=subscription_data,
        )
        return {"id": session.id, "url": session.url}

    def create_portal_session(self, customer_id: str, return_url: str) -> str:
        session = stripe.billing_portal.Session.create(customer=customer_id, return_url=return_url)
        return session.url


stripe_service = StripeService()
