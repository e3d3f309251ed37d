"""Billing domain - subscriptions, Stripe checkout and webhook reconciliation"""

from .router import cron_router, router, webhooks_router

__all__ = ["router", "webhooks_router", "cron_router"]
