"""
Plan limits and subscription access rules for providers.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .models import Provider

# Defaults used to seed subscription_plans and when a provider has no plan row
PLAN_DEFAULTS = {
    "basic": {
        "name": "Basic Provider Plan",
        "price": 99.99,
        "max_photos": 10,
        "features": [
            "List your facility",
            "Receive unlimited referral requests",
            "Upload up to 10 photos",
            "Manage availability and capacity",
            "245D verified badge",
            "Messaging with care seekers",
            "Email support",
        ],
    },
    "premium": {
        "name": "Premium Provider Plan",
        "price": 139.99,
        "max_photos": 50,
        "features": [
            "Everything in Basic",
            "Priority placement in search results",
            "Featured provider badge",
            "Upload up to 50 photos",
            "Advanced analytics dashboard",
            "Priority support",
            "Dedicated account manager",
        ],
    },
}

# End dates this far out mean the account was granted permanent access
PERMANENT_ACCESS_YEARS = 50


def get_photo_limit(plan_slug: Optional[str]) -> int:
    """Max photos for a plan. Providers without a plan get the basic limit."""
    plan = PLAN_DEFAULTS.get((plan_slug or "basic").lower(), PLAN_DEFAULTS["basic"])
    return plan["max_photos"]


@dataclass
class AccessCheck:
    has_access: bool
    status: str
    requires_payment: bool
    message: str
    trial_days_left: Optional[int] = None
    # Set when the provider had no subscription state and a trial should be started
    starts_trial: bool = False


def check_subscription_access(provider: Provider, now: datetime, trial_days: int) -> AccessCheck:
    """
    Decide whether a provider may use the dashboard.
    Does not write anything; callers persist a started trial.
    """
    status = provider.subscription_status

    if status == "active":
        end = provider.subscription_end_date
        if end is None:
            return AccessCheck(True, "active", False, "Subscription active")
        if end.year - now.year > PERMANENT_ACCESS_YEARS:
            return AccessCheck(True, "active", False, "Grandfathered account - permanent access")
        if end > now:
            return AccessCheck(True, "active", False, "Subscription active")

    if status == "trial" and provider.trial_ends_at:
        if provider.trial_ends_at > now:
            days_left = math.ceil((provider.trial_ends_at - now).total_seconds() / 86400)
            plural = "s" if days_left > 1 else ""
            return AccessCheck(
                True,
                "trial",
                False,
                f"Trial ends in {days_left} day{plural}",
                trial_days_left=days_left,
            )
        return AccessCheck(
            False, "expired", True, "Your trial has expired. Please subscribe to continue."
        )

    if not status:
        return AccessCheck(
            True,
            "trial",
            False,
            f"Free trial activated - {trial_days} days remaining",
            trial_days_left=trial_days,
            starts_trial=True,
        )

    return AccessCheck(False, "expired", True, "Please subscribe to list your facility")


def start_trial(provider: Provider, now: datetime, trial_days: int) -> None:
    provider.subscription_status = "trial"
    provider.trial_ends_at = now + timedelta(days=trial_days)
