"""Billing events - raw Stripe payloads parsed into a closed set of event kinds

Everything downstream of the webhook branches on these models, never on the
raw Stripe JSON.
"""

import logging
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from ...shared.dates import from_unix

logger = logging.getLogger(__name__)


class SubscriptionSnapshot(BaseModel):
    """The fields of a Stripe subscription the reconciler cares about"""

    id: str
    customer_id: Optional[str] = None
    status: str
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    price_id: Optional[str] = None
    unit_amount: Optional[float] = None  # dollars
    latest_invoice_id: Optional[str] = None


class CheckoutCompleted(BaseModel):
    kind: Literal["checkout_completed"] = "checkout_completed"
    event_id: str
    session_id: str
    provider_id: Optional[str] = None
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None
    amount_total: Optional[float] = None  # dollars
    # Filled in after parsing by retrieving the subscription from Stripe
    subscription: Optional[SubscriptionSnapshot] = None


class SubscriptionUpdated(BaseModel):
    kind: Literal["subscription_updated"] = "subscription_updated"
    event_id: str
    subscription: SubscriptionSnapshot


class SubscriptionDeleted(BaseModel):
    kind: Literal["subscription_deleted"] = "subscription_deleted"
    event_id: str
    subscription_id: str
    customer_id: Optional[str] = None


class InvoicePaymentFailed(BaseModel):
    kind: Literal["invoice_payment_failed"] = "invoice_payment_failed"
    event_id: str
    invoice_id: str
    subscription_id: Optional[str] = None
    customer_id: Optional[str] = None
    amount_due: float = 0


class InvoicePaymentSucceeded(BaseModel):
    kind: Literal["invoice_payment_succeeded"] = "invoice_payment_succeeded"
    event_id: str
    invoice_id: str
    subscription_id: Optional[str] = None
    customer_id: Optional[str] = None
    amount_paid: float = 0
    period_end: Optional[datetime] = None
    price_id: Optional[str] = None


class UnhandledEvent(BaseModel):
    kind: Literal["unhandled"] = "unhandled"
    event_id: str
    event_type: str


BillingEvent = Annotated[
    Union[
        CheckoutCompleted,
        SubscriptionUpdated,
        SubscriptionDeleted,
        InvoicePaymentFailed,
        InvoicePaymentSucceeded,
        UnhandledEvent,
    ],
    Field(discriminator="kind"),
]

_billing_event_adapter = TypeAdapter(BillingEvent)


# ============================================================================
# RAW PAYLOAD HELPERS
# ============================================================================


def _object_id(value: Any) -> Optional[str]:
    """Stripe references are either an id string or an expanded object"""
    if value is None:
        return None
    if isinstance(value, dict):
        return value.get("id")
    return str(value)


def _cents_to_dollars(value: Optional[int]) -> Optional[float]:
    if value is None:
        return None
    return value / 100


def _first_item(container: Optional[dict]) -> dict:
    data = (container or {}).get("data") or []
    return data[0] if data else {}


def parse_subscription(raw: dict) -> SubscriptionSnapshot:
    """Build a snapshot from a raw subscription object

    Newer API versions moved the billing period onto the subscription items,
    so both locations are checked.
    """
    item = _first_item(raw.get("items"))
    price = item.get("price") or {}

    period_start = raw.get("current_period_start") or item.get("current_period_start")
    period_end = raw.get("current_period_end") or item.get("current_period_end")

    return SubscriptionSnapshot(
        id=raw["id"],
        customer_id=_object_id(raw.get("customer")),
        status=raw.get("status") or "",
        current_period_start=from_unix(period_start),
        current_period_end=from_unix(period_end),
        trial_end=from_unix(raw.get("trial_end")),
        price_id=price.get("id"),
        unit_amount=_cents_to_dollars(price.get("unit_amount")),
        latest_invoice_id=_object_id(raw.get("latest_invoice")),
    )


def _invoice_subscription_id(invoice: dict) -> Optional[str]:
    subscription_id = _object_id(invoice.get("subscription"))
    if subscription_id:
        return subscription_id
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    return _object_id(details.get("subscription"))


def _invoice_line_price_id(line: dict) -> Optional[str]:
    price = line.get("price") or {}
    if price.get("id"):
        return price["id"]
    pricing = (line.get("pricing") or {}).get("price_details") or {}
    return pricing.get("price")


# ============================================================================
# PARSER
# ============================================================================


def parse_stripe_event(payload: dict) -> BillingEvent:
    """Parse a verified Stripe event payload into a BillingEvent"""
    event_id = payload.get("id") or ""
    event_type = payload.get("type") or ""
    obj = (payload.get("data") or {}).get("object") or {}

    if event_type == "checkout.session.completed":
        data = {
            "kind": "checkout_completed",
            "event_id": event_id,
            "session_id": obj.get("id") or "",
            "provider_id": (obj.get("metadata") or {}).get("provider_id"),
            "customer_id": _object_id(obj.get("customer")),
            "subscription_id": _object_id(obj.get("subscription")),
            "amount_total": _cents_to_dollars(obj.get("amount_total")),
        }
    elif event_type in ("customer.subscription.created", "customer.subscription.updated"):
        data = {
            "kind": "subscription_updated",
            "event_id": event_id,
            "subscription": parse_subscription(obj),
        }
    elif event_type == "customer.subscription.deleted":
        data = {
            "kind": "subscription_deleted",
            "event_id": event_id,
            "subscription_id": obj.get("id") or "",
            "customer_id": _object_id(obj.get("customer")),
        }
    elif event_type == "invoice.payment_failed":
        data = {
            "kind": "invoice_payment_failed",
            "event_id": event_id,
            "invoice_id": obj.get("id") or "",
            "subscription_id": _invoice_subscription_id(obj),
            "customer_id": _object_id(obj.get("customer")),
            "amount_due": _cents_to_dollars(obj.get("amount_due")) or 0,
        }
    elif event_type in ("invoice.payment_succeeded", "invoice.paid"):
        line = _first_item(obj.get("lines"))
        data = {
            "kind": "invoice_payment_succeeded",
            "event_id": event_id,
            "invoice_id": obj.get("id") or "",
            "subscription_id": _invoice_subscription_id(obj),
            "customer_id": _object_id(obj.get("customer")),
            "amount_paid": _cents_to_dollars(obj.get("amount_paid")) or 0,
            "period_end": from_unix((line.get("period") or {}).get("end")),
            "price_id": _invoice_line_price_id(line),
        }
    else:
        data = {"kind": "unhandled", "event_id": event_id, "event_type": event_type}

    return _billing_event_adapter.validate_python(data)
