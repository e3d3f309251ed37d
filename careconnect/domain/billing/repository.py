"""Billing repository - Database operations for billing"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Provider, SubscriptionHistory, SubscriptionPlan

logger = logging.getLogger(__name__)


class BillingRepository:
    """Repository for billing database operations"""

    @staticmethod
    def get_provider_by_id(db: Session, provider_id: str) -> Optional[Provider]:
        """Get provider by ID"""
        return db.query(Provider).filter(Provider.id == provider_id).first()

    @staticmethod
    def get_provider_by_subscription_id(db: Session, subscription_id: str) -> Optional[Provider]:
        """Get provider by Stripe subscription ID"""
        return db.query(Provider).filter(Provider.stripe_subscription_id == subscription_id).first()

    @staticmethod
    def get_provider_by_customer_id(db: Session, customer_id: str) -> Optional[Provider]:
        """Get provider by Stripe customer ID"""
        return db.query(Provider).filter(Provider.stripe_customer_id == customer_id).first()

    @staticmethod
    def get_providers_with_customer(db: Session) -> list[Provider]:
        """Providers that have a Stripe customer (candidates for a full sync)"""
        return db.query(Provider).filter(Provider.stripe_customer_id.isnot(None)).all()

    @staticmethod
    def get_plan_by_price_id(db: Session, price_id: Optional[str]) -> Optional[SubscriptionPlan]:
        if not price_id:
            return None
        return db.query(SubscriptionPlan).filter(SubscriptionPlan.stripe_price_id == price_id).first()

    @staticmethod
    def get_plan_by_slug(db: Session, slug: str) -> Optional[SubscriptionPlan]:
        return db.query(SubscriptionPlan).filter(SubscriptionPlan.slug == slug).first()

    @staticmethod
    def get_plan_by_id(db: Session, plan_id: str) -> Optional[SubscriptionPlan]:
        return db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()

    @staticmethod
    def list_plans(db: Session) -> list[SubscriptionPlan]:
        return db.query(SubscriptionPlan).order_by(SubscriptionPlan.price).all()

    @staticmethod
    def save_provider(db: Session, provider: Provider) -> Provider:
        """Commit pending changes to a provider"""
        db.commit()
        db.refresh(provider)
        return provider

    @staticmethod
    def save_plan(db: Session, plan: SubscriptionPlan) -> SubscriptionPlan:
        db.commit()
        db.refresh(plan)
        return plan

    @staticmethod
    def history_exists(db: Session, idempotency_key: str) -> bool:
        return (
            db.query(SubscriptionHistory.id)
            .filter(SubscriptionHistory.idempotency_key == idempotency_key)
            .first()
            is not None
        )

    @staticmethod
    def add_history_if_absent(db: Session, idempotency_key: str, **fields) -> bool:
        """Insert a history entry unless one with the same key exists

        Returns True when a row was written. A concurrent delivery of the same
        event loses on the unique constraint and is treated as already recorded.
        """
        if BillingRepository.history_exists(db, idempotency_key):
            return False

        db.add(SubscriptionHistory(idempotency_key=idempotency_key, **fields))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info(f"ℹ️ History entry {idempotency_key} already recorded")
            return False
        return True

    @staticmethod
    def get_history_for_provider(db: Session, provider_id: str, limit: int = 50) -> list:
        return (
            db.query(SubscriptionHistory)
            .filter(SubscriptionHistory.provider_id == provider_id)
            .order_by(SubscriptionHistory.created_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_trial_providers_ending_between(db: Session, start, end) -> list[Provider]:
        """Listed providers whose trial ends in [start, end) and have not subscribed"""
        return (
            db.query(Provider)
            .filter(
                Provider.status == "active",
                Provider.trial_ends_at >= start,
                Provider.trial_ends_at < end,
                (Provider.subscription_status.is_(None))
                | (Provider.subscription_status.in_(["trial", "pending"])),
            )
            .all()
        )
