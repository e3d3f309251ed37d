"""Provider repository - Database operations for provider listings"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Provider


class ProviderRepository:
    """Repository for provider database operations"""

    @staticmethod
    def get_active_listings(db: Session) -> list[Provider]:
        """Publicly listed providers, newest first"""
        return (
            db.query(Provider)
            .filter(Provider.status == "active")
            .order_by(Provider.created_at.desc())
            .all()
        )

    @staticmethod
    def get_by_id(db: Session, provider_id: str) -> Optional[Provider]:
        return db.query(Provider).filter(Provider.id == provider_id).first()

    @staticmethod
    def get_by_user_id(db: Session, user_id: str) -> Optional[Provider]:
        return db.query(Provider).filter(Provider.user_id == user_id).first()

    @staticmethod
    def list_providers(
        db: Session, status: Optional[str] = None, search: Optional[str] = None
    ) -> list[Provider]:
        """All providers for admin screens, with optional status and name/city search"""
        query = db.query(Provider)
        if status:
            query = query.filter(Provider.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Provider.business_name.ilike(pattern),
                    Provider.city.ilike(pattern),
                    Provider.contact_email.ilike(pattern),
                )
            )
        return query.order_by(Provider.created_at.desc()).all()

    @staticmethod
    def get_missing_coordinates(db: Session, limit: int = 50) -> list[Provider]:
        """Providers with an address but no coordinates"""
        return (
            db.query(Provider)
            .filter(
                or_(Provider.latitude.is_(None), Provider.longitude.is_(None)),
                Provider.address.isnot(None),
            )
            .limit(limit)
            .all()
        )

    @staticmethod
    def create(db: Session, **data) -> Provider:
        provider = Provider(**data)
        db.add(provider)
        db.commit()
        db.refresh(provider)
        return provider

    @staticmethod
    def update(db: Session, provider: Provider, **updates) -> Provider:
        """Update a provider with provided fields"""
        for key, value in updates.items():
            if hasattr(provider, key):
                setattr(provider, key, value)
        db.commit()
        db.refresh(provider)
        return provider

    @staticmethod
    def delete(db: Session, provider: Provider) -> None:
        db.delete(provider)
        db.commit()

    @staticmethod
    def count(db: Session, status: Optional[str] = None) -> int:
        query = db.query(Provider)
        if status:
            query = query.filter(Provider.status == status)
        return query.count()
