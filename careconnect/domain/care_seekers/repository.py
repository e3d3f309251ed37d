"""Care seeker repository - Database operations for care seekers and their inquiries"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import CareSeeker, Provider, ProviderInquiry, SavedProvider


class CareSeekerRepository:
    """Repository for care seeker and inquiry database operations"""

    @staticmethod
    def get_by_user_id(db: Session, user_id: str) -> Optional[CareSeeker]:
        return db.query(CareSeeker).filter(CareSeeker.user_id == user_id).first()

    @staticmethod
    def create(db: Session, **data) -> CareSeeker:
        care_seeker = CareSeeker(**data)
        db.add(care_seeker)
        db.commit()
        db.refresh(care_seeker)
        return care_seeker

    @staticmethod
    def update(db: Session, care_seeker: CareSeeker, **updates) -> CareSeeker:
        for key, value in updates.items():
            if hasattr(care_seeker, key):
                setattr(care_seeker, key, value)
        db.commit()
        db.refresh(care_seeker)
        return care_seeker

    @staticmethod
    def list_all(
        db: Session, status: Optional[str] = None, search: Optional[str] = None
    ) -> list[CareSeeker]:
        query = db.query(CareSeeker)
        if status:
            query = query.filter(CareSeeker.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    CareSeeker.first_name.ilike(pattern),
                    CareSeeker.last_name.ilike(pattern),
                    CareSeeker.email.ilike(pattern),
                )
            )
        return query.order_by(CareSeeker.created_at.desc()).all()

    @staticmethod
    def count(db: Session, status: Optional[str] = None) -> int:
        query = db.query(CareSeeker)
        if status:
            query = query.filter(CareSeeker.status == status)
        return query.count()

    # ========================================================================
    # INQUIRIES
    # ========================================================================

    @staticmethod
    def get_pending_inquiry(
        db: Session, care_seeker_id: str, provider_id: str
    ) -> Optional[ProviderInquiry]:
        return (
            db.query(ProviderInquiry)
            .filter(
                ProviderInquiry.care_seeker_id == care_seeker_id,
                ProviderInquiry.provider_id == provider_id,
                ProviderInquiry.status == "pending",
            )
            .first()
        )

    @staticmethod
    def create_inquiry(db: Session, **data) -> ProviderInquiry:
        inquiry = ProviderInquiry(**data)
        db.add(inquiry)
        db.commit()
        db.refresh(inquiry)
        return inquiry

    @staticmethod
    def get_inquiry(db: Session, inquiry_id: str) -> Optional[ProviderInquiry]:
        return db.query(ProviderInquiry).filter(ProviderInquiry.id == inquiry_id).first()

    @staticmethod
    def get_inquiries_for_care_seeker(
        db: Session, care_seeker_id: str, status: Optional[str] = None
    ) -> list[ProviderInquiry]:
        query = db.query(ProviderInquiry).filter(ProviderInquiry.care_seeker_id == care_seeker_id)
        if status:
            query = query.filter(ProviderInquiry.status == status)
        return query.order_by(ProviderInquiry.created_at.desc()).all()

    @staticmethod
    def get_inquiries_for_provider(
        db: Session, provider_id: str, status: Optional[str] = None
    ) -> list[ProviderInquiry]:
        query = db.query(ProviderInquiry).filter(ProviderInquiry.provider_id == provider_id)
        if status:
            query = query.filter(ProviderInquiry.status == status)
        return query.order_by(ProviderInquiry.created_at.desc()).all()

    @staticmethod
    def update_inquiry(db: Session, inquiry: ProviderInquiry, **updates) -> ProviderInquiry:
        for key, value in updates.items():
            setattr(inquiry, key, value)
        db.commit()
        db.refresh(inquiry)
        return inquiry

    @staticmethod
    def delete_inquiry(db: Session, inquiry: ProviderInquiry) -> None:
        db.delete(inquiry)
        db.commit()

    # ========================================================================
    # SAVED PROVIDERS
    # ========================================================================

    @staticmethod
    def get_saved(db: Session, care_seeker_id: str, provider_id: str) -> Optional[SavedProvider]:
        return (
            db.query(SavedProvider)
            .filter(
                SavedProvider.care_seeker_id == care_seeker_id,
                SavedProvider.provider_id == provider_id,
            )
            .first()
        )

    @staticmethod
    def add_saved(db: Session, **data) -> SavedProvider:
        saved = SavedProvider(**data)
        db.add(saved)
        db.commit()
        db.refresh(saved)
        return saved

    @staticmethod
    def update_saved(db: Session, saved: SavedProvider, **updates) -> SavedProvider:
        for key, value in updates.items():
            setattr(saved, key, value)
        db.commit()
        db.refresh(saved)
        return saved

    @staticmethod
    def remove_saved(db: Session, saved: SavedProvider) -> None:
        db.delete(saved)
        db.commit()

    @staticmethod
    def list_saved(db: Session, care_seeker_id: str) -> list[SavedProvider]:
        """Saved providers that are still listed, newest first"""
        return (
            db.query(SavedProvider)
            .join(Provider, SavedProvider.provider_id == Provider.id)
            .filter(SavedProvider.care_seeker_id == care_seeker_id, Provider.status == "active")
            .order_by(SavedProvider.created_at.desc(), SavedProvider.id)
            .all()
        )
