"""Booking repository - Database operations for booking requests"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def create(db: Session, **data) -> Booking:
        booking = Booking(**data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def get_by_id(db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> list[Booking]:
        """A care seeker's bookings, newest first"""
        return (
            db.query(Booking)
            .filter(Booking.customer_email == email.lower())
            .order_by(Booking.created_at.desc())
            .all()
        )

    @staticmethod
    def get_for_provider(
        db: Session, provider_id: str, status: Optional[str] = None
    ) -> list[Booking]:
        query = db.query(Booking).filter(Booking.provider_id == provider_id)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.date.asc(), Booking.time.asc()).all()

    @staticmethod
    def list_all(db: Session, status: Optional[str] = None, limit: int = 200) -> list[Booking]:
        query = db.query(Booking)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.created_at.desc()).limit(limit).all()

    @staticmethod
    def update_status(db: Session, booking: Booking, status: str) -> Booking:
        booking.status = status
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def count(db: Session, status: Optional[str] = None) -> int:
        query = db.query(Booking)
        if status:
            query = query.filter(Booking.status == status)
        return query.count()
