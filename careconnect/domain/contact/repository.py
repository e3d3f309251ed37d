"""Contact repository - Database operations for contact form submissions"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import ContactSubmission


class ContactRepository:
    """Repository for contact submission database operations"""

    @staticmethod
    def create(db: Session, **data) -> ContactSubmission:
        submission = ContactSubmission(**data)
        db.add(submission)
        db.commit()
        db.refresh(submission)
        return submission

    @staticmethod
    def get_by_id(db: Session, submission_id: str) -> Optional[ContactSubmission]:
        return db.query(ContactSubmission).filter(ContactSubmission.id == submission_id).first()

    @staticmethod
    def list_all(db: Session, status: Optional[str] = None) -> list[ContactSubmission]:
        query = db.query(ContactSubmission)
        if status:
            query = query.filter(ContactSubmission.status == status)
        return query.order_by(ContactSubmission.created_at.desc()).all()

    @staticmethod
    def update_status(db: Session, submission: ContactSubmission, status: str) -> ContactSubmission:
        submission.status = status
        db.commit()
        db.refresh(submission)
        return submission

    @staticmethod
    def count(db: Session, status: Optional[str] = None) -> int:
        query = db.query(ContactSubmission)
        if status:
            query = query.filter(ContactSubmission.status == status)
        return query.count()
