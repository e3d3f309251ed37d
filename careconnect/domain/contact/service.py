"""Contact service - public contact form and admin triage"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import send_contact_submission_notification
from ...models import ContactSubmission
from .repository import ContactRepository
from .schemas import ContactCreate

logger = logging.getLogger(__name__)


class ContactService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ContactRepository()

    async def submit(self, data: ContactCreate) -> ContactSubmission:
        """Store the submission, then forward it to the admin inbox"""
        submission = self.repo.create(self.db, status="new", **data.model_dump())
        logger.info(f"📥 Contact submission {submission.id} received")
        await send_contact_submission_notification(
            data.name, data.email, data.phone, data.subject, data.message
        )
        return submission

    def list_submissions(self, status: Optional[str] = None) -> list[ContactSubmission]:
        return self.repo.list_all(self.db, status)

    def update_status(self, submission_id: str, status: str) -> ContactSubmission:
        submission = self.repo.get_by_id(self.db, submission_id)
        if not submission:
            raise HTTPException(status_code=404, detail="Submission not found")
        return self.repo.update_status(self.db, submission, status)
