"""Contact router - public contact form"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from .schemas import ContactCreate
from .service import ContactService

router = APIRouter(prefix="/contact", tags=["Contact"])

rate_limit_contact = create_rate_limiter(
    limit=5, window_seconds=3600, key_prefix="contact", use_ip=True
)


def get_contact_service(db: Session = Depends(get_db)) -> ContactService:
    return ContactService(db)


@router.post("", status_code=201)
async def submit_contact_form(
    data: ContactCreate,
    service: ContactService = Depends(get_contact_service),
    _: None = Depends(rate_limit_contact),
):
    submission = await service.submit(data)
    return {"id": submission.id, "message": "Thank you! We'll get back to you soon."}
