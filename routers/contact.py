import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from pymongo.database import Database

from database import COLL_CONTACT, create_document, get_db
from dependencies import get_email_service
from errors import EmailServiceError
from schemas import Contact
from security import sanitize

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contact", tags=["contact"])


class ContactRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=10, max_length=2000)


@router.post("", status_code=201)
def submit_contact(payload: ContactRequest, db: Database = Depends(get_db), email=Depends(get_email_service)):
    contact = Contact(
        name=sanitize(payload.name, "name", 100),
        email=payload.email.lower(),
        subject=sanitize(payload.subject, "subject", 200),
        message=sanitize(payload.message, "message", 2000),
    )
    contact_id = create_document(db, COLL_CONTACT, contact)

    try:
        # the template autoescapes, so it gets the text as submitted
        email.send_contact_notification({
            "name": payload.name.strip(),
            "email": contact.email,
            "subject": payload.subject.strip(),
            "message": payload.message.strip(),
        })
    except EmailServiceError as e:
        logger.error(f"Error sending contact notification: {e}")

    return {
        "status": "success",
        "message": "Thank you for your message. We'll get back to you soon!",
        "data": {"id": contact_id},
    }
