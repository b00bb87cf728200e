import logging

from fastapi import APIRouter, Depends, HTTPException

from app import dependencies as deps
from app.errors import UpstreamFailure, ValidationFailure
from app.schemas.blog import Message
from app.schemas.contact import ContactMessage, EmailJSConfig
from app.services.contact_service import ContactService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.get("/emailjs-config", response_model=EmailJSConfig)
def emailjs_config(service: ContactService = Depends(deps.get_contact_service)):
    """Public EmailJS identifiers for the contact form."""
    return service.public_config()


@router.post("/contact", response_model=Message)
def send_contact_message(
    body: ContactMessage,
    service: ContactService = Depends(deps.get_contact_service),
):
    try:
        service.send_message(body.name, body.email, body.message)
    except ValidationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
    except UpstreamFailure as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error relaying contact message: {e}")
        raise HTTPException(status_code=500, detail="Failed to send message")
    return Message(message="Message sent")
