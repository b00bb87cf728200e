import logging

import httpx

from app.errors import UpstreamFailure, ValidationFailure
from app.settings import Settings, settings

logger = logging.getLogger(__name__)


class ContactService:
    """Relays contact-form messages to EmailJS."""

    def __init__(
        self,
        current_settings: Settings | None = None,
        client: httpx.Client | None = None,
    ):
        self.settings = current_settings or settings
        self.client = client

    def public_config(self) -> dict:
        return {
            "publicKey": self.settings.EMAILJS_PUBLIC_KEY,
            "serviceId": self.settings.EMAILJS_SERVICE_ID,
            "templateId": self.settings.EMAILJS_TEMPLATE_ID,
        }

    def send_message(self, name: str, email: str, message: str) -> None:
        name, email, message = (
            (name or "").strip(),
            (email or "").strip(),
            (message or "").strip(),
        )
        if not name or not email or not message:
            raise ValidationFailure("name, email and message are required")

        payload = {
            "service_id": self.settings.EMAILJS_SERVICE_ID,
            "template_id": self.settings.EMAILJS_TEMPLATE_ID,
            "user_id": self.settings.EMAILJS_PUBLIC_KEY,
            "template_params": {
                "from_name": name,
                "from_email": email,
                "message": message,
            },
        }
        if self.settings.EMAILJS_PRIVATE_KEY:
            payload["accessToken"] = self.settings.EMAILJS_PRIVATE_KEY

        try:
            if self.client is not None:
                response = self.client.post(self.settings.EMAILJS_API_URL, json=payload)
            else:
                with httpx.Client(timeout=10.0) as client:
                    response = client.post(self.settings.EMAILJS_API_URL, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"EmailJS rejected message from {email}: "
                f"{e.response.status_code} {e.response.text}"
            )
            raise UpstreamFailure("Email relay rejected the message") from e
        except httpx.RequestError as e:
            logger.error(f"EmailJS connection error: {e}")
            raise UpstreamFailure("Email relay unavailable") from e

        logger.info(f"Relayed contact message from {email}")
