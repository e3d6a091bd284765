import json
import logging
from typing import Any
from supabase import Client
from fastapi import HTTPException
from arion_flow.core.exceptions import ValidationError
from arion_flow.modules.contact.schemas import ContactRequest, ContactResponse

logger = logging.getLogger(__name__)

CONTACT_FUNCTION = "send-contact-email"


def _decode(data: Any) -> Any:
    """Edge functions answer with raw bytes; JSON bodies are parsed, anything else returned as text."""
    if isinstance(data, (bytes, bytearray)):
        text = data.decode("utf-8", errors="replace")
        try:
            return json.loads(text)
        except ValueError:
            return text
    return data


class ContactService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def send(self, contact_data: ContactRequest) -> ContactResponse:
        name = (contact_data.name or "").strip()
        email = (contact_data.email or "").strip()
        message = (contact_data.message or "").strip()
        if not name or not email or not message:
            raise ValidationError("Missing required fields")

        try:
            data = self.supabase.functions.invoke(
                CONTACT_FUNCTION,
                invoke_options={"body": {"name": name, "email": email, "message": message}}
            )
        except Exception as e:
            logger.error(f"Supabase function {CONTACT_FUNCTION} error: {e}")
            raise HTTPException(status_code=500, detail="Failed to send email")

        logger.info(f"Contact message from {email} forwarded")
        return ContactResponse(data=_decode(data))
