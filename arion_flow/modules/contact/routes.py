from fastapi import APIRouter, Depends
from arion_flow.database.supabase_client import get_supabase_admin
from arion_flow.modules.contact.schemas import ContactRequest, ContactResponse
from arion_flow.modules.contact.service import ContactService
from supabase import Client

router = APIRouter(prefix="/contact", tags=["contact"])


def get_contact_service(supabase: Client = Depends(get_supabase_admin)) -> ContactService:
    return ContactService(supabase)


@router.post("", response_model=ContactResponse)
def send_contact_message(
    contact_data: ContactRequest,
    service: ContactService = Depends(get_contact_service)
):
    """Public contact form, relayed through the send-contact-email edge function"""
    return service.send(contact_data)
