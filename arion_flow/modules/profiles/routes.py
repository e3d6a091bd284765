from fastapi import APIRouter, Depends
from arion_flow.core.dependencies import get_current_profile
from arion_flow.database.supabase_client import get_supabase_admin
from arion_flow.modules.profiles.schemas import ProfileUpdate, ProfileEnvelope
from arion_flow.modules.profiles.service import ProfileService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/profile", tags=["profile"])


def get_profile_service(supabase: Client = Depends(get_supabase_admin)) -> ProfileService:
    return ProfileService(supabase)


@router.get("", response_model=ProfileEnvelope)
async def get_own_profile(
    user_data: Dict = Depends(get_current_profile),
    service: ProfileService = Depends(get_profile_service)
):
    """Profile of the signed-in user (also used by the pending-approval screen)"""
    return ProfileEnvelope(data=service.get_profile_by_id(user_data["id"]))


@router.patch("", response_model=ProfileEnvelope)
async def update_own_profile(
    profile_data: ProfileUpdate,
    user_data: Dict = Depends(get_current_profile),
    service: ProfileService = Depends(get_profile_service)
):
    """Update name, job title and phone. Role and authorization are admin-only."""
    return ProfileEnvelope(data=service.update_own_profile(user_data["id"], profile_data))
