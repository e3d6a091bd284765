from supabase import Client
from arion_flow.core.exceptions import NotFoundError, ValidationError
from arion_flow.modules.profiles.schemas import (
    ProfileUpdate, ProfileResponse, ProfileWithMembershipsResponse, MembershipResponse
)
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile_by_id(self, user_id: str) -> ProfileResponse:
        """Get profile by user ID"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("id", user_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            logger.error(f"Error getting profile: {str(e)}")
            raise HTTPException(status_code=500, detail=str(e))

        if not result or not result.data:
            raise NotFoundError("Profile not found")
        return ProfileResponse(**result.data)

    def update_own_profile(self, user_id: str, profile_data: ProfileUpdate) -> ProfileResponse:
        """Self-service update. Names are trimmed; an empty job title or phone is stored as null."""
        update_data: Dict[str, Any] = {}
        if profile_data.first_name is not None:
            update_data["first_name"] = profile_data.first_name.strip()
        if profile_data.last_name is not None:
            update_data["last_name"] = profile_data.last_name.strip()
        if profile_data.job_title is not None:
            update_data["job_title"] = profile_data.job_title.strip() or None
        if profile_data.phone is not None:
            update_data["phone"] = profile_data.phone.strip() or None
        if not update_data:
            raise ValidationError("No valid fields provided for update.")
        return self.update_profile(user_id, update_data)

    def update_profile(self, user_id: str, update_data: Dict[str, Any]) -> ProfileResponse:
        try:
            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error updating profile {user_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=str(e))

        if not result.data:
            raise NotFoundError("Update failed. The record may not exist or could not be modified.")
        return ProfileResponse(**result.data[0])

    def upsert_profile(self, profile: Dict[str, Any]) -> None:
        self.supabase.table("profiles").upsert(profile, on_conflict="id").execute()

    def list_profiles(self, user_ids: Optional[List[str]] = None) -> List[ProfileWithMembershipsResponse]:
        """List profiles with their organization memberships. ``user_ids=None`` lists everyone."""
        try:
            if user_ids is not None and not user_ids:
                return []
            query = self.supabase.table("profiles").select("*")
            if user_ids is not None:
                query = query.in_("id", user_ids)
            profiles = query.order("created_at", desc=True).execute().data or []
            if not profiles:
                return []

            memberships = self.supabase.table("organization_users")\
                .select("user_id, organization_id, role, organizations(name)")\
                .in_("user_id", [p["id"] for p in profiles])\
                .execute().data or []
        except Exception as e:
            logger.error(f"Error listing profiles: {str(e)}")
            raise HTTPException(status_code=500, detail=str(e))

        by_user: Dict[str, List[MembershipResponse]] = {}
        for m in memberships:
            organization = m.get("organizations") or {}
            by_user.setdefault(m["user_id"], []).append(MembershipResponse(
                organization_id=m["organization_id"],
                organization_name=organization.get("name"),
                role=m.get("role") or "member",
            ))
        return [
            ProfileWithMembershipsResponse(**p, organizations=by_user.get(p["id"], []))
            for p in profiles
        ]

    def delete_user(self, user_id: str) -> None:
        """Remove auth user and profile through the delete_user_and_profile RPC"""
        try:
            self.supabase.rpc("delete_user_and_profile", {"user_id": user_id}).execute()
        except Exception as e:
            logger.error(f"Error deleting user {user_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Failed to delete user: {str(e)}")
