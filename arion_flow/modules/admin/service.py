from supabase import Client
from arion_flow.config.roles import ARION_ADMIN, WORKSPACE_USER, ORG_ROLE_MEMBER, ORG_ROLES, is_known_role
from arion_flow.core.compensation import CompensationStack
from arion_flow.core.dependencies import get_profile, is_arion_admin, user_can_access_user
from arion_flow.core.exceptions import ConflictError, PermissionDenied, ValidationError
from arion_flow.modules.admin.schemas import InviteRequest, InviteResponse, InviteResult, OrganizationSummary
from arion_flow.modules.auth.service import is_duplicate_user_error
from arion_flow.modules.profiles.schemas import ProfileResponse, ProfileWithMembershipsResponse
from arion_flow.modules.profiles.service import ProfileService
from typing import Any, Dict, List
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

# Fields an admin may change on another user's profile
ALLOWED_FIELDS = ("first_name", "last_name", "job_title", "phone", "authorized", "role")


class AdminService:
    """
    Account management for arion_admin and org_admin.

    ``caller_org_ids`` is the list of organizations the caller belongs to. An
    arion_admin acts on everything; an org_admin only on users and
    organizations it shares membership with.
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.profiles = ProfileService(supabase)

    def _check_assignable_role(self, role: str, user_data: Dict) -> None:
        if not is_known_role(role):
            raise ValidationError(f"Unknown role: {role}")
        if role == ARION_ADMIN and not is_arion_admin(user_data):
            raise PermissionDenied("Only arion_admin can assign the arion_admin role")

    def _check_target_scope(self, target_user_id: str, user_data: Dict) -> None:
        if is_arion_admin(user_data):
            return
        if not user_can_access_user(user_data["id"], target_user_id, self.supabase):
            raise PermissionDenied("User is outside your organizations")
        target_profile = get_profile(target_user_id, self.supabase) or {}
        if target_profile.get("role") == ARION_ADMIN:
            raise PermissionDenied("Only arion_admin can manage arion_admin accounts")

    def _organization_exists(self, name: str) -> bool:
        try:
            existing = self.supabase.table("organizations")\
                .select("id")\
                .eq("name", name)\
                .maybe_single()\
                .execute()
        except Exception as e:
            logger.error(f"Failed to check organization existence: {e}")
            raise HTTPException(status_code=500, detail="Failed to check organization")
        return bool(existing and existing.data)

    def invite(self, invite_data: InviteRequest, user_data: Dict, caller_org_ids: List[str]) -> InviteResponse:
        """Invite by email, then create profile, optional new organization and membership."""
        email = (invite_data.email or "").strip().lower()
        if not email:
            raise ValidationError("email is required")

        role = invite_data.role or WORKSPACE_USER
        self._check_assignable_role(role, user_data)
        org_role = invite_data.org_role or ORG_ROLE_MEMBER
        if org_role not in ORG_ROLES:
            raise ValidationError(f"Unknown organization role: {org_role}")

        caller_is_admin = is_arion_admin(user_data)
        organization_name = (invite_data.organization_name or "").strip()
        organization_id = invite_data.organization_id

        if organization_name:
            if not caller_is_admin:
                raise PermissionDenied("Only arion_admin can create organizations")
            if self._organization_exists(organization_name):
                raise ConflictError("The organization is already registered.", code="organization_exists")
        elif organization_id:
            if not caller_is_admin and organization_id not in caller_org_ids:
                raise PermissionDenied("You can only invite users into your own organizations")
        elif not caller_is_admin:
            raise PermissionDenied("organization_id is required")

        try:
            invited = self.supabase.auth.admin.invite_user_by_email(email, options={
                "data": {
                    "first_name": invite_data.first_name,
                    "last_name": invite_data.last_name,
                    "job_title": invite_data.job_title,
                    "phone": invite_data.phone,
                    "role": role,
                    "authorized": bool(invite_data.authorized),
                    "organization_id": organization_id,
                    "org_role": org_role,
                },
            })
        except Exception as e:
            if is_duplicate_user_error(str(e)):
                raise ConflictError("A user with this email already exists.", code="user_exists")
            logger.error(f"Invite for {email} failed: {e}")
            raise ValidationError(str(e))

        new_user = invited.user if invited else None
        if not new_user:
            raise HTTPException(status_code=500, detail="Invite returned no user")

        compensation = CompensationStack(f"invite {email}")
        compensation.push(
            f"delete auth user {new_user.id}",
            lambda: self.supabase.auth.admin.delete_user(new_user.id)
        )

        try:
            self.profiles.upsert_profile({
                "id": new_user.id,
                "first_name": invite_data.first_name,
                "last_name": invite_data.last_name,
                "job_title": invite_data.job_title,
                "phone": invite_data.phone,
                "role": role,
                "authorized": bool(invite_data.authorized),
            })
        except Exception as e:
            logger.error(f"Failed to upsert profile for invited user {new_user.id}: {e}")
            compensation.unwind()
            raise HTTPException(status_code=500, detail="Failed to create profile")

        if organization_name:
            try:
                org_result = self.supabase.table("organizations").insert({"name": organization_name}).execute()
                organization_id = org_result.data[0]["id"] if org_result.data else None
            except Exception as e:
                logger.error(f"Failed to create organization {organization_name}: {e}")
                organization_id = None
            if not organization_id:
                compensation.unwind()
                raise HTTPException(status_code=500, detail="Failed to create organization")
            new_org_id = organization_id
            compensation.push(
                f"delete organization {new_org_id}",
                lambda: self.supabase.table("organizations").delete().eq("id", new_org_id).execute()
            )

        if organization_id:
            try:
                self.supabase.table("organization_users").insert({
                    "user_id": new_user.id,
                    "organization_id": organization_id,
                    "role": org_role,
                }).execute()
            except Exception as e:
                logger.error(f"Failed to link invited user {new_user.id} to organization: {e}")
                compensation.unwind()
                raise HTTPException(status_code=500, detail="Failed to link user to organization")

        compensation.clear()
        logger.info(f"Invited {email} as {role} (organization {organization_id}) by {user_data['id']}")
        return InviteResponse(data=InviteResult(user_id=new_user.id, email=email, organization_id=organization_id))

    def list_users(self, user_data: Dict, caller_org_ids: List[str]) -> List[ProfileWithMembershipsResponse]:
        if is_arion_admin(user_data):
            return self.profiles.list_profiles()
        if not caller_org_ids:
            return []
        try:
            members = self.supabase.table("organization_users")\
                .select("user_id")\
                .in_("organization_id", caller_org_ids)\
                .execute()
        except Exception as e:
            logger.error(f"Error listing organization members: {str(e)}")
            raise HTTPException(status_code=500, detail=str(e))
        user_ids = list({m["user_id"] for m in members.data or []})
        return self.profiles.list_profiles(user_ids)

    def update_user(self, target_user_id: str, body: Dict[str, Any], user_data: Dict) -> ProfileResponse:
        """Apply allow-listed profile fields; anything else in the body is ignored."""
        updates = {field: value for field, value in body.items() if field in ALLOWED_FIELDS}
        if not updates:
            raise ValidationError("No valid fields provided for update.")
        if "role" in updates:
            self._check_assignable_role(updates["role"], user_data)
        if "authorized" in updates and not isinstance(updates["authorized"], bool):
            raise ValidationError("authorized must be a boolean")
        self._check_target_scope(target_user_id, user_data)
        profile = self.profiles.update_profile(target_user_id, updates)
        logger.info(f"User {user_data['id']} updated profile {target_user_id}: {sorted(updates)}")
        return profile

    def delete_user(self, target_user_id: str, user_data: Dict) -> None:
        if target_user_id == user_data["id"]:
            raise ValidationError("You cannot delete your own account")
        self._check_target_scope(target_user_id, user_data)
        self.profiles.delete_user(target_user_id)
        logger.info(f"User {user_data['id']} deleted user {target_user_id}")

    def list_organizations(self, user_data: Dict, caller_org_ids: List[str]) -> List[OrganizationSummary]:
        try:
            query = self.supabase.table("organizations").select("id, name")
            if not is_arion_admin(user_data):
                if not caller_org_ids:
                    return []
                query = query.in_("id", caller_org_ids)
            result = query.order("name").execute()
        except Exception as e:
            logger.error(f"Error listing organizations: {str(e)}")
            raise HTTPException(status_code=500, detail=str(e))
        return [OrganizationSummary(**row) for row in result.data or []]
