"""
Core dependencies for route protection and organization scoping
"""

from fastapi import Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from arion_flow.config import Settings
from arion_flow.config.roles import ARION_ADMIN, ADMIN_ROLES
from arion_flow.core.exceptions import AuthenticationError, PermissionDenied, NotFoundError
from arion_flow.database.supabase_client import get_supabase, get_supabase_admin
from arion_flow.modules.auth.service import AuthService
from arion_flow.modules.runpod.client import RunPodClient
from supabase import Client
from typing import List, Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_runpod(request: Request) -> RunPodClient:
    return request.app.state.runpod


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for access data (organization_ids)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_auth_service(
    supabase: Client = Depends(get_supabase),
    supabase_admin: Client = Depends(get_supabase_admin)
) -> AuthService:
    return AuthService(supabase, supabase_admin)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from the bearer token"""
    if credentials is None or not credentials.credentials.strip():
        raise AuthenticationError("Not authenticated")
    return auth_service.get_current_user(credentials.credentials.strip())


def get_profile(user_id: str, supabase: Client) -> Optional[Dict[str, Any]]:
    try:
        result = supabase.table("profiles")\
            .select("*")\
            .eq("id", user_id)\
            .maybe_single()\
            .execute()
        return result.data if result else None
    except Exception as e:
        logger.error(f"Error loading profile {user_id}: {e}")
        return None


def get_current_profile(
    user_data: dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase_admin)
) -> dict:
    """Current user with their profile row attached under ``profile``."""
    profile = get_profile(user_data["id"], supabase)
    if not profile:
        raise PermissionDenied("Profile not found for this account")
    return {**user_data, "profile": profile}


def require_authorized(user_data: dict = Depends(get_current_profile)) -> dict:
    """Reject accounts still waiting for approval"""
    if not user_data["profile"].get("authorized"):
        raise PermissionDenied("Account pending approval")
    return user_data


def require_role(*roles: str):
    """Factory function to create role check dependency"""
    def check_role(user_data: dict = Depends(require_authorized)) -> dict:
        if user_data["profile"].get("role") not in roles:
            raise PermissionDenied(f"Insufficient role. Required one of: {', '.join(roles)}")
        return user_data
    return check_role


require_admin = require_role(*ADMIN_ROLES)


def is_arion_admin(user_data: dict) -> bool:
    profile = user_data.get("profile") or {}
    return profile.get("role") == ARION_ADMIN


def get_user_organization_ids(user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> List[str]:
    """Return organization_ids from organization_users. Uses request-scoped cache when provided."""
    if cache is not None and "organization_ids" in cache:
        return cache["organization_ids"]
    try:
        result = supabase.table("organization_users")\
            .select("organization_id")\
            .eq("user_id", user_id)\
            .execute()
        ids = [m["organization_id"] for m in result.data] if result.data else []
    except Exception as e:
        logger.error(f"Error getting user organization ids: {e}")
        ids = []
    if cache is not None:
        cache["organization_ids"] = ids
    return ids


def get_access_cache(request: Request) -> Dict[str, Any]:
    return _get_request_cache(request)


def check_organization_member(organization_id: str, user_data: dict, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> dict:
    """Allow arion_admin, or a member of the organization"""
    if is_arion_admin(user_data):
        return user_data
    if organization_id in get_user_organization_ids(user_data["id"], supabase, cache):
        return user_data
    raise PermissionDenied("You must be a member of this organization")


def user_can_access_user(current_user_id: str, target_user_id: str, supabase: Client) -> bool:
    """True if target is self or shares at least one organization with current user"""
    if current_user_id == target_user_id:
        return True
    my_org_ids = get_user_organization_ids(current_user_id, supabase)
    if not my_org_ids:
        return False
    member_result = supabase.table("organization_users")\
        .select("user_id")\
        .eq("user_id", target_user_id)\
        .in_("organization_id", my_org_ids)\
        .limit(1)\
        .execute()
    return bool(member_result.data)


def check_order_access(order: Dict[str, Any], user_data: dict, supabase: Client) -> dict:
    """Allow arion_admin, the order owner, or a member of the order's organization"""
    if is_arion_admin(user_data):
        return user_data
    if order.get("user_id") == user_data["id"]:
        return user_data
    organization_id = order.get("organization_id")
    if organization_id and organization_id in get_user_organization_ids(user_data["id"], supabase):
        return user_data
    # Do not reveal orders of other organizations
    raise NotFoundError("Order not found")
