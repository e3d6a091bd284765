from fastapi import APIRouter, Body, Depends
from arion_flow.core.dependencies import require_admin, get_user_organization_ids, get_access_cache
from arion_flow.database.supabase_client import get_supabase_admin
from arion_flow.modules.admin.schemas import (
    InviteRequest, InviteResponse, UserListResponse, UserUpdateResponse, OrganizationListResponse
)
from arion_flow.modules.admin.service import AdminService
from supabase import Client
from typing import Any, Dict

router = APIRouter(tags=["admin"])


def get_admin_service(supabase: Client = Depends(get_supabase_admin)) -> AdminService:
    return AdminService(supabase)


@router.post("/invite", response_model=InviteResponse)
async def invite_user(
    invite_data: InviteRequest,
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
    supabase: Client = Depends(get_supabase_admin),
    cache: Dict = Depends(get_access_cache)
):
    """Invite a user by email into an organization"""
    caller_org_ids = get_user_organization_ids(user_data["id"], supabase, cache)
    return service.invite(invite_data, user_data, caller_org_ids)


@router.get("/admin/users", response_model=UserListResponse)
async def list_users(
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
    supabase: Client = Depends(get_supabase_admin),
    cache: Dict = Depends(get_access_cache)
):
    """Profiles with memberships. org_admin only sees members of its organizations."""
    caller_org_ids = get_user_organization_ids(user_data["id"], supabase, cache)
    return UserListResponse(data=service.list_users(user_data, caller_org_ids))


@router.patch("/admin/users/{user_id}", response_model=UserUpdateResponse)
async def update_user(
    user_id: str,
    body: Dict[str, Any] = Body(...),
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Update name, contact details, role or approval of a user"""
    return UserUpdateResponse(data=service.update_user(user_id, body, user_data))


@router.delete("/admin/users/{user_id}")
async def delete_user(
    user_id: str,
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    service.delete_user(user_id, user_data)
    return {"ok": True}


@router.get("/admin/organizations", response_model=OrganizationListResponse)
async def list_organizations(
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
    supabase: Client = Depends(get_supabase_admin),
    cache: Dict = Depends(get_access_cache)
):
    caller_org_ids = get_user_organization_ids(user_data["id"], supabase, cache)
    return OrganizationListResponse(data=service.list_organizations(user_data, caller_org_ids))
