from fastapi import APIRouter, Depends
from arion_flow.core.dependencies import require_admin
from arion_flow.database.supabase_client import get_supabase_admin
from arion_flow.modules.roles.schemas import RoleListResponse
from arion_flow.modules.roles.service import RoleService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/roles", tags=["roles"])


def get_role_service(supabase: Client = Depends(get_supabase_admin)) -> RoleService:
    return RoleService(supabase)


@router.get("", response_model=RoleListResponse)
async def list_roles(
    user_data: Dict = Depends(require_admin),
    service: RoleService = Depends(get_role_service)
):
    """Roles that can be assigned from the admin screens"""
    return RoleListResponse(roles=service.list_roles())
