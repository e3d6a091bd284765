from supabase import Client
from arion_flow.config.roles import get_role_list
from arion_flow.modules.roles.schemas import RoleResponse
from typing import List
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class RoleService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_roles(self) -> List[RoleResponse]:
        """Rows of the roles table, or the built-in roles when the table is empty"""
        try:
            result = self.supabase.table("roles")\
                .select("*")\
                .order("name")\
                .execute()
        except Exception as e:
            logger.error(f"Error listing roles: {str(e)}")
            raise HTTPException(status_code=500, detail=str(e))

        rows = result.data or []
        if not rows:
            logger.debug("roles table is empty, serving built-in roles")
            rows = get_role_list()
        return [RoleResponse(**row) for row in rows]
