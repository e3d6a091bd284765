from pydantic import BaseModel
from typing import Optional, List


class RoleResponse(BaseModel):
    name: str
    label: Optional[str] = None
    description: Optional[str] = None

    class Config:
        from_attributes = True


class RoleListResponse(BaseModel):
    ok: bool = True
    roles: List[RoleResponse]
