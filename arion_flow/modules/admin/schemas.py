from pydantic import BaseModel
from typing import Optional, List
from arion_flow.modules.profiles.schemas import ProfileResponse, ProfileWithMembershipsResponse


class InviteRequest(BaseModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    job_title: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    authorized: Optional[bool] = None
    organization_id: Optional[str] = None
    organization_name: Optional[str] = None
    org_role: Optional[str] = None


class InviteResult(BaseModel):
    user_id: str
    email: str
    organization_id: Optional[str] = None


class InviteResponse(BaseModel):
    ok: bool = True
    data: InviteResult


class UserListResponse(BaseModel):
    ok: bool = True
    data: List[ProfileWithMembershipsResponse]


class UserUpdateResponse(BaseModel):
    ok: bool = True
    data: ProfileResponse


class OrganizationSummary(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True


class OrganizationListResponse(BaseModel):
    ok: bool = True
    data: List[OrganizationSummary]
