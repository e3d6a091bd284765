from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    job_title: Optional[str] = None
    phone: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    job_title: Optional[str] = None
    phone: Optional[str] = None
    authorized: bool = False
    role: Optional[str] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileEnvelope(BaseModel):
    ok: bool = True
    data: ProfileResponse


class MembershipResponse(BaseModel):
    organization_id: str
    organization_name: Optional[str] = None
    role: str


class ProfileWithMembershipsResponse(ProfileResponse):
    organizations: List[MembershipResponse] = []
