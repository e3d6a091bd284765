from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    ok: bool = True
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user_id: str
    email: str


class SignupRequest(BaseModel):
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: Optional[str] = None
    password: Optional[str] = None
    organization_name: Optional[str] = Field(None, alias="organizationName")
    job_title: Optional[str] = Field(None, alias="jobTitle")

    class Config:
        populate_by_name = True


class SignupResult(BaseModel):
    user_id: str = Field(alias="userId")
    organization_id: str = Field(alias="organizationId")

    class Config:
        populate_by_name = True


class SignupResponse(BaseModel):
    ok: bool = True
    data: SignupResult
