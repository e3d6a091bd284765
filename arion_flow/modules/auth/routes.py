from fastapi import APIRouter, Depends, Security
from fastapi.security import HTTPAuthorizationCredentials
from arion_flow.core.dependencies import (
    security, get_auth_service, get_current_profile, get_user_organization_ids
)
from arion_flow.core.exceptions import AuthenticationError
from arion_flow.database.supabase_client import get_supabase_admin
from arion_flow.modules.auth.schemas import LoginRequest, TokenResponse, SignupRequest, SignupResponse
from arion_flow.modules.auth.service import AuthService
from supabase import Client
from typing import Dict, Optional

router = APIRouter(tags=["auth"])


def get_current_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return credentials.credentials


@router.post("/auth/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/auth/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return {"ok": True, "message": "Logged out successfully"}


@router.get("/auth/me")
async def get_me(
    current_user: Dict = Depends(get_current_profile),
    supabase: Client = Depends(get_supabase_admin),
):
    """Current user, profile and organization ids (for frontend gating)."""
    organization_ids = get_user_organization_ids(current_user["id"], supabase)
    return {"ok": True, **current_user, "organization_ids": organization_ids}


@router.post("/signup", response_model=SignupResponse)
async def signup(
    signup_data: SignupRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Self-service signup: account, pending profile, new organization"""
    return service.signup(signup_data)
