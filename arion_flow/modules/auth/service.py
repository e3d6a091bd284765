import hashlib
import time
import logging
from datetime import datetime, timezone
from supabase import Client
from arion_flow.config.roles import ORG_ADMIN, ORG_ROLE_ADMIN
from arion_flow.core.compensation import CompensationStack
from arion_flow.core.exceptions import AuthenticationError, ConflictError, ValidationError
from arion_flow.modules.auth.schemas import LoginRequest, TokenResponse, SignupRequest, SignupResponse, SignupResult
from fastapi import HTTPException
from typing import Dict, Any

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. dashboard pollers with the same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


def is_duplicate_user_error(message: str) -> bool:
    lowered = message.lower()
    return "already registered" in lowered or "already exists" in lowered or "already been registered" in lowered


class AuthService:
    def __init__(self, supabase: Client, supabase_admin: Client = None):
        self.supabase = supabase
        self.supabase_admin = supabase_admin or supabase

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate user using Supabase Auth"""
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })
        except Exception as e:
            error_message = str(e)
            if "invalid" in error_message.lower() or "credentials" in error_message.lower():
                raise AuthenticationError("Invalid email or password")
            raise HTTPException(status_code=500, detail=f"Login failed: {error_message}")

        if not auth_response.user or not auth_response.session:
            raise AuthenticationError("Invalid credentials")

        self._record_last_login(auth_response.user.id)
        return TokenResponse(
            access_token=auth_response.session.access_token,
            refresh_token=getattr(auth_response.session, "refresh_token", None),
            user_id=auth_response.user.id,
            email=auth_response.user.email or login_data.email
        )

    def _record_last_login(self, user_id: str) -> None:
        try:
            self.supabase_admin.table("profiles")\
                .update({"last_login": datetime.now(timezone.utc).isoformat()})\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.warning(f"Could not record last_login for {user_id}: {e}")

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise AuthenticationError("Not authenticated")
            user = user_response.user
            user_data = {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata or {},
                "app_metadata": user.app_metadata or {},
            }
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            logger.info(f"Token rejected: {e}")
            raise AuthenticationError("Not authenticated")

    def logout(self, token: str) -> bool:
        """Revoke the session behind ``token``"""
        _AUTH_USER_CACHE.pop(hashlib.sha256(token.encode()).hexdigest(), None)
        try:
            self.supabase_admin.auth.admin.sign_out(token)
            return True
        except Exception as e:
            logger.warning(f"Logout failed: {e}")
            return False

    def signup(self, signup_data: SignupRequest) -> SignupResponse:
        """Create account, profile and organization; the new user becomes the organization's admin."""
        first_name = (signup_data.first_name or "").strip()
        last_name = (signup_data.last_name or "").strip()
        email = (signup_data.email or "").strip().lower()
        password = signup_data.password
        organization_name = (signup_data.organization_name or "").strip()
        job_title = (signup_data.job_title or "").strip() or None

        if not first_name or not last_name or not email or not password or not organization_name:
            raise ValidationError("Missing required fields")

        admin = self.supabase_admin

        try:
            existing_org = admin.table("organizations")\
                .select("id")\
                .eq("name", organization_name)\
                .maybe_single()\
                .execute()
        except Exception as e:
            logger.error(f"Failed to check organization existence: {e}")
            raise HTTPException(status_code=500, detail="Failed to check organization")

        if existing_org and existing_org.data:
            raise ConflictError("The organization is already registered.", code="organization_exists")

        try:
            created = admin.auth.admin.create_user({
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {
                    "first_name": first_name,
                    "last_name": last_name,
                    "job_title": job_title,
                },
            })
        except Exception as e:
            if is_duplicate_user_error(str(e)):
                raise ConflictError("A user with this email already exists.", code="user_exists")
            logger.error(f"Failed to create user during signup: {e}")
            raise HTTPException(status_code=500, detail="Failed to create user")

        new_user = created.user if created else None
        if not new_user:
            logger.error("Supabase admin create_user returned no user")
            raise HTTPException(status_code=500, detail="Failed to create user")

        compensation = CompensationStack("signup")
        compensation.push(f"delete auth user {new_user.id}", lambda: admin.auth.admin.delete_user(new_user.id))

        try:
            admin.table("profiles").upsert({
                "id": new_user.id,
                "first_name": first_name,
                "last_name": last_name,
                "job_title": job_title,
                "authorized": False,
                "role": ORG_ADMIN,
            }, on_conflict="id").execute()
        except Exception as e:
            logger.error(f"Failed to upsert profile: {e}")
            compensation.unwind()
            raise HTTPException(status_code=500, detail="Failed to create profile")

        try:
            org_result = admin.table("organizations").insert({"name": organization_name}).execute()
            organization_id = org_result.data[0]["id"] if org_result.data else None
        except Exception as e:
            logger.error(f"Failed to create organization: {e}")
            organization_id = None
        if not organization_id:
            compensation.unwind()
            raise HTTPException(status_code=500, detail="Failed to create organization")

        compensation.push(
            f"delete organization {organization_id}",
            lambda: admin.table("organizations").delete().eq("id", organization_id).execute()
        )

        try:
            admin.table("organization_users").insert({
                "user_id": new_user.id,
                "organization_id": organization_id,
                "role": ORG_ROLE_ADMIN,
            }).execute()
        except Exception as e:
            logger.error(f"Failed to link user to organization: {e}")
            compensation.unwind()
            raise HTTPException(status_code=500, detail="Failed to link user to organization")

        compensation.clear()
        logger.info(f"Signed up user {new_user.id} with organization {organization_id}")
        return SignupResponse(data=SignupResult(user_id=new_user.id, organization_id=organization_id))
