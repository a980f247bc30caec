"""
Core dependencies for route protection and role checks
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from magaza.config import settings
from magaza.database.supabase_client import get_supabase, get_service_supabase, get_auth_client
from magaza.modules.auth.service import AuthService
from supabase import Client
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def get_auth_service(
    supabase: Client = Depends(get_supabase),
    admin: Client = Depends(get_service_supabase),
    auth_client: Client = Depends(get_auth_client),
) -> AuthService:
    return AuthService(supabase, admin, auth_client)


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Giriş yapmanız gerekiyor."
        )
    return auth_service.get_current_user(credentials.credentials)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[dict]:
    """Current user when a valid token is sent, otherwise None"""
    if not credentials:
        return None
    try:
        return auth_service.get_current_user(credentials.credentials)
    except HTTPException:
        return None


def get_user_profile(user_id: str, supabase: Client) -> Optional[Dict[str, Any]]:
    result = supabase.table("user_profiles")\
        .select("*")\
        .eq("id", user_id)\
        .maybe_single()\
        .execute()
    if not result or not result.data:
        return None
    return result.data


def is_admin_email(email: Optional[str]) -> bool:
    return bool(email) and email.lower() in settings.get_admin_emails()


def is_admin_user(user_data: dict, profile: Optional[Dict[str, Any]]) -> bool:
    """Admin by profile role, profile flag or configured admin e-mail"""
    if profile and (profile.get("role") == "admin" or profile.get("is_admin") is True):
        return True
    return is_admin_email(user_data.get("email"))


def _load_profile(request: Request, user_data: dict, supabase: Client) -> Optional[Dict[str, Any]]:
    # request-scoped so admin and developer checks share one lookup
    if not hasattr(request.state, "profile_cache"):
        request.state.profile_cache = {}
    cache = request.state.profile_cache
    if user_data["id"] not in cache:
        try:
            cache[user_data["id"]] = get_user_profile(user_data["id"], supabase)
        except Exception as e:
            logger.error(f"Error loading profile for {user_data['id']}: {e}")
            cache[user_data["id"]] = None
    return cache[user_data["id"]]


def get_current_profile(
    request: Request,
    user_data: dict = Depends(get_current_user),
    supabase: Client = Depends(get_service_supabase)
) -> Optional[Dict[str, Any]]:
    return _load_profile(request, user_data, supabase)


def require_admin(
    request: Request,
    user_data: dict = Depends(get_current_user),
    supabase: Client = Depends(get_service_supabase)
) -> dict:
    profile = _load_profile(request, user_data, supabase)
    if not is_admin_user(user_data, profile):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Bu işlem için admin yetkisi gerekiyor."
        )
    return user_data


def require_developer_account(
    request: Request,
    user_data: dict = Depends(get_current_user),
    supabase: Client = Depends(get_service_supabase)
) -> dict:
    """Developer account, approved or not (payment info, Stripe onboarding)."""
    profile = _load_profile(request, user_data, supabase)
    if is_admin_user(user_data, profile):
        return user_data
    if not profile or profile.get("is_developer") is not True:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Bu işlem için geliştirici hesabı gerekiyor."
        )
    return user_data


def require_developer(
    request: Request,
    user_data: dict = Depends(require_developer_account),
    supabase: Client = Depends(get_service_supabase)
) -> dict:
    """Approved developer (publishing automations)."""
    profile = _load_profile(request, user_data, supabase)
    if is_admin_user(user_data, profile):
        return user_data
    if profile.get("developer_approved") is not True:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Geliştirici hesabınız henüz onaylanmamış."
        )
    return user_data


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return "unknown"
