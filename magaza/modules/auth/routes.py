from fastapi import APIRouter, Cookie, Depends, Query, Response
from fastapi.responses import RedirectResponse
from magaza.config import settings
from magaza.database.supabase_client import get_service_supabase
from magaza.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse,
    PasswordResetRequest, PasswordUpdateRequest, CheckEmailRequest,
    CheckEmailResponse, CheckUsernameResponse, CreateProfileRequest,
    EnsureUsernameResponse, MeResponse, OAuthUrlResponse,
)
from magaza.modules.auth.service import AuthService
from magaza.core.dependencies import (
    get_auth_service, get_current_token, get_current_user, get_user_profile, is_admin_user,
)
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/auth", tags=["auth"])

CODE_VERIFIER_COOKIE = "sb-code-verifier"
CODE_VERIFIER_MAX_AGE_SEC = 3600


def remember_code_verifier(response: Response, service: AuthService):
    """Hand the PKCE verifier to the browser; /callback runs on a different client"""
    verifier = service.code_verifier()
    if verifier:
        response.set_cookie(
            CODE_VERIFIER_COOKIE,
            verifier,
            max_age=CODE_VERIFIER_MAX_AGE_SEC,
            httponly=True,
            secure=settings.is_production,
            samesite="lax",
        )


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    register_data: RegisterRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user with a username"""
    result = service.register(register_data)
    remember_code_verifier(response, service)
    return result


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    service.logout(token)
    return {"message": "Çıkış yapıldı."}


@router.get("/me", response_model=MeResponse)
async def me(
    current_user: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_service_supabase),
):
    """Authenticated user, profile row and admin flag (for frontend UI)."""
    profile = get_user_profile(current_user["id"], supabase)
    return MeResponse(user=current_user, profile=profile, is_admin=is_admin_user(current_user, profile))


@router.get("/oauth/{provider}", response_model=OAuthUrlResponse)
async def oauth_url(
    provider: str,
    response: Response,
    redirect_to: Optional[str] = None,
    service: AuthService = Depends(get_auth_service)
):
    """Provider authorize URL for Google/GitHub sign in"""
    url = service.get_oauth_url(provider, redirect_to)
    remember_code_verifier(response, service)
    return OAuthUrlResponse(provider=provider, url=url)


@router.get("/callback")
def auth_callback(
    code: Optional[str] = None,
    callback_type: Optional[str] = Query(None, alias="type"),
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    redirect: Optional[str] = None,
    code_verifier: Optional[str] = Cookie(None, alias=CODE_VERIFIER_COOKIE),
    service: AuthService = Depends(get_auth_service)
):
    """Landing point for OAuth, e-mail confirmation and password recovery links.

    Plain def: the profile read-back sleeps between retries.
    """
    path = service.handle_callback(code, callback_type, error, error_description, redirect, code_verifier)
    response = RedirectResponse(url=f"{settings.get_site_url()}{path}", status_code=302)
    if code_verifier:
        response.delete_cookie(CODE_VERIFIER_COOKIE)
    return response


@router.post("/password/reset")
async def request_password_reset(
    body: PasswordResetRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service)
):
    service.request_password_reset(body.email)
    remember_code_verifier(response, service)
    return {"message": "Şifre sıfırlama bağlantısı e-posta adresinize gönderildi."}


@router.post("/password/update")
async def update_password(
    body: PasswordUpdateRequest,
    current_user: Dict = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    service.update_password(current_user["id"], body.password)
    return {"message": "Şifreniz başarıyla güncellendi."}


@router.post("/check-email", response_model=CheckEmailResponse)
async def check_email(
    body: CheckEmailRequest,
    service: AuthService = Depends(get_auth_service)
):
    return service.check_email(body.email)


@router.get("/check-username", response_model=CheckUsernameResponse)
async def check_username(
    username: Optional[str] = None,
    service: AuthService = Depends(get_auth_service)
):
    return service.check_username(username)


@router.post("/create-profile", status_code=201)
async def create_profile(
    body: CreateProfileRequest,
    current_user: Dict = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    profile = service.create_profile(current_user, body)
    return {"success": True, "profile": profile}


@router.post("/ensure-username", response_model=EnsureUsernameResponse)
async def ensure_username(
    current_user: Dict = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    return service.ensure_username(current_user)
