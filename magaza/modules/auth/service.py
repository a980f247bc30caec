import hashlib
import time
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from urllib.parse import urlencode

from fastapi import HTTPException
from supabase import Client

from magaza.config import settings
from magaza.database.supabase_client import pending_code_verifier
from magaza.core.errors import AuthError, parse_auth_error, parse_profile_error, retry_with_backoff
from magaza.core.validators import (
    escape_like, normalize_email, normalize_phone, validate_email, validate_password,
    validate_username, USERNAME_REGEX, USERNAME_MIN_LENGTH, USERNAME_MAX_LENGTH,
)
from magaza.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse,
    CheckEmailResponse, CheckUsernameResponse, CreateProfileRequest,
    EnsureUsernameResponse,
)
from magaza.modules.auth.usernames import (
    build_username_candidates, pick_available_username, profile_defaults,
)

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500

RLS_ERROR_CODES = ("PGRST301", "42501")
OAUTH_PROVIDERS = ("google", "github")

SIGNIN_PATH = "/auth/signin"
RESET_PASSWORD_PATH = "/auth/reset-password"
INVALID_RECOVERY_PATH = "/auth/reset-password?error=invalid_token"


def clear_auth_cache():
    _AUTH_USER_CACHE.clear()


def _token_cache_key(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _signin_redirect(message: str) -> str:
    return f"{SIGNIN_PATH}?{urlencode({'error': 'oauth_failed', 'message': message})}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuthService:
    """
    Supabase Auth flows.

    `supabase` is the anon client, `admin` the service-role client used for
    profile writes and the admin auth API, and `auth_client` a fresh PKCE client
    for calls that keep flow state on the client (sign up, sign in, password
    reset, OAuth start, code exchange). The routes carry the code verifier from
    the starting request to `/callback` in an HttpOnly cookie.
    """

    def __init__(self, supabase: Client, admin: Optional[Client] = None, auth_client: Optional[Client] = None):
        self.supabase = supabase
        self.admin = admin or supabase
        self.auth_client = auth_client or supabase

    def _get_profile(self, user_id: str, columns: str = "*") -> Optional[Dict[str, Any]]:
        result = self.admin.table("user_profiles")\
            .select(columns)\
            .eq("id", user_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            return None
        return result.data

    def _username_exists(self, username: str) -> bool:
        result = self.admin.table("user_profiles")\
            .select("id")\
            .ilike("username", escape_like(username))\
            .limit(1)\
            .execute()
        return bool(result.data)

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Sign up with Supabase Auth and create the matching user_profiles row."""
        email = normalize_email(register_data.email)
        for error in (
            validate_email(email),
            validate_username(register_data.username),
            validate_password(register_data.password),
        ):
            if error:
                raise HTTPException(status_code=400, detail=error)
        try:
            phone = normalize_phone(register_data.phone)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        username = register_data.username.strip()
        if self._username_exists(username):
            raise HTTPException(
                status_code=400,
                detail="Bu kullanıcı adı zaten kullanılıyor. Lütfen farklı bir kullanıcı adı seçin."
            )

        user_metadata = {"username": username}
        if register_data.full_name:
            user_metadata["full_name"] = register_data.full_name
        try:
            auth_response = self.auth_client.auth.sign_up({
                "email": email,
                "password": register_data.password,
                "options": {
                    "data": user_metadata,
                    "email_redirect_to": settings.get_email_redirect_url("signup"),
                }
            })
        except Exception as e:
            auth_error = parse_auth_error(e, "Kayıt")
            logger.warning(f"Sign up failed ({auth_error.code}) for {email}")
            raise HTTPException(status_code=auth_error.status_code or 400, detail=auth_error.user_message)

        if not auth_response.user:
            raise HTTPException(status_code=400, detail="Kayıt başarısız oldu. Lütfen tekrar deneyin.")

        try:
            self.admin.table("user_profiles").insert({
                "id": auth_response.user.id,
                "username": username,
                "full_name": register_data.full_name,
                "phone": phone,
                "email": email,
            }).execute()
        except Exception as e:
            profile_error = parse_profile_error(e)
            logger.error(f"Profile insert failed ({profile_error.code}) for user {auth_response.user.id}")
            raise HTTPException(status_code=profile_error.status_code or 500, detail=profile_error.user_message)

        return RegisterResponse(
            user_id=auth_response.user.id,
            email=auth_response.user.email or email,
            message="Kayıt başarılı. Giriş yapabilirsiniz."
        )

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Password sign in. The e-mail is normalized, the password is used as typed."""
        email = normalize_email(login_data.email)
        if not email or not login_data.password:
            raise HTTPException(status_code=400, detail="E-posta ve şifre gereklidir.")
        email_error = validate_email(email)
        if email_error:
            raise HTTPException(status_code=400, detail=email_error)
        try:
            auth_response = self.auth_client.auth.sign_in_with_password({
                "email": email,
                "password": login_data.password
            })
        except Exception as e:
            auth_error = parse_auth_error(e, "Giriş")
            if auth_error.code == "EMAIL_SIGNUPS_DISABLED":
                auth_error = AuthError(
                    "Sign in forbidden", "FORBIDDEN",
                    "Giriş yapma izniniz yok. Lütfen destek ekibiyle iletişime geçin.",
                    False, 403,
                )
            raise HTTPException(status_code=auth_error.status_code or 400, detail=auth_error.user_message)

        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=401, detail="Giriş başarısız. Lütfen tekrar deneyin.")

        return TokenResponse(
            access_token=auth_response.session.access_token,
            refresh_token=auth_response.session.refresh_token,
            token_type="bearer",
            user_id=auth_response.user.id,
            email=auth_response.user.email or email
        )

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = _token_cache_key(token)
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Oturum geçersiz veya süresi dolmuş.")
            user_data = self._user_to_dict(user_response.user)
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            logger.debug(f"Token verification failed: {e}")
            raise HTTPException(status_code=401, detail="Oturum geçersiz veya süresi dolmuş.")

    @staticmethod
    def _user_to_dict(user) -> Dict[str, Any]:
        return {
            "id": user.id,
            "email": user.email,
            "user_metadata": user.user_metadata or {},
            "app_metadata": user.app_metadata or {},
            "email_confirmed_at": getattr(user, "email_confirmed_at", None),
            "created_at": user.created_at,
        }

    def logout(self, token: str) -> bool:
        """Best effort; Supabase access tokens are stateless JWTs and expire on their own."""
        _AUTH_USER_CACHE.pop(_token_cache_key(token), None)
        try:
            self.admin.auth.admin.sign_out(token)
            return True
        except Exception as e:
            logger.info(f"Sign out failed, ignoring: {e}")
            return False

    def request_password_reset(self, email: str) -> None:
        email = normalize_email(email)
        email_error = validate_email(email)
        if email_error:
            raise HTTPException(status_code=400, detail=email_error)
        try:
            self.auth_client.auth.reset_password_for_email(
                email, {"redirect_to": settings.get_email_redirect_url("recovery")}
            )
        except Exception as e:
            auth_error = parse_auth_error(e, "Şifre sıfırlama")
            if auth_error.code == "RATE_LIMIT":
                raise HTTPException(status_code=429, detail=auth_error.user_message)
            # Unknown addresses must not be distinguishable from known ones
            logger.warning(f"Password reset request failed ({auth_error.code})")

    def update_password(self, user_id: str, password: str) -> None:
        password_error = validate_password(password)
        if password_error:
            raise HTTPException(status_code=400, detail=password_error)
        try:
            response = self.admin.auth.admin.update_user_by_id(user_id, {"password": password})
        except Exception as e:
            auth_error = parse_auth_error(e, "Şifre güncelleme")
            raise HTTPException(status_code=auth_error.status_code or 400, detail=auth_error.user_message)
        if not response or not response.user:
            raise HTTPException(status_code=404, detail="Kullanıcı bulunamadı.")

    def code_verifier(self) -> Optional[str]:
        """PKCE verifier left on the auth client by sign up, password reset or OAuth start"""
        return pending_code_verifier(self.auth_client)

    def get_oauth_url(self, provider: str, redirect_to: Optional[str] = None) -> str:
        if provider not in OAUTH_PROVIDERS:
            raise HTTPException(status_code=400, detail="Desteklenmeyen giriş sağlayıcısı.")
        response = self.auth_client.auth.sign_in_with_oauth({
            "provider": provider,
            "options": {"redirect_to": redirect_to or f"{settings.get_site_url()}/auth/callback"},
        })
        return response.url

    def check_email(self, email: Optional[str]) -> CheckEmailResponse:
        if not email or not isinstance(email, str):
            raise HTTPException(status_code=400, detail="E-posta adresi gereklidir.")
        normalized = normalize_email(email)
        email_error = validate_email(normalized)
        if email_error:
            raise HTTPException(status_code=400, detail=email_error)

        exists = False
        try:
            users = self.admin.auth.admin.list_users()
            exists = any((u.email or "").lower() == normalized for u in users)
        except Exception as e:
            logger.warning(f"Admin user listing failed, checking profiles instead: {e}")
            try:
                result = self.admin.table("user_profiles")\
                    .select("id")\
                    .eq("email", normalized)\
                    .limit(1)\
                    .execute()
                exists = bool(result.data)
            except Exception as profile_error:
                logger.warning(f"Profile e-mail lookup failed: {profile_error}")

        if exists:
            return CheckEmailResponse(
                available=False, email=normalized,
                message="Bu e-posta adresi zaten kayıtlı."
            )
        return CheckEmailResponse(available=True, email=normalized, message="E-posta adresi kullanılabilir.")

    def check_username(self, username: Optional[str]) -> CheckUsernameResponse:
        if not username:
            raise HTTPException(status_code=400, detail="Kullanıcı adı gereklidir.")
        username = username.strip()
        if not USERNAME_REGEX.match(username):
            raise HTTPException(status_code=400, detail="Geçersiz kullanıcı adı formatı.")
        if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
            raise HTTPException(status_code=400, detail="Kullanıcı adı 3-30 karakter arasında olmalıdır.")
        try:
            result = self.supabase.table("user_profiles")\
                .select("id")\
                .ilike("username", escape_like(username))\
                .limit(1)\
                .execute()
        except Exception as e:
            code = str(getattr(e, "code", "") or "")
            if code in RLS_ERROR_CODES:
                message = "Kullanıcı adı kontrolü yapılamadı, kayıt sırasında tekrar kontrol edilecek."
            else:
                logger.warning(f"Username availability check failed: {e}")
                message = "Kullanıcı adı kontrolü şu anda yapılamıyor."
            return CheckUsernameResponse(available=True, username=username, message=message)

        if result.data:
            return CheckUsernameResponse(
                available=False, username=username,
                message="Bu kullanıcı adı zaten kullanılıyor."
            )
        return CheckUsernameResponse(available=True, username=username, message="Kullanıcı adı kullanılabilir.")

    def create_profile(self, user: Dict[str, Any], request: CreateProfileRequest) -> Dict[str, Any]:
        username_error = validate_username(request.username)
        if username_error:
            raise HTTPException(status_code=400, detail=username_error)
        try:
            phone = normalize_phone(request.phone)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        if self._get_profile(user["id"], "id"):
            raise HTTPException(status_code=400, detail="Profil zaten mevcut.")
        username = request.username.strip()
        if self._username_exists(username):
            raise HTTPException(status_code=400, detail="Bu kullanıcı adı zaten kullanılıyor.")

        try:
            result = self.admin.table("user_profiles").insert({
                "id": user["id"],
                "username": username,
                "full_name": request.full_name,
                "phone": phone,
                "email": user.get("email"),
                "is_developer": False,
                "developer_approved": False,
            }).execute()
        except Exception as e:
            code = str(getattr(e, "code", "") or "")
            message = str(e).lower()
            if code == "23505":
                raise HTTPException(status_code=400, detail="Bu kullanıcı adı zaten kullanılıyor.")
            if code == "42501" or "policy" in message:
                raise HTTPException(status_code=403, detail="Profil oluşturma yetkiniz yok.")
            logger.error(f"Profile creation failed for {user['id']}: {e}")
            raise HTTPException(status_code=500, detail="Profil oluşturulamadı.")
        return result.data[0] if result.data else {"id": user["id"], "username": username}

    def ensure_username(self, user: Dict[str, Any]) -> EnsureUsernameResponse:
        """Create the profile, or fill an empty username, from auth metadata."""
        try:
            profile = self._get_profile(user["id"], "id, username")
        except Exception as e:
            logger.error(f"Profile lookup failed for {user['id']}: {e}")
            raise HTTPException(status_code=500, detail="Profil bilgisi alınamadı.")

        if profile and (profile.get("username") or "").strip():
            return EnsureUsernameResponse(username=profile["username"], message="Kullanıcı adı mevcut.")

        candidates = build_username_candidates(user.get("email"), user.get("user_metadata"))
        username = pick_available_username(self.admin, candidates).strip()
        try:
            if profile:
                self.admin.table("user_profiles")\
                    .update({"username": username, "updated_at": _now_iso()})\
                    .eq("id", user["id"])\
                    .execute()
            else:
                self.admin.table("user_profiles").insert({
                    "id": user["id"],
                    "username": username,
                    **profile_defaults(user),
                }).execute()
        except Exception as e:
            logger.error(f"Username assignment failed for {user['id']}: {e}")
            raise HTTPException(
                status_code=500,
                detail="Profil oluşturulamadı." if not profile else "Kullanıcı adı güncellenemedi."
            )
        return EnsureUsernameResponse(username=username, message="Kullanıcı adı oluşturuldu.")

    def ensure_profile(self, user: Dict[str, Any]) -> None:
        """Create the profile on first login and promote configured admin e-mails. Never raises."""
        try:
            email = (user.get("email") or "").lower()
            is_admin_email = email in settings.get_admin_emails()
            existing = self._get_profile(user["id"], "id, role, is_admin")
            if existing:
                if is_admin_email and (existing.get("role") != "admin" or existing.get("is_admin") is not True):
                    try:
                        self.admin.table("user_profiles")\
                            .update({"role": "admin", "is_admin": True, "updated_at": _now_iso()})\
                            .eq("id", user["id"])\
                            .execute()
                    except Exception as e:
                        logger.error(f"Admin promotion failed for {user['id']}: {e}")
                return

            candidates = build_username_candidates(user.get("email"), user.get("user_metadata"))
            profile_data = {
                "id": user["id"],
                "username": pick_available_username(self.admin, candidates),
                **profile_defaults(user),
            }
            if is_admin_email:
                profile_data["role"] = "admin"
                profile_data["is_admin"] = True
            self.admin.table("user_profiles").upsert(profile_data, on_conflict="id").execute()
            logger.info(f"Created profile for {user['id']} (admin={is_admin_email})")
        except Exception as e:
            logger.error(f"ensure_profile failed for {user.get('id')}: {e}")

    def handle_callback(
        self,
        code: Optional[str],
        callback_type: Optional[str],
        error: Optional[str],
        error_description: Optional[str],
        redirect: Optional[str] = None,
        code_verifier: Optional[str] = None,
    ) -> str:
        """Return the frontend path the browser should land on after an auth e-mail or OAuth redirect."""
        if error and not code:
            logger.warning(f"OAuth provider returned error: {error}")
            return _signin_redirect(error_description or error or "OAuth girişi başarısız oldu. Lütfen tekrar deneyin.")
        if not settings.supabase_url or not settings.supabase_key:
            logger.error("Supabase URL or key is not configured")
            return _signin_redirect("Sunucu yapılandırma hatası. Lütfen yöneticiye bildirin.")
        if not code:
            return _signin_redirect(error_description or error or "Giriş kodu bulunamadı. Lütfen tekrar deneyin.")
        if len(code) < 10:
            return _signin_redirect("Geçersiz giriş kodu. Lütfen tekrar deneyin.")

        is_recovery = callback_type == "recovery"
        try:
            params = {"auth_code": code}
            if code_verifier:
                params["code_verifier"] = code_verifier
            session = self.auth_client.auth.exchange_code_for_session(params)
        except Exception as e:
            logger.warning(f"Code exchange failed (type={callback_type}): {e}")
            if is_recovery:
                return INVALID_RECOVERY_PATH
            return _signin_redirect(self._exchange_error_message(str(e).lower(), callback_type))

        if not session or not session.user:
            if is_recovery:
                return INVALID_RECOVERY_PATH
            return _signin_redirect("Oturum oluşturulamadı. Lütfen tekrar deneyin.")
        if is_recovery:
            return RESET_PASSWORD_PATH

        user = self._user_to_dict(session.user)
        self.ensure_profile(user)

        def read_profile():
            profile = self._get_profile(user["id"], "role, is_admin")
            if not profile:
                raise LookupError("profile not visible yet")
            return profile

        try:
            profile = retry_with_backoff(read_profile, max_attempts=3, initial_delay=0.5, max_delay=0.5)
        except Exception as e:
            logger.warning(f"Profile not readable after callback for {user['id']}: {e}")
            profile = None

        provider = (user.get("app_metadata") or {}).get("provider")
        if redirect and redirect.startswith("/") and provider in OAUTH_PROVIDERS:
            return redirect
        is_admin = bool(profile and (profile.get("role") == "admin" or profile.get("is_admin") is True))
        is_admin = is_admin or (user.get("email") or "").lower() in settings.get_admin_emails()
        return "/admin/dashboard" if is_admin else "/dashboard"

    @staticmethod
    def _exchange_error_message(message: str, callback_type: Optional[str]) -> str:
        expired = any(k in message for k in ("expired", "invalid", "already used"))
        network = "network" in message or "fetch" in message
        if network:
            return "Bağlantı hatası. İnternet bağlantınızı kontrol edip tekrar deneyin."
        if callback_type in ("email", "signup"):
            if expired:
                return "E-posta doğrulama bağlantısı geçersiz veya süresi dolmuş. Lütfen yeni bir doğrulama e-postası isteyin."
            return "Giriş başarısız oldu. Lütfen tekrar deneyin."
        if not callback_type or callback_type == "oauth" or "google" in message or "github" in message:
            if expired:
                return "OAuth giriş bağlantısı geçersiz veya süresi dolmuş. Lütfen tekrar deneyin."
            return "OAuth girişi başarısız oldu. Lütfen tekrar deneyin."
        if expired:
            return "Giriş bağlantısı geçersiz veya süresi dolmuş. Lütfen tekrar deneyin."
        return "Giriş başarısız oldu. Lütfen tekrar deneyin."
