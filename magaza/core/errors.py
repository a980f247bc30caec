"""
Error taxonomy and user-facing messages.

Errors raised by Supabase, Stripe or the network are mapped into a small set
of categories and rendered as Turkish messages. Detailed messages are only
shown in development.
"""

from magaza.config import settings
from typing import Any, Callable, Dict, Optional, TypeVar
import re
import time
import logging
import traceback

logger = logging.getLogger(__name__)

T = TypeVar("T")

GENERIC_ERRORS: Dict[str, str] = {
    "auth": "Giriş yaparken bir hata oluştu. Lütfen tekrar deneyin.",
    "database": "Veritabanı işlemi sırasında bir hata oluştu. Lütfen tekrar deneyin.",
    "network": "Bağlantı hatası. Lütfen internet bağlantınızı kontrol edin.",
    "validation": "Girdiğiniz bilgiler geçersiz. Lütfen kontrol edin.",
    "permission": "Bu işlem için yetkiniz bulunmamaktadır.",
    "notFound": "Aradığınız kayıt bulunamadı.",
    "server": "Sunucu hatası. Lütfen daha sonra tekrar deneyin.",
    "timeout": "İşlem zaman aşımına uğradı. Lütfen tekrar deneyin.",
    "default": "Bir hata oluştu. Lütfen tekrar deneyin.",
}

# Checked in order; the first category with a matching keyword wins.
_CATEGORY_KEYWORDS = [
    ("auth", ("auth", "login", "signin", "signup", "unauthorized", "forbidden")),
    ("database", ("database", "sql", "query", "postgres", "supabase")),
    ("network", ("network", "fetch", "connection", "timeout", "failed to fetch")),
    ("validation", ("validation", "invalid", "required", "format")),
    ("permission", ("permission", "access denied", "unauthorized", "forbidden")),
    ("notFound", ("not found", "404", "does not exist")),
    ("timeout", ("timeout", "timed out")),
    ("server", ("server", "500", "internal")),
]

_REDACTIONS = [
    (re.compile(r"password[=:]\s*['\"]?[^'\"]*['\"]?", re.IGNORECASE), "password='[REDACTED]'"),
    (re.compile(r"token[=:]\s*['\"]?[^'\"]*['\"]?", re.IGNORECASE), "token='[REDACTED]'"),
    (re.compile(r"secret[=:]\s*['\"]?[^'\"]*['\"]?", re.IGNORECASE), "secret='[REDACTED]'"),
    (re.compile(r"key[=:]\s*['\"]?[^'\"]*['\"]?", re.IGNORECASE), "key='[REDACTED]'"),
    (re.compile(r"api[_-]?key[=:]\s*['\"]?[^'\"]*['\"]?", re.IGNORECASE), "api_key='[REDACTED]'"),
]


def _error_text(error: Any) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error) if error is not None else ""


def _traceback_text(error: BaseException) -> str:
    if error.__traceback__ is None:
        return ""
    return "".join(traceback.format_tb(error.__traceback__))


def get_error_category(error: Any) -> str:
    """Map an exception to one of the GENERIC_ERRORS keys."""
    if not isinstance(error, BaseException):
        return "default"
    message = _error_text(error).lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in message for keyword in keywords):
            return category
        if category == "database" and "supabase" in _traceback_text(error).lower():
            return category
    return "default"


def get_error_message(error: Any, category: str = "default", operation: Optional[str] = None) -> str:
    prefix = f"{operation}: " if operation else ""
    if settings.is_development and isinstance(error, BaseException):
        return f"{prefix}{_error_text(error)}"
    return f"{prefix}{GENERIC_ERRORS.get(category, GENERIC_ERRORS['default'])}"


def sanitize_error(error: Any) -> Dict[str, Any]:
    """Loggable view of an exception with credentials redacted."""
    if not isinstance(error, BaseException):
        return {"error": str(error)}
    message = _error_text(error)
    for pattern, replacement in _REDACTIONS:
        message = pattern.sub(replacement, message)
    sanitized: Dict[str, Any] = {"name": type(error).__name__, "message": message}
    if settings.is_development:
        stack = _traceback_text(error)
        if stack:
            sanitized["stack"] = stack
    return sanitized


class AuthError(Exception):
    def __init__(
        self,
        message: str,
        code: str,
        user_message: str,
        recoverable: bool = False,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.code = code
        self.user_message = user_message
        self.recoverable = recoverable
        self.status_code = status_code


def _status_of(error: Any) -> Optional[int]:
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def _code_of(error: Any) -> Optional[str]:
    code = getattr(error, "code", None)
    if code is None and isinstance(error, dict):
        code = error.get("code")
    return str(code) if code is not None else None


def parse_auth_error(error: Any, operation: str = "İşlem") -> AuthError:
    """Translate a Supabase auth failure into an AuthError with a Turkish message."""
    message = _error_text(error).lower()
    status = _status_of(error)

    if ("signups are disabled" in message or "signup is disabled" in message
            or status == 403):
        return AuthError(
            "Email signups are disabled", "EMAIL_SIGNUPS_DISABLED",
            "E-posta ile kayıt şu anda devre dışı. Lütfen yönetici ile iletişime geçin.",
            False, 403,
        )
    if ("already registered" in message or "email already exists" in message
            or status == 422):
        return AuthError(
            "User already registered", "USER_EXISTS",
            "Bu e-posta adresi zaten kayıtlı. Giriş yapmayı deneyin veya şifrenizi sıfırlayın.",
            True, 422,
        )
    if (status == 400 or "invalid login credentials" in message
            or "invalid_credentials" in message or "invalid email or password" in message):
        return AuthError(
            "Invalid credentials", "INVALID_CREDENTIALS",
            "E-posta veya şifre hatalı. Lütfen bilgilerinizi kontrol edin.",
            True, 400,
        )
    if ("email not confirmed" in message or "email_not_confirmed" in message
            or "email address not confirmed" in message):
        return AuthError(
            "Email not confirmed", "EMAIL_NOT_CONFIRMED",
            "E-posta adresiniz doğrulanmamış. Lütfen e-postanıza gönderilen doğrulama linkine tıklayın.",
            True, 400,
        )
    if "user not found" in message or "user_not_found" in message or "no user found" in message:
        return AuthError(
            "User not found", "USER_NOT_FOUND",
            "Bu e-posta adresi ile kayıtlı bir hesap bulunamadı. Lütfen kayıt olun.",
            True, 404,
        )
    if status == 429 or "too many requests" in message or "rate limit" in message:
        return AuthError(
            "Rate limit exceeded", "RATE_LIMIT",
            "Çok fazla deneme yapıldı. Lütfen birkaç dakika sonra tekrar deneyin.",
            True, 429,
        )
    if "network" in message or "fetch" in message or "connection" in message:
        return AuthError(
            "Network error", "NETWORK_ERROR",
            "Bağlantı hatası. İnternet bağlantınızı kontrol edip tekrar deneyin.",
            True, 503,
        )
    if "timeout" in message or "timed out" in message:
        return AuthError(
            "Timeout error", "TIMEOUT",
            "Bağlantı zaman aşımına uğradı. Lütfen tekrar deneyin.",
            True, 504,
        )
    if "invalid email" in message or "email format" in message:
        return AuthError(
            "Invalid email", "INVALID_EMAIL",
            "Geçerli bir e-posta adresi giriniz.",
            True, 400,
        )
    if "password" in message and "weak" in message:
        return AuthError(
            "Weak password", "WEAK_PASSWORD",
            "Şifre çok zayıf. Daha güçlü bir şifre seçin.",
            True, 400,
        )
    return AuthError(
        _error_text(error) or "Unknown error", "UNKNOWN_ERROR",
        f"{operation} başarısız oldu. Lütfen tekrar deneyin.",
        True, status or 500,
    )


def parse_profile_error(error: Any) -> AuthError:
    """Translate a user_profiles write failure (PostgREST) into an AuthError."""
    message = _error_text(error).lower()
    code = _code_of(error)
    status = _status_of(error)

    if (code in ("PGRST301", "42501") or status == 401 or "row-level security" in message
            or "unauthorized" in message or "401" in message):
        return AuthError(
            "RLS or unauthorized", "RLS_ERROR",
            "Yetkilendirme hatası. Lütfen tekrar deneyin.",
            True, 401,
        )
    if code == "23505" or ("username" in message and (
            "unique" in message or "duplicate" in message or "already exists" in message)):
        return AuthError(
            "Username already exists", "USERNAME_EXISTS",
            "Bu kullanıcı adı zaten kullanılıyor. Lütfen farklı bir kullanıcı adı seçin.",
            True, 409,
        )
    if code == "42703" or "column" in message or "does not exist" in message:
        return AuthError(
            "Database error", "DB_ERROR",
            "Veritabanı hatası: Profil kolonu bulunamadı. Lütfen yöneticiye bildirin.",
            False, 500,
        )
    return AuthError(
        _error_text(error) or "Profile error", "PROFILE_ERROR",
        "Profil oluşturulamadı. Lütfen tekrar deneyin.",
        True, status or 500,
    )


def retry_with_backoff(
    fn: Callable[[], T],
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    max_delay: float = 2.0,
    multiplier: float = 2,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call fn until it succeeds, sleeping with exponential backoff between attempts."""
    delay = initial_delay
    for attempt in range(1, max_attempts + 1):
        try:
            return fn()
        except Exception as e:
            if attempt == max_attempts:
                raise
            logger.debug(f"Attempt {attempt}/{max_attempts} failed: {e}")
            sleep(delay)
            delay = min(delay * multiplier, max_delay)
    raise RuntimeError("retry_with_backoff called with max_attempts < 1")
