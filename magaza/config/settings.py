from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List
from urllib.parse import urlparse
import logging

logger = logging.getLogger(__name__)

PRODUCTION_SITE_URL = "https://otomasyonmagazasi.com.tr"
LOCAL_SITE_URL = "http://localhost:3000"


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for admin auth API and privileged writes

    # Stripe
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_api_version: str = "2023-10-16"
    platform_fee_percentage: float = 15.0

    # Platform URLs
    platform_base_url: str = PRODUCTION_SITE_URL
    site_url: Optional[str] = None

    # SMTP
    email_host: Optional[str] = None
    email_port: int = 465
    email_user: Optional[str] = None
    email_password: Optional[str] = None
    email_from: Optional[str] = None
    email_secure: bool = True
    email_timeout: int = 10
    contact_recipient: str = "info@otomasyonmagazasi.com.tr"

    # Twilio SMS
    twilio_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone: Optional[str] = None

    # Admin accounts recognised by email, comma separated
    admin_emails: str = "ftnakras01@gmail.com"

    # AWS S3 (optional storage for automation files)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "eu-central-1"
    s3_bucket_name: Optional[str] = None

    # App
    app_name: str = "otomasyon-magazasi-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000,https://otomasyonmagazasi.com.tr"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    contact_rate_limit: str = "10/minute"
    error_report_rate_limit: str = "30/minute"
    guest_tax_rate: float = 0.18

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key)

    @property
    def stripe_webhook_configured(self) -> bool:
        return bool(self.stripe_secret_key and self.stripe_webhook_secret)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.email_host and self.email_user and self.email_password)

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_admin_emails(self) -> List[str]:
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]

    def get_site_url(self) -> str:
        """Base URL used in auth e-mail redirects. Production only accepts https."""
        fallback = PRODUCTION_SITE_URL if self.is_production else LOCAL_SITE_URL
        candidate = (self.site_url or "").strip().rstrip("/")
        if not candidate:
            return fallback
        parsed = urlparse(candidate)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            logger.warning("Invalid SITE_URL %r, falling back to %s", candidate, fallback)
            return fallback
        if self.is_production and parsed.scheme != "https":
            logger.warning("SITE_URL must use https in production, falling back to %s", fallback)
            return fallback
        return candidate

    def get_email_redirect_url(self, redirect_type: str = "signup") -> str:
        return f"{self.get_site_url()}/auth/callback?type={redirect_type}"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )


settings = Settings()
