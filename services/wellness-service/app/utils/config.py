"""
Settings
Supabase, SMTP and service settings read from the environment
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
import logging

logger = logging.getLogger(__name__)


class SupabaseConfig(BaseSettings):
    """Supabase (identity provider + document store) configuration"""

    model_config = SettingsConfigDict(env_prefix="SUPABASE_", case_sensitive=False)

    url: str = ""
    anon_key: str = ""

    # Collections (PostgREST tables) used by the resolver
    users_collection: str = "users"
    coaches_collection: str = "coaches"
    rating_history_collection: str = "rating_history"

    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key)

    def log_config(self):
        """Log configuration (without sensitive data)"""
        logger.info(f"Supabase URL: {self.url or '<unset>'}")
        logger.info(f"Collections: users={self.users_collection}, coaches={self.coaches_collection}")


class SMTPConfig(BaseSettings):
    """Outgoing mail server and sender identity (SMTP_* variables)"""

    model_config = SettingsConfigDict(env_prefix="SMTP_", case_sensitive=False)

    host: str = "mailhog"
    port: int = 1025
    use_tls: bool = False
    timeout: int = 30

    username: Optional[str] = None
    password: Optional[str] = None

    from_email: str = "noreply@nfpwellness.org"
    from_name: str = "NFP Wellness Platform"

    @field_validator('port')
    @classmethod
    def check_port(cls, v):
        if v < 1 or v > 65535:
            raise ValueError(f'Invalid SMTP port {v}')
        return v

    @field_validator('timeout')
    @classmethod
    def check_timeout(cls, v):
        if v <= 0:
            raise ValueError('SMTP timeout must be positive')
        return v

    @property
    def uses_local_relay(self) -> bool:
        """True for the development mail catcher"""
        return self.host == "mailhog" or self.port == 1025

    def log_config(self):
        logger.info(
            f"SMTP relay {self.host}:{self.port} (tls={self.use_tls}, "
            f"auth={'on' if self.username else 'off'}, sender={self.from_email})"
        )


class AppConfig(BaseSettings):
    """Service, collaborator and platform settings (APP_* variables)"""

    model_config = SettingsConfigDict(env_prefix="APP_", case_sensitive=False)

    service_name: str = "wellness-service"
    service_version: str = "1.0.0"

    # Collaborators
    notification_service_url: str = "http://localhost:5000"
    notification_timeout: float = 10.0
    frontend_url: str = "http://localhost:5173"

    # Feedback emails show submission time in this zone
    feedback_timezone: str = "Australia/Sydney"

    # Shown in email templates
    platform_name: str = "NFP Wellness Platform"
    support_email: str = "support@nfpwellness.org"

    @property
    def google_redirect_url(self) -> str:
        return f"{self.frontend_url.rstrip('/')}/auth/google/callback"


# Lazily created settings
_supabase_config: Optional[SupabaseConfig] = None
_smtp_config: Optional[SMTPConfig] = None
_app_config: Optional[AppConfig] = None


def get_supabase_config() -> SupabaseConfig:
    """Get Supabase configuration instance"""
    global _supabase_config
    if _supabase_config is None:
        _supabase_config = SupabaseConfig()
    return _supabase_config


def get_smtp_config() -> SMTPConfig:
    """Get SMTP configuration instance"""
    global _smtp_config
    if _smtp_config is None:
        _smtp_config = SMTPConfig()
    return _smtp_config


def get_app_config() -> AppConfig:
    """Get application configuration instance"""
    global _app_config
    if _app_config is None:
        _app_config = AppConfig()
    return _app_config


def validate_configuration():
    """Log the effective settings and warn about incomplete ones"""
    smtp_config = get_smtp_config()
    supabase_config = get_supabase_config()

    smtp_config.log_config()
    supabase_config.log_config()

    if not smtp_config.uses_local_relay and not (smtp_config.username and smtp_config.password):
        logger.warning("SMTP relay configured without credentials")
    if not supabase_config.is_configured():
        logger.warning("Supabase credentials not found in environment")

    logger.info("Configuration validation completed")
