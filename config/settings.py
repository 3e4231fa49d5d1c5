"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # REMINDERS
    # ===================
    reminder_enabled: bool = Field(
        default=True,
        description="Run the delivery-risk scanner in the background"
    )
    reminder_channel: str = Field(
        default="email",
        pattern="^(email|telegram)$",
        description="Where reminders are sent"
    )
    reminder_lookahead_days: int = Field(
        default=3,
        ge=0,
        le=60,
        description="Days ahead of today an unconfirmed delivery triggers a reminder"
    )
    reminder_scan_interval_seconds: int = Field(
        default=60,
        ge=1,
        le=86400,
        description="Seconds between two scanner ticks"
    )
    reminder_dispatch_workers: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Threads used to send reminders"
    )

    # ===================
    # SMTP
    # ===================
    smtp_host: Optional[str] = Field(
        None,
        description="SMTP server host (e.g., smtp.gmail.com)"
    )
    smtp_port: int = Field(
        default=587,
        ge=1,
        le=65535,
        description="SMTP server port"
    )
    smtp_username: Optional[str] = Field(
        None,
        description="SMTP login"
    )
    smtp_password: Optional[str] = Field(
        None,
        description="SMTP password or app password"
    )
    smtp_use_tls: bool = Field(
        default=True,
        description="Upgrade the SMTP connection with STARTTLS"
    )
    smtp_sender: Optional[str] = Field(
        None,
        description="From address for reminder emails"
    )
    reminder_recipient: Optional[str] = Field(
        None,
        description="Address that receives reminder emails"
    )

    # ===================
    # TELEGRAM
    # ===================
    telegram_bot_token: Optional[str] = Field(
        None,
        description="Telegram bot token from @BotFather"
    )
    telegram_chat_id: Optional[str] = Field(
        None,
        description="Telegram chat ID for reminders"
    )

    # ===================
    # BUSINESS SETTINGS
    # ===================
    unit_price_eur: int = Field(
        default=50,
        ge=0,
        description="Flat unit price used for the revenue estimate"
    )
    confirmation_max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts before a contended confirmation gives up"
    )
    recent_confirmation_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Window for the recently confirmed orders view"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=5000,
        ge=1000,
        le=65535,
        description="API port"
    )
    cors_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        description="Origins allowed to call the API"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def smtp_configured(self) -> bool:
        """Check if SMTP is properly configured."""
        return bool(self.smtp_host and self.smtp_sender and self.reminder_recipient)

    @property
    def telegram_configured(self) -> bool:
        """Check if Telegram is properly configured."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
