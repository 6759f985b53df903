"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

API_V1_STR = "/api/v1"
PROJECT_NAME = "TourBNT API"

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class JWTConfig(BaseModel):
    """Token signing and session lifetime configuration."""

    secret: str = Field(
        default="tourbnt-dev-secret-change-me",
        alias="JWT_SECRET",
        description="Secret used to sign access and purpose tokens",
    )
    refresh_secret: str = Field(
        default="tourbnt-dev-refresh-secret-change-me",
        alias="JWT_REFRESH_SECRET",
        description="Secret used to sign refresh tokens",
    )
    algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM", description="JWT signing algorithm")
    expires_in_hours: int = Field(
        default=2, alias="JWT_EXPIRES_IN_HOURS", description="Lifetime of a regular session token"
    )
    remember_me_days: int = Field(
        default=30, alias="JWT_REMEMBER_ME_DAYS", description="Lifetime of a 'keep me signed in' session"
    )
    purpose_token_minutes: int = Field(
        default=60,
        alias="JWT_PURPOSE_TOKEN_MINUTES",
        description="Lifetime of email verification and password reset tokens",
    )

    model_config = {"populate_by_name": True}


class RateLimitConfig(BaseModel):
    """Fixed window rate limiter configuration."""

    window_seconds: int = Field(default=900, alias="RATE_LIMIT_WINDOW_SECONDS", description="Window length")
    general_max: int = Field(default=100, alias="RATE_LIMIT_GENERAL_MAX", description="General requests per window")
    auth_max: int = Field(default=10, alias="RATE_LIMIT_AUTH_MAX", description="Auth requests per window")
    auth_max_development: int = Field(
        default=100, alias="RATE_LIMIT_AUTH_MAX_DEV", description="Auth requests per window in development"
    )

    model_config = {"populate_by_name": True}


class CloudinaryConfig(BaseModel):
    """Fallback Cloudinary account, used only when a user has no credentials of their own."""

    cloud_name: Optional[str] = Field(default=None, alias="CLOUDINARY_CLOUD_NAME", description="Cloud name")
    api_key: Optional[str] = Field(default=None, alias="CLOUDINARY_API_KEY", description="API key")
    api_secret: Optional[str] = Field(default=None, alias="CLOUDINARY_API_SECRET", description="API secret")

    model_config = {"populate_by_name": True}


class MailConfig(BaseModel):
    """Outbound SMTP configuration for transactional mail."""

    host: str = Field(default="smtp.maileroo.com", alias="MAILEROO_SMTP_HOST", description="SMTP server host")
    port: int = Field(default=587, alias="MAILEROO_SMTP_PORT", description="SMTP server port (STARTTLS)")
    user: Optional[str] = Field(default=None, alias="MAILEROO_SMTP_USER", description="SMTP user name")
    password: Optional[str] = Field(default=None, alias="MAILEROO_SMTP_PASS", description="SMTP password")
    sender: str = Field(default="TourBNT <no-reply@tourbnt.com>", alias="MAIL_FROM", description="From header")

    model_config = {"populate_by_name": True}

    @property
    def enabled(self) -> bool:
        return bool(self.user and self.password)


class CORSConfig(BaseModel):
    """CORS configuration."""

    origins: list[str] = Field(
        default=["http://localhost:3000"], alias="CORS_ORIGINS", description="Allowed CORS origins"
    )
    allow_credentials: bool = Field(
        default=True, alias="CORS_ALLOW_CREDENTIALS", description="Allow credentials in CORS requests"
    )
    allow_methods: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_METHODS", description="Allowed HTTP methods (use * for all)"
    )
    allow_headers: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_HEADERS", description="Allowed HTTP headers (use * for all)"
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Server Configuration
    # =====================================================================
    environment: str = Field(
        default="development",
        description="Runtime environment (development, production, test)",
        alias="NODE_ENV",
    )
    server_host: str = Field(default="0.0.0.0", description="Server host address to bind to", alias="TOURBNT_HOST")
    server_port: int = Field(default=8000, description="Server port number", alias="TOURBNT_PORT")
    log_level: str = Field(
        default="INFO",
        description="Server logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="TOURBNT_LOG_LEVEL",
    )
    frontend_domain: str = Field(
        default="http://localhost:3000",
        description="Public URL of the dashboard, used in outbound links",
        alias="FRONTEND_DOMAIN",
    )
    settings_encryption_key: Optional[str] = Field(
        default=None,
        description="Fernet key used to encrypt third party API keys stored per user",
        alias="SETTINGS_ENCRYPTION_KEY",
    )

    # =====================================================================
    # Database Configuration
    # =====================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./tourbnt.db",
        description="Async connection URL for the application database",
        alias="DATABASE_URL",
    )

    # Flat fields backing the grouped configurations below
    jwt_secret: str = Field(default="tourbnt-dev-secret-change-me", alias="JWT_SECRET")
    jwt_refresh_secret: str = Field(default="tourbnt-dev-refresh-secret-change-me", alias="JWT_REFRESH_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_expires_in_hours: int = Field(default=2, alias="JWT_EXPIRES_IN_HOURS")
    jwt_remember_me_days: int = Field(default=30, alias="JWT_REMEMBER_ME_DAYS")
    jwt_purpose_token_minutes: int = Field(default=60, alias="JWT_PURPOSE_TOKEN_MINUTES")
    rate_limit_window_seconds: int = Field(default=900, alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_general_max: int = Field(default=100, alias="RATE_LIMIT_GENERAL_MAX")
    rate_limit_auth_max: int = Field(default=10, alias="RATE_LIMIT_AUTH_MAX")
    rate_limit_auth_max_dev: int = Field(default=100, alias="RATE_LIMIT_AUTH_MAX_DEV")
    cloudinary_cloud_name: Optional[str] = Field(default=None, alias="CLOUDINARY_CLOUD_NAME")
    cloudinary_api_key: Optional[str] = Field(default=None, alias="CLOUDINARY_API_KEY")
    cloudinary_api_secret: Optional[str] = Field(default=None, alias="CLOUDINARY_API_SECRET")
    cors_origins: list[str] = Field(default=["http://localhost:3000"], alias="CORS_ORIGINS")
    mail_host: str = Field(default="smtp.maileroo.com", alias="MAILEROO_SMTP_HOST")
    mail_port: int = Field(default=587, alias="MAILEROO_SMTP_PORT")
    mail_user: Optional[str] = Field(default=None, alias="MAILEROO_SMTP_USER")
    mail_password: Optional[str] = Field(default=None, alias="MAILEROO_SMTP_PASS")
    mail_sender: str = Field(default="TourBNT <no-reply@tourbnt.com>", alias="MAIL_FROM")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def jwt(self) -> JWTConfig:
        """Get token configuration from environment variables."""
        return JWTConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def rate_limit(self) -> RateLimitConfig:
        """Get rate limiter configuration from environment variables."""
        return RateLimitConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def cloudinary(self) -> CloudinaryConfig:
        """Get fallback Cloudinary configuration from environment variables."""
        return CloudinaryConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def mail(self) -> MailConfig:
        """Get outbound mail configuration from environment variables."""
        return MailConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def cors(self) -> CORSConfig:
        """Get CORS configuration from environment variables."""
        return CORSConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()
