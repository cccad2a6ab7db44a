"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, Twilio, OpenAI, receipt policy, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # Record store
    STORE_BACKEND: Literal["mongo", "memory"] = Field(
        default="mongo",
        description="Record store backend (memory is for local runs and tests)"
    )
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="agribot",
        description="MongoDB database name"
    )

    # WhatsApp via Twilio
    TWILIO_ACCOUNT_SID: Optional[str] = Field(
        default=None,
        description="Twilio account SID"
    )
    TWILIO_AUTH_TOKEN: Optional[str] = Field(
        default=None,
        description="Twilio auth token"
    )
    TWILIO_WHATSAPP_NUMBER: str = Field(
        default="whatsapp:+14155238886",
        description="Sender address, with whatsapp: prefix"
    )
    TWILIO_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Twilio API request timeout in seconds"
    )
    SEND_MAX_ATTEMPTS: int = Field(
        default=3,
        description="Maximum delivery attempts per outbound message"
    )
    SEND_BACKOFF_MAX_SECONDS: float = Field(
        default=5.0,
        description="Ceiling for exponential backoff between delivery attempts"
    )

    # OpenAI (vision extraction, classification, free-text answers)
    OPENAI_API_KEY: Optional[str] = Field(
        default=None,
        description="OpenAI API key"
    )
    OPENAI_MODEL: str = Field(
        default="gpt-4o-mini",
        description="Chat/vision model name"
    )
    OPENAI_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        description="OpenAI request timeout in seconds"
    )

    # Fiscal authority (receipt QR codes)
    AUTHORITY_DOMAIN: str = Field(
        default="zimra.co.zw",
        description="Host suffix a receipt QR code must point at"
    )
    AUTHORITY_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Authority page fetch timeout in seconds"
    )

    # Durable media upload
    UPLOAD_URL: Optional[str] = Field(
        default=None,
        description="Blob upload endpoint; uploads are skipped when unset"
    )
    UPLOAD_API_KEY: Optional[str] = Field(
        default=None,
        description="API key sent with blob uploads"
    )
    UPLOAD_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        description="Blob upload timeout in seconds"
    )
    MEDIA_TEMP_DIR: str = Field(
        default="temp",
        description="Directory for transient inbound attachments"
    )
    MEDIA_RETENTION_SECONDS: int = Field(
        default=120,
        description="How long an unsolicited image stays usable for a follow-up choice"
    )

    # Session Management
    SESSION_IDLE_HOURS: int = Field(
        default=24,
        description="Idle window after which an in-memory session is evicted"
    )
    SESSION_SWEEP_INTERVAL_SECONDS: int = Field(
        default=3600,
        description="Interval between idle session sweeps"
    )

    # Premium / receipt policy
    PREMIUM_DURATION_DAYS: int = Field(
        default=30,
        description="Length of a premium entitlement granted by a receipt"
    )
    RECEIPT_MAX_AGE_MONTHS: int = Field(
        default=3,
        description="Receipts older than this are not accepted"
    )
    BRAND_KEYWORD: str = Field(
        default="UCF",
        description="Keyword the receipt text must contain"
    )
    RECEIPT_TEXT_FALLBACK_POLICY: Literal["require_code", "validate", "review"] = Field(
        default="require_code",
        description="Receipts without authority data: require_code refuses them, validate checks the extracted text, review holds them for a person"
    )
    REVIEWER_IDENTITY: Optional[str] = Field(
        default=None,
        description="WhatsApp address that receives a copy of every receipt"
    )
    AGRONOMIST_IDENTITY: Optional[str] = Field(
        default=None,
        description="WhatsApp address that receives expert help requests"
    )
    BOT_NAME: str = Field(
        default="Sam",
        description="Assistant persona name"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @validator("TWILIO_AUTH_TOKEN")
    def validate_twilio_token(cls, v, values):
        """Ensure Twilio credentials are set in production."""
        if values.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("TWILIO_AUTH_TOKEN is required in production environment")
        return v

    @validator("SEND_MAX_ATTEMPTS")
    def validate_send_attempts(cls, v):
        """At least one delivery attempt is always made."""
        if v < 1:
            raise ValueError("SEND_MAX_ATTEMPTS must be at least 1")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def uses_mongo(self) -> bool:
        return self.STORE_BACKEND == "mongo"

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if settings.STORE_BACKEND == "mongo" and not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not settings.BRAND_KEYWORD.strip():
        errors.append("BRAND_KEYWORD must not be empty")

    # Production-specific validations
    if settings.is_production:
        if not settings.TWILIO_ACCOUNT_SID or not settings.TWILIO_AUTH_TOKEN:
            errors.append("Twilio credentials are required in production")
        if not settings.OPENAI_API_KEY:
            errors.append("OPENAI_API_KEY is required in production")
        if settings.STORE_BACKEND == "memory":
            errors.append("STORE_BACKEND=memory is not allowed in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
