from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "Clinic Appointment API"
    APP_DEBUG: bool = False

    DATABASE_URL: str = "sqlite:///./clinic.db"

    # JWT issued by the external auth service
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Comma-separated; parsed via cors_origins
    CORS_ORIGINS: Optional[str] = None

    # SMTP; emails are logged and dropped when SMTP_HOST is unset
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    EMAIL_FROM_ADDRESS: str = "Clinic <noreply@clinic.local>"
    FRONTEND_URL: str = "http://localhost:3000"

    LOG_DIR: Optional[str] = None

    REQUIRE_PAYMENT_FOR_APPROVAL: bool = False
    MIN_CONSULTATION_FEE: float = 1.0

    SCHEDULER_ENABLED: bool = True
    CLEANUP_CRON_HOUR: int = 2

    @property
    def cors_origins(self) -> List[str]:
        if not self.CORS_ORIGINS:
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
