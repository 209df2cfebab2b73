"""
Application settings.

Everything configurable comes from the environment (or a local .env file)
and is validated once at import time.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()

DEV_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database
    # A full DATABASE_URL overrides the POSTGRES_* parts
    DATABASE_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="coachtrack")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)

    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)  # seconds

    # Auth
    SECRET_KEY: str = Field(
        default=...,
        description="HS256 signing key for access tokens (32+ chars)",
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30 * 24 * 60)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json | text

    # Adherence engine
    CHECKIN_CADENCE_DAYS: int = Field(default=7, ge=7, le=7)  # weekly only
    AT_RISK_WINDOW_DAYS: int = Field(default=7, ge=1)
    MISSED_WEEKS_LOOKBACK: int = Field(default=8, ge=1)
    SET_BATCH_DEBOUNCE_MS: int = Field(default=500, ge=0)
    FLAG_NOTE_MAX_LENGTH: int = Field(default=200, ge=1)

    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # Comma-separated, e.g. "https://app.coachtrack.io,https://coach.coachtrack.io"
    CORS_ORIGINS: Optional[str] = Field(default=None)

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def cors_origins(self) -> List[str]:
        if self.DEBUG:
            return ["*"]
        if self.CORS_ORIGINS:
            return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]
        return list(DEV_CORS_ORIGINS)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
