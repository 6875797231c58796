"""Application configuration with validation."""
from typing import Optional, Literal
from functools import lru_cache
from pydantic import Field, model_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment / .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Grant Review Engine"
    APP_VERSION: str = "1.0.0"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Snowflake
    SNOWFLAKE_ACCOUNT: str
    SNOWFLAKE_USER: str
    SNOWFLAKE_PASSWORD: SecretStr
    SNOWFLAKE_DATABASE: str
    SNOWFLAKE_SCHEMA: str
    SNOWFLAKE_WAREHOUSE: str
    SNOWFLAKE_ROLE: Optional[str] = None

    # Review workflow fallbacks (per-call values take precedence)
    DEFAULT_VARIANCE_THRESHOLD: float = Field(
        default=20.0,
        ge=0,
        le=100,
        description="Variance percentage above which results are flagged when a call sets none",
    )
    DEFAULT_ASSESSORS_PER_APPLICATION: int = Field(default=2, ge=1, le=20)
    MAX_BULK_ASSIGNMENTS: int = Field(
        default=5000,
        ge=1,
        description="Upper bound on application ids accepted by one bulk request",
    )

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure production runs without debug."""
        if self.APP_ENV == "production" and self.DEBUG:
            raise ValueError("DEBUG must be False in production")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
