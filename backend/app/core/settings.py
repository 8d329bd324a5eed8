# backend/app/core/settings.py
"""
LaserShop Offcuts - Configuration Management with pydantic-settings

- Loads from environment and root .env
- Validates and normalizes values
- Cached singleton via get_settings()
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional, List, Dict

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Calculate path to .env in project root (4 levels up from this file)
# backend/app/core/settings.py -> <repo>/.env
_ENV_FILE = Path(__file__).resolve().parent.parent.parent.parent / ".env"


class Settings(BaseSettings):
    """
    Application settings with validation.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # Application Settings
    # ===================
    PROJECT_NAME: str = "LaserShop Offcuts"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Deployment environment")

    # ===================
    # Database Settings
    # ===================
    DB_HOST: str = Field(default="localhost", description="PostgreSQL host")
    DB_PORT: int = Field(default=5432, description="PostgreSQL port")
    DB_NAME: str = Field(default="lasershop", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="postgres", description="Database password")
    DATABASE_URL: Optional[str] = Field(
        default=None, description="Full database URL (overrides DB_* settings)"
    )

    @property
    def database_url(self) -> str:
        """Build PostgreSQL database URL from components or use explicit URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # ===================
    # CORS Settings
    # ===================
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Allowed CORS origins",
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # ===================
    # Logging
    # ===================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or text
    LOG_FILE: Optional[str] = None

    # ===================
    # Offcut Policy
    # ===================
    # Partial use that leaves less than this fraction of the prior area discards the offcut
    OFFCUT_DISCARD_FRACTION: float = Field(default=0.15, ge=0, lt=1)

    # Safety margin (fraction of required area) per material category
    OFFCUT_MARGIN_PLYWOOD: float = Field(default=0.10, ge=0)
    OFFCUT_MARGIN_MDF: float = Field(default=0.10, ge=0)
    OFFCUT_MARGIN_ACRYLIC: float = Field(default=0.15, ge=0)
    OFFCUT_MARGIN_MIRROR_ACRYLIC: float = Field(default=0.15, ge=0)
    OFFCUT_MARGIN_DEFAULT: float = Field(default=0.10, ge=0)

    OFFCUT_SUGGESTION_LIMIT: int = Field(default=20, ge=1)
    OFFCUT_SCORE_TIEBREAK: int = Field(
        default=1_000_000_000,
        description="Smaller offcuts get a bonus of max(0, TIEBREAK - area)",
    )
    OFFCUT_HISTORY_LIMIT: int = Field(default=500, ge=1)

    @property
    def offcut_safety_margins(self) -> Dict[str, float]:
        return {
            "PLYWOOD": self.OFFCUT_MARGIN_PLYWOOD,
            "MDF": self.OFFCUT_MARGIN_MDF,
            "ACRYLIC": self.OFFCUT_MARGIN_ACRYLIC,
            "MIRROR_ACRYLIC": self.OFFCUT_MARGIN_MIRROR_ACRYLIC,
        }

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Singleton settings loader (cached)."""
    return Settings()


# Convenience alias for backward compatibility with existing code
settings = get_settings()
