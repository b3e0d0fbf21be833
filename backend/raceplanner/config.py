"""
Application Configuration

Uses Pydantic Settings for type-safe configuration.
"""

from pathlib import Path
from typing import List, Literal, Optional
from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field, field_validator, ConfigDict

# Project root: repository checkout
PROJECT_ROOT = Path(__file__).parent.parent.parent


class Settings(BaseSettings):
    """Application settings with validation."""

    # === Core ===
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # === Supabase ===
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_anon_key: Optional[str] = Field(default=None)
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "supabase_service_role_key",
            "supabase_service_role",  # Also accept SUPABASE_SERVICE_ROLE
        ),
    )

    # === Backends ===
    blob_backend: Literal["supabase", "local"] = Field(
        default="local",
        description="Where GPX blobs are stored"
    )
    record_backend: Literal["supabase", "sql"] = Field(
        default="sql",
        description="Where catalog and plan rows are stored"
    )
    database_url: str = Field(
        default="sqlite:///./raceplanner.db",
        description="Database connection URL (sql record backend)"
    )
    local_blob_dir: Path = Field(
        default=PROJECT_ROOT / "var" / "blobs",
        description="Root directory of the local blob backend"
    )
    http_timeout_s: float = Field(default=15.0)

    # === GPX ingestion ===
    catalog_gpx_bucket: str = Field(default="race-gpx")
    plan_gpx_bucket: str = Field(default="plan-gpx")
    elevation_noise_threshold_m: float = Field(
        default=1.0,
        ge=0,
        description="Elevation changes at or below this value are GPS jitter"
    )
    max_gpx_bytes: int = Field(default=20 * 1024 * 1024)

    # === Plans ===
    free_plan_limit: int = Field(default=1, ge=0)

    # === CORS ===
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # === Rate Limiting ===
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_requests: int = Field(default=10)
    rate_limit_period: int = Field(default=60)

    @field_validator('database_url')
    @classmethod
    def fix_postgres_url(cls, v: str) -> str:
        """Fix Render/Railway postgres:// URL to postgresql://"""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator('supabase_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',')]
        return v

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


# Global settings instance
settings = Settings()
