"""
CORS Gate - Configuration Module
================================
Centralized configuration using Pydantic Settings
"""

from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def split_csv(value: str) -> List[str]:
    """Split a comma-separated setting into its non-empty, stripped items."""
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application Settings
    # =========================================================================
    app_name: str = "CORS Gate"
    app_version: str = "1.0.0"
    debug: bool = False
    dev_mode: bool = Field(default=True, description="Render console logs instead of JSON")
    log_level: str = "INFO"

    # =========================================================================
    # CORS Policy
    # =========================================================================
    cors_allowed_origins: str = Field(
        default="",
        description="Comma-separated allowed origins ('*' wildcards allowed)",
    )
    cors_allowed_origins_patterns: str = Field(
        default="",
        description="Comma-separated regular expressions matched against Origin",
    )
    cors_allowed_methods: str = Field(
        default="GET,POST,PUT,DELETE,PATCH,OPTIONS",
        description="Comma-separated allowed methods",
    )
    cors_allowed_headers: str = Field(
        default="Authorization,Content-Type,Accept,Origin,X-Requested-With,X-Correlation-ID",
        description="Comma-separated allowed request headers",
    )
    cors_exposed_headers: str = Field(
        default="",
        description="Comma-separated response headers exposed to browsers",
    )
    cors_supports_credentials: bool = Field(
        default=False,
        description="Send Access-Control-Allow-Credentials",
    )
    cors_max_age: Optional[int] = Field(
        default=600,
        ge=0,
        description="Preflight cache lifetime in seconds (empty to omit the header)",
    )

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("cors_max_age", mode="before")
    @classmethod
    def parse_cors_max_age(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().lower() in ("", "none", "null"):
            return None
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        return split_csv(self.cors_allowed_origins)

    @property
    def cors_options(self) -> Dict[str, Any]:
        """Option bag accepted by CorsService.reconfigure."""
        return {
            "allowedOrigins": self.cors_origins_list,
            "allowedOriginsPatterns": split_csv(self.cors_allowed_origins_patterns),
            "allowedMethods": split_csv(self.cors_allowed_methods),
            "allowedHeaders": split_csv(self.cors_allowed_headers),
            "exposedHeaders": split_csv(self.cors_exposed_headers) or False,
            "supportsCredentials": self.cors_supports_credentials,
            "maxAge": self.cors_max_age,
        }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience access
settings = get_settings()
