"""Configuration management for the quote engine service."""

import logging
from dataclasses import dataclass
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

ALLOWED_VOLUME_STEPS = (0.25, 0.5, 1.0)


@dataclass(frozen=True)
class SupabaseSettings:
    """Connection settings for the hosted pricing/lead backend."""

    url: str
    service_role_key: str
    timeout_sec: float


class QuoteConfig(BaseSettings):
    """Configuration for quote calculation and rule resolution."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (optional, pricing falls back to static rules)",
    )

    supabase_service_role_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key",
    )

    pricing_table: str = Field(
        default="price_config",
        description="Table holding the active pricing rule blob",
    )

    pricing_column: str = Field(
        default="pricing_rules",
        description="JSON column holding the pricing rule blob",
    )

    pricing_fetch_timeout_sec: float = Field(
        default=5.0,
        ge=1.0,
        le=30.0,
        description="Timeout for the remote pricing rule query in seconds",
    )

    monitoring_webhook_url: Optional[str] = Field(
        default=None,
        description="Optional webhook that receives monitoring reports",
    )

    monitoring_timeout_sec: float = Field(
        default=1.0,
        ge=0.1,
        le=5.0,
        description="Abort timeout for monitoring report delivery",
    )

    volume_step_m3: float = Field(
        default=0.5,
        description="Billing rounding step in cubic meters (volumes round up)",
    )

    max_web_order_m3: float = Field(
        default=500.0,
        gt=0,
        le=5000,
        description="Largest volume accepted from a web-originated order",
    )

    folio_prefix: str = Field(
        default="CEJ",
        min_length=1,
        max_length=8,
        description="Prefix of generated order folios",
    )

    api_host: str = Field(
        default="0.0.0.0",
        description="API host address",
    )

    api_port: int = Field(
        default=8000,
        description="API port",
    )

    allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of CORS origins",
    )

    @field_validator("volume_step_m3")
    @classmethod
    def validate_volume_step(cls, v: float) -> float:
        if v not in ALLOWED_VOLUME_STEPS:
            raise ValueError(
                f"VOLUME_STEP_M3 must be one of {', '.join(map(str, ALLOWED_VOLUME_STEPS))}"
            )
        return v

    def get_allowed_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    def supabase_settings(self) -> Optional[SupabaseSettings]:
        """Return backend settings, or None when credentials are not configured."""
        if not self.supabase_url or not self.supabase_service_role_key:
            return None
        return SupabaseSettings(
            url=self.supabase_url,
            service_role_key=self.supabase_service_role_key,
            timeout_sec=self.pricing_fetch_timeout_sec,
        )

    def validate_config(self) -> None:
        """Validate configuration at startup. Raises ValueError if invalid."""
        errors = []

        # Credentials are only usable as a pair
        if bool(self.supabase_url) != bool(self.supabase_service_role_key):
            errors.append(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set together"
            )

        if self.supabase_url and not self.supabase_url.startswith("https://"):
            errors.append("SUPABASE_URL must use https://")

        if self.monitoring_webhook_url and not self.monitoring_webhook_url.startswith(
            ("http://", "https://")
        ):
            errors.append("MONITORING_WEBHOOK_URL must be an http(s) URL")

        if not self.pricing_table.replace("_", "").isalnum():
            errors.append("PRICING_TABLE contains invalid characters")

        if errors:
            raise ValueError(
                "Configuration validation failed:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )

        if self.supabase_settings() is None:
            logger.warning(
                "Supabase credentials missing. Static fallback pricing will be used "
                "and leads will not be persisted."
            )


_config_instance = None


def get_config() -> QuoteConfig:
    """Get or create global configuration instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = QuoteConfig()
        _config_instance.validate_config()
        logger.info("Configuration validated successfully")
    return _config_instance


def reload_config() -> QuoteConfig:
    """Reload configuration (useful for testing)."""
    global _config_instance
    _config_instance = QuoteConfig()
    return _config_instance
