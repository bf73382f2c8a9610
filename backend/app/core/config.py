from functools import lru_cache

from pydantic import AnyUrl, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum loguru level written to stderr",
    )
    polymarket_gamma_base_url: AnyUrl = Field(
        default="https://gamma-api.polymarket.com",
        description="Base URL for the Polymarket Gamma (market metadata) API",
    )
    polymarket_clob_base_url: AnyUrl = Field(
        default="https://clob.polymarket.com",
        description="Base URL for the Polymarket CLOB (order book) API",
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        description="Per-request timeout applied to Polymarket HTTP calls",
        gt=0,
    )
    scan_default_limit: int = Field(
        default=20, description="Number of ranked signals returned by default", ge=1
    )
    scan_max_limit: int = Field(
        default=50, description="Upper bound on ranked signals per scan", ge=1
    )
    scan_default_concurrency: int = Field(
        default=6,
        description="Number of order books fetched in parallel during a scan",
        ge=1,
    )
    scan_max_concurrency: int = Field(
        default=12,
        description="Ceiling on parallel order book fetches",
        ge=1,
    )
    scan_default_max_spread_bps: float = Field(
        default=800.0,
        description="Widest spread (bps) admitted into the ranking by default",
        gt=0,
    )
    scan_default_time_horizon_hours: float = Field(
        default=24.0,
        description="Horizon used to weight short vs. daily momentum",
        gt=0,
    )
    scan_fetch_multiplier: int = Field(
        default=5,
        description="Markets fetched per requested signal before filtering",
        ge=1,
    )
    scan_max_fetch_limit: int = Field(
        default=500,
        description="Maximum number of markets listed for a single scan",
        ge=1,
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"LOG_LEVEL must be a loguru level name, got {value!r}")
        return normalized

    @model_validator(mode="after")
    def _check_scan_bounds(self) -> "Settings":
        if self.scan_default_limit > self.scan_max_limit:
            raise ValueError("SCAN_DEFAULT_LIMIT must not exceed SCAN_MAX_LIMIT")
        if self.scan_default_concurrency > self.scan_max_concurrency:
            raise ValueError(
                "SCAN_DEFAULT_CONCURRENCY must not exceed SCAN_MAX_CONCURRENCY"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
