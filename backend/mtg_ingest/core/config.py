"""
Application configuration settings.

All configuration is loaded from environment variables with sensible defaults.
"""
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mtg_ingest.core.constants import MAX_TOP_COMMANDERS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "MTG Inventory Ingest"
    api_debug: bool = False
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Database
    postgres_host: str = "db"
    postgres_port: int = 5432
    postgres_user: str = "mtg_user"
    postgres_password: str = "mtg_password"
    postgres_db: str = "mtg_inventory"
    database_url: Optional[str] = None

    # Redis / Celery
    redis_url: str = "redis://redis:6379/0"
    celery_broker_url: str = "redis://redis:6379/0"
    celery_result_backend: str = "redis://redis:6379/0"

    # EDHREC
    # Their JSON pages are static; 2s spacing keeps us well under any limit
    edhrec_base_url: str = "https://edhrec.com"
    edhrec_json_url: str = "https://json.edhrec.com"
    edhrec_rate_limit_seconds: float = 2.0
    scraper_user_agent: str = "MTG-Inventory-Bot/1.0"

    # Scryfall API
    # Rate limit: 50-100ms between requests (10 requests/second average)
    scryfall_base_url: str = "https://api.scryfall.com"
    scryfall_rate_limit_ms: int = 100

    external_api_timeout: float = 10.0

    # Commander scraping
    scrape_top_commanders: int = 20
    expected_deck_size: int = 100
    scraper_max_attempts: int = 3
    scraper_backoff_base_seconds: float = 1.0

    # Price refresh
    pricing_max_attempts: int = 5
    pricing_backoff_base_seconds: float = 1.0
    retry_jitter_seconds: float = 0.0
    price_batch_size: int = 50
    price_batch_delay_seconds: float = 0.1

    # Price alerts (percent change relative to the previous price row)
    price_alert_threshold_pct: float = 20.0
    price_alert_decrease_threshold_pct: Optional[float] = None

    @field_validator(
        "scrape_top_commanders",
        "expected_deck_size",
        "scraper_max_attempts",
        "pricing_max_attempts",
        "price_batch_size",
    )
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("scrape_top_commanders")
    @classmethod
    def within_ranking_size(cls, v: int) -> int:
        if v > MAX_TOP_COMMANDERS:
            raise ValueError(f"EDHREC ranks at most {MAX_TOP_COMMANDERS} commanders")
        return v

    @field_validator("price_alert_threshold_pct", "price_alert_decrease_threshold_pct")
    @classmethod
    def threshold_must_be_positive(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("alert thresholds must be greater than zero")
        return v

    @property
    def database_url_computed(self) -> str:
        """Compute database URL from components if not explicitly set."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def sync_database_url(self) -> str:
        """Synchronous database URL for Alembic migrations."""
        return self.database_url_computed.replace("+asyncpg", "").replace("+aiosqlite", "")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
