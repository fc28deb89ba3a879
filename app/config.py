from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Media Contact Discovery"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database
    database_url: str | None = None
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    db_auto_create_schema: bool = True

    # Fetcher
    fetch_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    )
    fetch_timeout_seconds: float = 15.0
    probe_timeout_seconds: float = 10.0
    head_timeout_seconds: float = 5.0

    # Scraping
    scrape_page_delay_seconds: float = 1.0
    scrape_page_delay_jitter_seconds: float = 2.0
    locator_probe_concurrency: int = 4

    # Verification
    verification_batch_size: int = 5
    verification_batch_delay_seconds: float = 2.0
    verification_verified_threshold: float = 80.0
    verification_likely_valid_threshold: float = 60.0
    verification_questionable_threshold: float = 30.0
    dns_timeout_seconds: float = 5.0

    # Intelligence
    intelligence_batch_size: int = 3
    intelligence_batch_delay_seconds: float = 3.0

    # Batch runs
    batch_failure_alert_ratio: float = 0.5

    # Providers
    openai_api_key: str | None = None
    categorization_model: str = "gpt-4o-mini"
    categorization_temperature: float = 0.3
    categorization_max_tokens: int = 500
    tavily_api_key: str | None = None
    content_search_max_results: int = 20
    content_search_days: int = 90

    # Security
    cors_origins: list[str] = []  # Empty by default for security

    # Sentry
    sentry_dsn: str | None = None

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Metrics
    metrics_backend: str = "stdout"
    metrics_namespace: str = "media_discovery"
    metrics_disable: bool = False
    metrics_sample_rate: float = 1.0
    metrics_statsd_host: str = "127.0.0.1"
    metrics_statsd_port: int = 8125

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
