"""PromoProbe — Central Configuration via Pydantic Settings."""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Target Site ──
    target_url_template: str = (
        "https://www.perplexity.ai/join/p/airtel?discount_code={code}"
    )
    probe_timeout_seconds: float = 15.0

    # ── Retry Policy (seconds) ──
    max_attempts: int = 3
    retry_delay_min: float = 5.0
    retry_delay_max: float = 12.0
    rate_limit_delay_min: float = 10.0
    rate_limit_delay_max: float = 20.0
    transport_error_delay_min: float = 8.0
    transport_error_delay_max: float = 15.0

    # ── Batch Pacing (seconds) ──
    inter_code_delay_min: float = 4.0
    inter_code_delay_max: float = 10.0

    # ── Classification ──
    phrase_table_path: Optional[str] = None  # JSON file overriding the built-in table

    # ── Database ──
    database_url: str = ""

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = False
    sweep_interval_minutes: int = 60

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        return "sqlite:///./promoprobe.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
