"""
Trendwave — Configuration Management

Pydantic Settings: loads from .env, validates all configuration at startup.
Engines take explicit constructor arguments; these values are only the defaults
a host falls back to when it does not pass its own.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Core ──
    app_env: str = "development"

    # ── Threshold alerts ──
    alert_default_cooldown_seconds: int = 30

    # ── Elliott Wave pattern alerts ──
    pattern_alerts_enabled: bool = True
    pattern_min_confidence: float = 0.7
    pattern_fibonacci_levels: str = "0.382,0.5,0.618,0.786"
    pattern_cooldown_minutes: int = 30
    fibonacci_proximity_pct: float = 0.02  # fraction of the level price
    wave_target_proximity_pct: float = 0.01

    @property
    def pattern_fibonacci_level_list(self) -> list[float]:
        """Parse comma-separated Fibonacci ratios into a list."""
        return [float(r.strip()) for r in self.pattern_fibonacci_levels.split(",") if r.strip()]

    # ── Notifications ──
    discord_webhook_url: str = ""
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    notification_timeout_seconds: float = 10.0

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — created once, reused everywhere."""
    return Settings()
