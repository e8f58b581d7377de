"""
Application configuration using Pydantic settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_name: str = "Wastewatch"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./data/db.sqlite"

    # Detection defaults (seed values for the persisted DetectionSettings row)
    min_occurrences: int = 2
    price_increase_min_delta: float = 0.50  # Dollars
    price_increase_min_percent: float = 2.0
    anomaly_percent_threshold: float = 40.0
    anomaly_min_delta: float = 25.0  # Dollars
    anomaly_baseline_months: int = 3
    tip_ceiling_percent: float = 25.0

    # Alerts
    alert_retention_days: int = 180

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    frontend_url: str = "http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )


# Global settings instance
settings = Settings()
