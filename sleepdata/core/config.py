from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # App Configuration
    app_name: str = "SleepData Backend"
    version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # HealthKit sample store (sleep_analysis table written by the sync pipeline)
    database_url: str = "postgresql://localhost:5432/healthkit"
    query_timeout: float = 30.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Production Settings
    workers: int = 4
    timeout: int = 30
    keepalive: int = 2

    # Logging
    log_level: str = "INFO"

    # Sleep summaries
    lookback_days: int = 5
    window_start_rule: Literal["start_of_day", "rolling"] = "start_of_day"
    timezone: str = "UTC"
    aggregation_policy: Literal["direct", "derived_ratio"] = "direct"

    # Heuristic split used by the derived_ratio policy (estimate, not a measurement)
    deep_sleep_ratio: float = 0.15
    rem_sleep_ratio: float = 0.20

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


settings = Settings()
