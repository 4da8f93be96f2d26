"""Engine configuration.

defaults live here instead of as module constants so a host can override them
per instance (or via PINOTQL_* env vars) without monkeypatching anything.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Tunable defaults for query compilation and extraction."""

    model_config = SettingsConfigDict(
        env_prefix="PINOTQL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_time_column_alias: str = "time"
    default_metric_column_alias: str = "metric"
    default_limit: int = Field(default=100_000, ge=1)
    distinct_values_limit: int = Field(default=100, ge=1)
    log_level: str = "INFO"
