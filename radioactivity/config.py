"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "radioactivity-engine"
    debug: bool = False
    log_level: str = "INFO"

    # Decay
    decay_profile: str = "decay"
    half_life_seconds: float = 86400.0
    linear_rate_per_second: float = 0.001
    cutoff: float = 0.01
    retention_seconds: float = 7 * 86400.0

    # Score store
    database_url: str = ""
    store_timeout_seconds: float = 5.0
    lock_shards: int = 64

    # Background sweep (0 disables)
    sweep_interval_seconds: float = 300.0

    # Emitter payload signatures (empty disables verification)
    hash_salt: str = ""

    model_config = {"env_prefix": "RADIOACTIVITY_"}


settings = Settings()
