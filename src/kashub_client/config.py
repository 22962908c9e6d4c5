"""Client settings loaded from ``KASHUB_*`` environment variables or ``.env``."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    # Host addresses; only validated by connection attempts
    api_url: str = "http://localhost:25566"
    ws_url: str = "ws://localhost:25567"
    auto_connect: bool = True

    # Timeouts and retry cadence, in seconds
    probe_timeout: float = Field(default=5.0, gt=0)
    request_timeout: float = Field(default=5.0, gt=0)
    reconnect_delay: float = Field(default=5.0, ge=0)
    status_poll_interval: float = Field(default=5.0, gt=0)

    debounce_delay_ms: int = Field(default=300, ge=0)
    console_history_limit: int = Field(default=1000, ge=1)
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(env_prefix="KASHUB_", env_file=".env", extra="ignore")
