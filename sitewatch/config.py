from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_TARGETS = [
    "https://google.com",
    "https://facebook.com",
    "https://stackoverflow.com",
    "https://golang.org",
    "https://amazon.com",
]


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "SITEWATCH_",
        "extra": "ignore",
    }

    # Targets (JSON list in env, e.g. SITEWATCH_TARGETS='["https://a", "https://b"]')
    targets: list[str] = Field(default_factory=lambda: list(DEFAULT_TARGETS), min_length=1)

    # Pacing — seconds between the end of one check and the start of the next
    check_interval: float = Field(default=5.0, ge=0)

    # Backoff on repeated errors (1.0 = off, fixed interval for every target)
    backoff_factor: float = Field(default=1.0, ge=1.0)
    max_interval: float = Field(default=300.0, ge=0)

    # Probe
    request_timeout_ms: int = Field(default=10_000, gt=0)
    follow_redirects: bool = True

    # Results kept per target (0 = no history)
    history_size: int = Field(default=20, ge=0)

    # Seconds to wait for in-flight checks on shutdown
    shutdown_grace: float = Field(default=10.0, ge=0)

    # Logging
    log_level: str = "INFO"


settings = Settings()
