"""
KernelConfig schema.

Typed, frozen view of one YAML configuration file.  The loader parses raw
YAML into these types; ``get_active_config()`` hands them to callers.
Defaults here are the values used when a key is absent from the file.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings.  Pool settings are ignored for SQLite."""

    url: str
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class RetryConfig:
    """Retry budget for tenant purges.  max_attempts counts the first try."""

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    backoff_factor: float = 2.0
    max_delay_seconds: float = 8.0


@dataclass(frozen=True)
class HistoryConfig:
    """History listing and retention.  retention_days None keeps history forever."""

    retention_days: int | None = None
    default_page_size: int = 20
    max_page_size: int = 200


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class KernelConfig:
    """Root of the configuration tree."""

    config_id: str
    database: DatabaseConfig
    retry: RetryConfig = field(default_factory=RetryConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
