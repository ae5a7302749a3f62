"""
Configuration Loader (``asset_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into typed
``asset_config.schema`` dataclass instances.  Callers use
``asset_config.get_active_config()``; this module is its implementation.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range or mistyped values  -> ``ValueError``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from asset_config.schema import (
    DatabaseConfig,
    HistoryConfig,
    KernelConfig,
    LoggingConfig,
    RetryConfig,
)

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _int(section: str, name: str, value: Any, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{section}.{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{section}.{name} must be at least {minimum}, got {value}")
    return value


def _float(section: str, name: str, value: Any, minimum: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{section}.{name} must be a number, got {value!r}")
    if value < minimum:
        raise ValueError(f"{section}.{name} must be at least {minimum}, got {value}")
    return float(value)


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    """Parse the ``database`` section.  ``url`` is required."""
    defaults = DatabaseConfig(url="")
    url = data["url"]
    if not isinstance(url, str) or not url.strip():
        raise ValueError("database.url must be a non-empty string")
    return DatabaseConfig(
        url=url.strip(),
        echo=bool(data.get("echo", defaults.echo)),
        pool_size=_int("database", "pool_size", data.get("pool_size", defaults.pool_size), 1),
        max_overflow=_int(
            "database", "max_overflow", data.get("max_overflow", defaults.max_overflow), 0
        ),
        pool_timeout=_int(
            "database", "pool_timeout", data.get("pool_timeout", defaults.pool_timeout), 1
        ),
        pool_recycle=_int(
            "database", "pool_recycle", data.get("pool_recycle", defaults.pool_recycle), -1
        ),
    )


def parse_retry(data: dict[str, Any]) -> RetryConfig:
    """Parse the ``retry`` section."""
    defaults = RetryConfig()
    return RetryConfig(
        max_attempts=_int("retry", "max_attempts", data.get("max_attempts", defaults.max_attempts), 1),
        base_delay_seconds=_float(
            "retry", "base_delay_seconds",
            data.get("base_delay_seconds", defaults.base_delay_seconds), 0.0,
        ),
        backoff_factor=_float(
            "retry", "backoff_factor", data.get("backoff_factor", defaults.backoff_factor), 1.0
        ),
        max_delay_seconds=_float(
            "retry", "max_delay_seconds",
            data.get("max_delay_seconds", defaults.max_delay_seconds), 0.0,
        ),
    )


def parse_history(data: dict[str, Any]) -> HistoryConfig:
    """Parse the ``history`` section."""
    defaults = HistoryConfig()
    retention = data.get("retention_days", defaults.retention_days)
    if retention is not None:
        retention = _int("history", "retention_days", retention, 1)
    default_size = _int(
        "history", "default_page_size", data.get("default_page_size", defaults.default_page_size), 1
    )
    max_size = _int(
        "history", "max_page_size", data.get("max_page_size", defaults.max_page_size), 1
    )
    if default_size > max_size:
        raise ValueError(
            f"history.default_page_size ({default_size}) exceeds max_page_size ({max_size})"
        )
    return HistoryConfig(
        retention_days=retention,
        default_page_size=default_size,
        max_page_size=max_size,
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    """Parse the ``logging`` section."""
    level = str(data.get("level", LoggingConfig().level)).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}, got {level!r}")
    return LoggingConfig(level=level)


def parse_kernel_config(data: dict[str, Any]) -> KernelConfig:
    """
    Parse a full configuration mapping.

    Raises:
        KeyError: if ``config_id``, ``database`` or ``database.url`` is missing.
        ValueError: on any invalid value.
    """
    return KernelConfig(
        config_id=str(data["config_id"]),
        database=parse_database(data["database"]),
        retry=parse_retry(data.get("retry") or {}),
        history=parse_history(data.get("history") or {}),
        logging=parse_logging(data.get("logging") or {}),
    )


def log_level(config: LoggingConfig) -> int:
    """Numeric logging level for ``configure_logging``."""
    return logging.getLevelName(config.level)
