"""
asset_config -- single public entrypoint for kernel configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- sits beside ``asset_kernel``.  The kernel never imports
    from ``asset_config`` at runtime; callers pass the parsed sections in
    (``init_engine_from_config``, ``RetryPolicy.from_config``).

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` -- a required key is missing.
    - ``ValueError`` -- a value is out of range or mistyped.

Audit relevance:
    Every successful ``get_active_config()`` call emits a ``config_loaded``
    log entry with the config_id and source path (never the database URL,
    which may carry credentials).
"""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path

from asset_config.loader import load_yaml_file, parse_kernel_config
from asset_config.schema import (
    DatabaseConfig,
    HistoryConfig,
    KernelConfig,
    LoggingConfig,
    RetryConfig,
)
from asset_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
_DEFAULT_CONFIG_FILE = _DEFAULT_CONFIG_DIR / "default.yaml"

DATABASE_URL_ENV = "DATABASE_URL"


def get_active_config(config_path: Path | str | None = None) -> KernelConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to
            ``asset_config/sets/default.yaml``.

    Guarantees:
        - The returned ``KernelConfig`` has passed value validation.
        - A non-empty ``DATABASE_URL`` environment variable replaces
          ``database.url``.

    Raises:
        FileNotFoundError, KeyError, ValueError.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_FILE
    config = parse_kernel_config(load_yaml_file(path))

    env_url = os.environ.get(DATABASE_URL_ENV, "").strip()
    if env_url:
        config = replace(config, database=replace(config.database, url=env_url))

    _logger.info(
        "config_loaded",
        extra={
            "config_id": config.config_id,
            "source": str(path),
            "database_url_from_env": bool(env_url),
            "retention_days": config.history.retention_days,
        },
    )
    return config


__all__ = [
    "DatabaseConfig",
    "HistoryConfig",
    "KernelConfig",
    "LoggingConfig",
    "RetryConfig",
    "get_active_config",
]
