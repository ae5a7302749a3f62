"""
Structured JSON logging for the asset kernel.

Every kernel module logs through ``get_logger("<layer>.<module>")`` with a
snake_case event name as the message and the event's data in ``extra``:

    logger.info("identifier_allocated", extra={"category": "MO", "sequence": 3})

Each record is rendered as one JSON object per line.  Fields bound with
``LogContext.bind()`` (tenant_id, asset_id, actor_id, operation) are added
to every record emitted inside the ``with`` block, so a facade call or a
tenant purge can be traced without threading ids through every call.
"""

__all__ = [
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
]

import json
import logging
import sys
import threading
from contextvars import ContextVar
from datetime import UTC, date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

LOGGER_NAMESPACE = "asset_kernel"

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("asset_kernel_log_context", default=_EMPTY)


class LogContext:
    """Request-scoped fields merged into every log record."""

    FIELDS = frozenset({"tenant_id", "asset_id", "actor_id", "operation"})

    @staticmethod
    def current() -> Mapping[str, str]:
        return _context.get()

    @classmethod
    def bind(cls, **fields: Any) -> "_Binding":
        """
        Bind fields for the duration of a ``with`` block.

        None values are skipped, ids are stored as strings, and the previous
        context is restored on exit.
        """
        unknown = set(fields) - cls.FIELDS
        if unknown:
            raise TypeError(f"unknown log context field(s): {', '.join(sorted(unknown))}")
        return _Binding({key: str(val) for key, val in fields.items() if val is not None})


class _Binding:
    def __init__(self, fields: dict[str, str]):
        self._fields = fields
        self._token = None

    def __enter__(self) -> Mapping[str, str]:
        merged = MappingProxyType({**_context.get(), **self._fields})
        self._token = _context.set(merged)
        return merged

    def __exit__(self, *exc_info: Any) -> None:
        _context.reset(self._token)


# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _to_json(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    if isinstance(value, Mapping):
        return dict(value)
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, bound context, extra fields, error."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.current(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._error_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)

    @staticmethod
    def _error_fields(exc: BaseException) -> dict[str, Any]:
        # Kernel exceptions expose a class-level code and public attributes.
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger under the asset_kernel namespace, e.g. ``get_logger("db.engine")``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_configure_lock = threading.Lock()
_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int | str | None = None,
    stream: Any = None,
) -> logging.Handler:
    """
    Attach a JSON handler to the asset_kernel logger.

    The first call installs the handler (INFO unless ``level`` is given);
    later calls only change the level, and only when one is passed.
    Returns the installed handler.
    """
    global _handler
    root = logging.getLogger(LOGGER_NAMESPACE)
    with _configure_lock:
        if _handler is None:
            _handler = logging.StreamHandler(stream or sys.stderr)
            _handler.setFormatter(StructuredFormatter())
            root.addHandler(_handler)
            root.propagate = False
            if level is None:
                level = logging.INFO
        if level is not None:
            root.setLevel(level)
    return _handler
