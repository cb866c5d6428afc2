"""
Structured JSON logging for the studio core.

Every record is one JSON line carrying the message, the ``extra`` fields
passed at the call site, and whatever LogContext fields are bound at the
time: the operation's correlation id, the studio, the film, the talent
being negotiated with, and the game week being ticked.

Loggers live under the ``studio_kernel`` namespace (``get_logger``), so
engines and services share one handler configured by configure_logging().
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import os
import sys
import threading
from collections.abc import Mapping
from contextvars import ContextVar
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any
from uuid import UUID

LOG_LEVEL_ENV = "STUDIO_LOG_LEVEL"

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("studio_log_context", default=_EMPTY)


class LogContext:
    """
    Operation-scoped log fields, isolated per thread and per task.

    The bound fields are held as one immutable mapping in a ContextVar, so
    a ``bind`` block restores exactly what was bound before it.
    """

    FIELDS = ("correlation_id", "studio_id", "film_id", "actor_id", "tick")

    @classmethod
    def _merged(cls, fields: Mapping[str, Any]) -> Mapping[str, str]:
        unknown = set(fields) - set(cls.FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {', '.join(sorted(unknown))}")
        merged = dict(_context.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        return MappingProxyType(merged)

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set fields for the rest of the current context.  None leaves a field as is."""
        _context.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        current = _context.get()
        return {name: current[name] for name in cls.FIELDS if name in current}

    @classmethod
    def clear(cls) -> None:
        _context.set(_EMPTY)

    @classmethod
    def bind(cls, **fields: Any) -> "_Binding":
        """Bind fields for the duration of a ``with`` block."""
        return _Binding(cls._merged(fields))


class _Binding:
    def __init__(self, bound: Mapping[str, str]):
        self._bound = bound
        self._token = None

    def __enter__(self) -> type[LogContext]:
        self._token = _context.set(self._bound)
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        _context.reset(self._token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # Kernel errors carry their context as public attributes
        for key, val in vars(exc).items():
            if not key.startswith("_") and key not in ("args", "code"):
                fields[f"exc_{key}"] = val
        return fields


# ---------------------------------------------------------------------------
# Logger factory and setup
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "studio_kernel"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Logger ``studio_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def _level_from_env(default: int) -> int:
    name = os.environ.get(LOG_LEVEL_ENV)
    if not name:
        return default
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def configure_logging(
    *,
    level: int | None = None,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``studio_kernel`` logger.  Later calls
    are no-ops until reset_logging().

    ``level`` defaults to ``STUDIO_LOG_LEVEL`` from the environment, then
    INFO.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level if level is not None else _level_from_env(logging.INFO))
    root.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    root.addHandler(h)


def reset_logging() -> None:
    """Detach handlers and allow configure_logging() to run again.  Tests only."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
