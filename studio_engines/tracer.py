"""
studio_engines.tracer -- one STUDIO_ENGINE_TRACE record per engine call.

``@traced_engine`` wraps a pure engine function.  Each call logs the
engine's name and version, a fingerprint of the inputs that decide the
result, the fields of the result named in ``result_fields`` and the
duration.  Two calls with the same fingerprint and the same random draws
produce the same result, so a fingerprint plus the logged outcome is
enough to replay a disputed offer or gross.

The decorator only logs.  It reads the named keyword arguments and the
result and changes neither.

Usage:
    @traced_engine(
        "negotiation", "1.0",
        fingerprint_fields=("offered_salary", "asking_price"),
        result_fields=("probability",),
    )
    def calculate_acceptance(*, offered_salary, asking_price, ...):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import logging
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

# Child of the kernel namespace so configure_logging() picks it up.
_logger = logging.getLogger("studio_kernel.engines.tracer")

TRACE_TYPE = "STUDIO_ENGINE_TRACE"


def _canonicalize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, str)):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: Mapping[str, Any],
) -> str:
    """16-hex-char SHA-256 prefix over ``name=value`` of the named kwargs; missing ones read as null."""
    canonical = "|".join(
        f"{name}={_canonicalize(kwargs.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def _result_summary(result: Any, result_fields: tuple[str, ...]) -> dict[str, Any]:
    summary = {}
    for name in result_fields:
        value = getattr(result, name, None)
        summary[name] = value.value if isinstance(value, Enum) else value
    return summary


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    result_fields: tuple[str, ...] = (),
) -> Callable:
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            if _logger.isEnabledFor(logging.INFO):
                _logger.info(
                    TRACE_TYPE,
                    extra={
                        "trace_type": TRACE_TYPE,
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": compute_input_fingerprint(
                            fingerprint_fields, kwargs
                        ),
                        "result": _result_summary(result, result_fields),
                        "duration_ms": duration_ms,
                        "function": func.__qualname__,
                    },
                )
            return result

        return wrapper

    return decorator
