"""
studio_config -- single public entrypoint for studio configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains tunables:
    territories and distribution fees, negotiation weights, the
    box-office curve, quality weights, default phase durations, studio
    defaults and the holiday calendar.

Architecture position:
    Configuration -- sits above ``studio_kernel`` and ``studio_engines`` and
    below ``studio_services``.  The kernel MUST NEVER import from here.

Invariants enforced:
    - Every returned StudioConfig has passed field and cross-field
      validation.
    - Same YAML gives the same checksum.

Failure modes:
    - FileNotFoundError -- the configuration set does not exist.
    - ValueError -- validation failed.

Every successful call emits a STUDIO_CONFIG_TRACE log record with the
config id, version and checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from studio_config.loader import load_config_set
from studio_config.schema import (
    HolidayDef,
    StudioConfig,
    StudioDefaults,
    TerritoryDef,
)
from studio_config.validator import validate_configuration

_logger = logging.getLogger("studio_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
DEFAULT_CONFIG_NAME = "default"


def get_active_config(
    config_name: str = DEFAULT_CONFIG_NAME,
    config_dir: Path | None = None,
) -> StudioConfig:
    """
    Load, validate and return a configuration set.

    Args:
        config_name: File stem of the set under ``config_dir``.
        config_dir: Override for the sets directory.  Defaults to
            studio_config/sets/.

    Raises:
        FileNotFoundError: No ``<config_name>.yaml`` in ``config_dir``.
        ValueError: Validation failed.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{config_name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    config = load_config_set(path)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )

    _logger.info(
        "STUDIO_CONFIG_TRACE",
        extra={
            "trace_type": "STUDIO_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "territory_count": len(config.territories),
            "holiday_count": len(config.holidays),
        },
    )
    return config


__all__ = [
    "get_active_config",
    "HolidayDef",
    "StudioConfig",
    "StudioDefaults",
    "TerritoryDef",
]
