"""
Configuration Loader (``studio_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen dataclasses of
``studio_config.schema``.  This is build/test tooling; runtime callers go
through ``studio_config.get_active_config()``.

Invariants enforced
-------------------
* Required keys raise ``KeyError``; there are no silent defaults for them.
* Optional coefficient blocks fall back to the engine defaults field by
  field, so a set only needs to name what it changes.
* ``compute_checksum`` is a deterministic SHA-256 over canonical JSON.

Failure modes
-------------
* Missing YAML file -> ``FileNotFoundError``.
* Malformed YAML -> ``yaml.YAMLError``.
* Invalid coefficient values -> ``ValueError`` from the dataclass checks.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from studio_config.schema import (
    HolidayDef,
    StudioConfig,
    StudioDefaults,
    TerritoryDef,
)
from studio_engines.box_office import BoxOfficeCurve
from studio_engines.negotiation import NegotiationWeights
from studio_engines.quality import QualityWeights
from studio_kernel.domain.phases import PhaseDurations


def load_yaml_file(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _known_fields(cls: type, data: dict[str, Any], block: str) -> dict[str, Any]:
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown keys in '{block}': {', '.join(unknown)}")
    return dict(data)


def parse_territory(data: dict[str, Any]) -> TerritoryDef:
    return TerritoryDef(
        code=str(data["code"]),
        name=str(data["name"]),
        market_share=float(data["market_share"]),
        distribution_fee=int(data["distribution_fee"]),
        max_theaters=int(data["max_theaters"]),
    )


def parse_holiday(data: dict[str, Any]) -> HolidayDef:
    genre_modifiers = data.get("genre_modifiers") or {}
    return HolidayDef(
        name=str(data["name"]),
        week=int(data["week"]),
        modifier=float(data["modifier"]),
        genre_modifiers=tuple(
            (str(genre), float(value)) for genre, value in sorted(genre_modifiers.items())
        ),
    )


def parse_negotiation(data: dict[str, Any] | None) -> NegotiationWeights:
    return NegotiationWeights(**_known_fields(NegotiationWeights, data or {}, "negotiation"))


def parse_box_office(data: dict[str, Any] | None) -> BoxOfficeCurve:
    return BoxOfficeCurve(**_known_fields(BoxOfficeCurve, data or {}, "box_office"))


def parse_quality(data: dict[str, Any] | None) -> QualityWeights:
    return QualityWeights(**_known_fields(QualityWeights, data or {}, "quality"))


def parse_phase_defaults(data: dict[str, Any]) -> PhaseDurations:
    return PhaseDurations(
        development_duration_weeks=int(data["development_duration_weeks"]),
        pre_production_duration_weeks=int(data["pre_production_duration_weeks"]),
        production_duration_weeks=int(data["production_duration_weeks"]),
        post_production_duration_weeks=int(data["post_production_duration_weeks"]),
    )


def parse_studio_defaults(data: dict[str, Any] | None) -> StudioDefaults:
    return StudioDefaults(**_known_fields(StudioDefaults, data or {}, "studio_defaults"))


def parse_config(data: dict[str, Any]) -> StudioConfig:
    """Parse a whole configuration set dict into a StudioConfig."""
    return StudioConfig(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        territories=tuple(parse_territory(t) for t in data["territories"]),
        negotiation=parse_negotiation(data.get("negotiation")),
        box_office=parse_box_office(data.get("box_office")),
        quality=parse_quality(data.get("quality")),
        phase_defaults=parse_phase_defaults(data["phase_defaults"]),
        studio_defaults=parse_studio_defaults(data.get("studio_defaults")),
        holidays=tuple(parse_holiday(h) for h in data.get("holidays") or ()),
        checksum=compute_checksum(data),
    )


def load_config_set(path: Path) -> StudioConfig:
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of canonical JSON; identical data gives identical checksums."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
