"""Tests for configuration loading and validation (studio_config/)."""

from dataclasses import replace
from pathlib import Path

import pytest
import yaml

from studio_config import get_active_config
from studio_config.loader import compute_checksum, load_yaml_file, parse_config
from studio_config.schema import OTHER_TERRITORY, HolidayDef, TerritoryDef
from studio_config.validator import validate_configuration

SETS_DIR = Path(__file__).resolve().parents[2] / "studio_config" / "sets"


@pytest.fixture
def raw_default() -> dict:
    return load_yaml_file(SETS_DIR / "default.yaml")


def write_set(tmp_path: Path, name: str, data: dict) -> Path:
    (tmp_path / f"{name}.yaml").write_text(yaml.safe_dump(data))
    return tmp_path


class TestDefaultSet:
    def test_loads_and_validates(self, config):
        assert config.config_id == "studio-default"
        assert validate_configuration(config).is_valid

    def test_territory_order_is_commit_order(self, config):
        assert config.territory_codes[0] == "NA"
        assert config.territory_codes[-1] == OTHER_TERRITORY

    def test_market_shares_cover_the_world(self, config):
        # Shares are used as configured, without normalizing
        assert sum(t.market_share for t in config.territories) == pytest.approx(1.06)

    def test_engine_blocks_parsed(self, config):
        assert config.negotiation.baseline == 20
        assert config.negotiation.role_importance["lead"] == 25
        assert config.box_office.max_retention < 1
        assert config.phase_defaults.total_weeks == 10

    def test_checksum_is_stable(self, raw_default):
        assert compute_checksum(raw_default) == compute_checksum(dict(raw_default))
        assert get_active_config().checksum == get_active_config().checksum

    def test_checksum_changes_with_content(self, raw_default):
        changed = {**raw_default, "version": raw_default["version"] + 1}
        assert compute_checksum(changed) != compute_checksum(raw_default)


class TestLookups:
    def test_unlisted_code_pays_other_fee(self, config):
        other = config.territory(OTHER_TERRITORY)
        assert config.distribution_fee("ZZ") == other.distribution_fee
        assert config.distribution_fee("NA") == 2_000_000

    def test_holiday_modifier_combines_genre(self, config):
        # Halloween: 1.30 base, horror x1.70
        assert config.holiday_modifier(43, "horror") == pytest.approx(1.30 * 1.70)
        assert config.holiday_modifier(43, "drama") == pytest.approx(1.30)

    def test_non_holiday_week_is_neutral(self, config):
        assert config.holiday_modifier(30, "action") == 1.0


class TestGetActiveConfig:
    def test_missing_set_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config("nope", config_dir=tmp_path)

    def test_invalid_set_raises_value_error(self, tmp_path, raw_default):
        raw_default["territories"] = [
            t for t in raw_default["territories"] if t["code"] != OTHER_TERRITORY
        ]
        write_set(tmp_path, "broken", raw_default)
        with pytest.raises(ValueError, match="OTHER"):
            get_active_config("broken", config_dir=tmp_path)

    def test_unknown_coefficient_key_rejected(self, tmp_path, raw_default):
        raw_default["box_office"]["not_a_field"] = 1
        write_set(tmp_path, "typo", raw_default)
        with pytest.raises(ValueError, match="not_a_field"):
            get_active_config("typo", config_dir=tmp_path)

    def test_partial_coefficient_block_uses_defaults(self, raw_default):
        raw_default["negotiation"] = {"baseline": 30}
        config = parse_config(raw_default)
        assert config.negotiation.baseline == 30
        assert config.negotiation.prestige_per_level == 4.0

    def test_emits_config_trace(self, captured_logs):
        get_active_config()
        traces = [r for r in captured_logs() if r["message"] == "STUDIO_CONFIG_TRACE"]
        assert traces
        assert traces[-1]["config_set_id"] == "studio-default"


class TestValidator:
    def test_duplicate_territory_code(self, config):
        broken = replace(config, territories=config.territories + (config.territories[0],))
        errors = validate_configuration(broken).errors
        assert any("duplicate territory code: NA" in e for e in errors)

    def test_market_share_out_of_range(self, config):
        bad = TerritoryDef("XX", "Nowhere", 1.5, 0, 10)
        broken = replace(config, territories=config.territories + (bad,))
        assert any("XX" in e for e in validate_configuration(broken).errors)

    def test_home_territory_must_exist(self, config):
        broken = replace(
            config,
            studio_defaults=replace(config.studio_defaults, home_territory="ZZ"),
        )
        assert any("home_territory" in e for e in validate_configuration(broken).errors)

    def test_two_holidays_in_one_week(self, config):
        extra = HolidayDef("Second Christmas", 52, 1.1)
        broken = replace(config, holidays=config.holidays + (extra,))
        assert any("already has a holiday" in e for e in validate_configuration(broken).errors)
