"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from stable_engine.config import (
    AppConfig,
    CollateralConfig,
    RiskConfig,
    _interpolate_env,
    load_config,
    validate,
)
from stable_engine.errors import ConfigurationMismatch


def _write(tmp_path: Path, content: str) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(content)
    return cfg_file


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested_dict(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOK", "secret")
        result = _interpolate_env({"key": "${TOK}", "plain": "text"})
        assert result == {"key": "secret", "plain": "text"}

    def test_nested_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("A", "x")
        assert _interpolate_env(["${A}", "y"]) == ["x", "y"]

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(True) is True


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert [c.symbol for c in cfg.collateral] == ["WETH", "WBTC"]
        assert cfg.collateral[1].decimals == 8
        assert cfg.risk.liquidation_threshold == 50
        assert cfg.risk.max_price_age is None
        assert cfg.price_oracle.static_prices == {"WETH": "2000", "WBTC": "1000"}

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_env_interpolation_in_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_MAX_AGE", "3600")
        cfg_file = _write(
            tmp_path,
            """\
risk:
  max_price_age: ${TEST_MAX_AGE}
collateral:
  - symbol: WETH
""",
        )
        cfg = load_config(cfg_file)
        assert cfg.risk.max_price_age == 3600.0

    def test_empty_env_means_no_staleness_bound(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("UNSET_MAX_AGE", raising=False)
        cfg_file = _write(
            tmp_path,
            """\
risk:
  max_price_age: ${UNSET_MAX_AGE}
collateral:
  - symbol: WETH
""",
        )
        assert load_config(cfg_file).risk.max_price_age is None


class TestValidation:
    def test_no_collateral_raises(self, tmp_path: Path) -> None:
        cfg_file = _write(tmp_path, "collateral: []\n")
        with pytest.raises(ValueError, match="At least one collateral"):
            load_config(cfg_file)

    def test_duplicate_symbol_raises(self, tmp_path: Path) -> None:
        cfg_file = _write(
            tmp_path,
            """\
collateral:
  - symbol: WETH
  - symbol: WETH
""",
        )
        with pytest.raises(ConfigurationMismatch, match="Duplicate"):
            load_config(cfg_file)

    def test_threshold_out_of_range(self, tmp_path: Path) -> None:
        cfg_file = _write(
            tmp_path,
            """\
risk:
  liquidation_threshold: 150
collateral:
  - symbol: WETH
""",
        )
        with pytest.raises(ValueError, match="liquidation_threshold"):
            load_config(cfg_file)

    def test_zero_precision(self, tmp_path: Path) -> None:
        cfg_file = _write(
            tmp_path,
            """\
risk:
  liquidation_precision: 0
collateral:
  - symbol: WETH
""",
        )
        with pytest.raises(ValueError, match="liquidation_precision must be positive"):
            load_config(cfg_file)

    @pytest.mark.parametrize("value", ['"0"', '"0.5"', "-1"])
    def test_min_health_factor_below_one(self, tmp_path: Path, value: str) -> None:
        cfg_file = _write(
            tmp_path,
            f"""\
risk:
  min_health_factor: {value}
collateral:
  - symbol: WETH
""",
        )
        with pytest.raises(ValueError, match="at least 1.0"):
            load_config(cfg_file)

    @pytest.mark.parametrize("value", ['"abc"', '""', '"inf"'])
    def test_min_health_factor_not_a_number(self, tmp_path: Path, value: str) -> None:
        cfg_file = _write(
            tmp_path,
            f"""\
risk:
  min_health_factor: {value}
collateral:
  - symbol: WETH
""",
        )
        with pytest.raises(ValueError, match="min_health_factor must be a"):
            load_config(cfg_file)

    def test_unquoted_min_health_factor(self, tmp_path: Path) -> None:
        cfg_file = _write(
            tmp_path,
            """\
risk:
  min_health_factor: 1.5
collateral:
  - symbol: WETH
""",
        )
        assert load_config(cfg_file).risk.min_health_factor == Decimal("1.5")

    def test_validate_rejects_unparsed_min_health_factor(self) -> None:
        cfg = AppConfig(
            risk=RiskConfig(min_health_factor="abc"),  # type: ignore[arg-type]
            collateral=(CollateralConfig(symbol="WETH"),),
        )
        with pytest.raises(ValueError, match="must be a number"):
            validate(cfg)

    def test_unknown_provider(self, tmp_path: Path) -> None:
        cfg_file = _write(
            tmp_path,
            """\
collateral:
  - symbol: WETH
price_oracle:
  provider: chainlink
""",
        )
        with pytest.raises(ValueError, match="Unknown price oracle provider"):
            load_config(cfg_file)

    def test_static_price_for_unknown_asset(self, tmp_path: Path) -> None:
        cfg_file = _write(
            tmp_path,
            """\
collateral:
  - symbol: WETH
price_oracle:
  static_prices: {DOGE: "0.1"}
""",
        )
        with pytest.raises(ValueError, match="unknown collateral 'DOGE'"):
            load_config(cfg_file)

    def test_pyth_requires_feed_per_asset(self, tmp_path: Path) -> None:
        cfg_file = _write(
            tmp_path,
            """\
collateral:
  - symbol: WETH
    feed: "aaa"
  - symbol: WBTC
price_oracle:
  provider: pyth
""",
        )
        with pytest.raises(ConfigurationMismatch, match="WBTC"):
            load_config(cfg_file)

    def test_stable_must_use_18_decimals(self, tmp_path: Path) -> None:
        cfg_file = _write(
            tmp_path,
            """\
collateral:
  - symbol: WETH
stable:
  decimals: 6
""",
        )
        with pytest.raises(ValueError, match="18 decimals"):
            load_config(cfg_file)


class TestFrozenConfigs:
    def test_risk_config_immutable(self) -> None:
        r = RiskConfig()
        with pytest.raises(AttributeError):
            r.liquidation_bonus = 99  # type: ignore[misc]

    def test_collateral_config_immutable(self) -> None:
        c = CollateralConfig(symbol="WETH")
        with pytest.raises(AttributeError):
            c.decimals = 6  # type: ignore[misc]
