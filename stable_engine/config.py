"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationMismatch

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RiskConfig:
    liquidation_threshold: int = 50
    liquidation_bonus: int = 10
    liquidation_precision: int = 100
    min_health_factor: Decimal = Decimal("1.0")
    max_price_age: float | None = None


@dataclass(frozen=True)
class CollateralConfig:
    symbol: str = ""
    decimals: int = 18
    feed: str = ""


@dataclass(frozen=True)
class StableConfig:
    symbol: str = "USD"
    decimals: int = 18


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "static"
    pyth: PythConfig = field(default_factory=PythConfig)
    static_prices: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AppConfig:
    risk: RiskConfig = field(default_factory=RiskConfig)
    collateral: tuple[CollateralConfig, ...] = ()
    stable: StableConfig = field(default_factory=StableConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)


SUPPORTED_PROVIDERS = ("static", "pyth")

# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _parse_decimal(value: Any, name: str) -> Decimal:
    """Parse a finite decimal from YAML (str, int or float)."""
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    if not parsed.is_finite():
        raise ValueError(f"{name} must be a finite number, got {value!r}")
    return parsed


def _build_risk(raw: dict[str, Any]) -> RiskConfig:
    max_age = raw.get("max_price_age")
    return RiskConfig(
        liquidation_threshold=int(raw.get("liquidation_threshold", 50)),
        liquidation_bonus=int(raw.get("liquidation_bonus", 10)),
        liquidation_precision=int(raw.get("liquidation_precision", 100)),
        min_health_factor=_parse_decimal(raw.get("min_health_factor", "1.0"), "min_health_factor"),
        max_price_age=float(max_age) if max_age not in (None, "") else None,
    )


def _build_collateral(raw: list[dict[str, Any]]) -> tuple[CollateralConfig, ...]:
    collateral: list[CollateralConfig] = []
    for c in raw:
        collateral.append(
            CollateralConfig(
                symbol=str(c.get("symbol", "")),
                decimals=int(c.get("decimals", 18)),
                feed=str(c.get("feed", "")),
            )
        )
    return tuple(collateral)


def _build_stable(raw: dict[str, Any]) -> StableConfig:
    return StableConfig(
        symbol=str(raw.get("symbol", "USD")),
        decimals=int(raw.get("decimals", 18)),
    )


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "static"),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {})),
        ),
        static_prices={k: str(v) for k, v in raw.get("static_prices", {}).items()},
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` next to the
            ``stable_engine`` package directory.
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        risk=_build_risk(raw.get("risk", {})),
        collateral=_build_collateral(raw.get("collateral", [])),
        stable=_build_stable(raw.get("stable", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
    )

    validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.collateral:
        raise ValueError("At least one collateral asset must be configured")

    risk = cfg.risk
    if risk.liquidation_precision <= 0:
        raise ValueError("liquidation_precision must be positive")
    if not 0 < risk.liquidation_threshold <= risk.liquidation_precision:
        raise ValueError(
            "liquidation_threshold must be in (0, liquidation_precision]"
        )
    if risk.liquidation_bonus < 0:
        raise ValueError("liquidation_bonus must be non-negative")
    min_hf = _parse_decimal(risk.min_health_factor, "min_health_factor")
    if min_hf < 1:
        raise ValueError("min_health_factor must be at least 1.0")
    if min_hf.as_tuple().exponent < -18:
        raise ValueError("min_health_factor has more than 18 decimal places")
    if risk.max_price_age is not None and risk.max_price_age <= 0:
        raise ValueError("max_price_age must be positive")
    if cfg.stable.decimals != 18:
        raise ValueError("Stable unit must use 18 decimals to match USD valuations")

    symbols = [c.symbol for c in cfg.collateral]
    for c in cfg.collateral:
        if not c.symbol:
            raise ValueError("Collateral entry has no symbol")
    if len(set(symbols)) != len(symbols):
        raise ConfigurationMismatch(f"Duplicate collateral symbols: {symbols}")

    oracle = cfg.price_oracle
    if oracle.provider not in SUPPORTED_PROVIDERS:
        raise ValueError(f"Unknown price oracle provider '{oracle.provider}'")

    for asset in oracle.static_prices:
        if asset not in symbols:
            raise ValueError(f"Static price given for unknown collateral '{asset}'")

    if oracle.provider == "pyth":
        missing = [c.symbol for c in cfg.collateral if not c.feed]
        if missing:
            raise ConfigurationMismatch(
                f"{len(symbols)} collateral assets but feeds missing for {missing}"
            )
