"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from stable_engine.config import (
    AppConfig,
    CollateralConfig,
    PriceOracleConfig,
    RiskConfig,
    StableConfig,
)
from stable_engine.models import CollateralAsset
from stable_engine.oracles import StaticOracle
from stable_engine.services.engine import SolvencyEngine
from stable_engine.tokens import InMemoryStableToken, InMemoryToken

ETHER = 10**18
NOW = 1_700_000_000.0

ENGINE = "engine"
USER = "alice"
LIQUIDATOR = "bob"

COLLATERAL_AMOUNT = 10 * ETHER
AMOUNT_TO_MINT = 100 * ETHER


# ---------------------------------------------------------------------------
# Collaborator fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> Callable[[], float]:
    return lambda: NOW


@pytest.fixture()
def oracle(clock: Callable[[], float]) -> StaticOracle:
    return StaticOracle({"WETH": "2000", "WBTC": "1000"}, clock=clock)


@pytest.fixture()
def weth() -> InMemoryToken:
    return InMemoryToken("WETH", 18)


@pytest.fixture()
def wbtc() -> InMemoryToken:
    return InMemoryToken("WBTC", 8)


@pytest.fixture()
def stable() -> InMemoryStableToken:
    return InMemoryStableToken("USD", minter=ENGINE)


@pytest.fixture()
def engine(
    weth: InMemoryToken,
    wbtc: InMemoryToken,
    stable: InMemoryStableToken,
    oracle: StaticOracle,
    clock: Callable[[], float],
) -> SolvencyEngine:
    return SolvencyEngine(
        [
            CollateralAsset(symbol="WETH", token=weth, decimals=18),
            CollateralAsset(symbol="WBTC", token=wbtc, decimals=8),
        ],
        [oracle, oracle],
        stable,
        address=ENGINE,
        clock=clock,
    )


@pytest.fixture()
def fund() -> Callable[[InMemoryToken, str, int], None]:
    """Credit ``amount`` to ``user`` and approve the engine to pull it."""

    def _fund(token: InMemoryToken, user: str, amount: int) -> None:
        token.credit(user, amount)
        token.approve(user, ENGINE, token.allowance(user, ENGINE) + amount)

    return _fund


@pytest.fixture()
def deposited(
    engine: SolvencyEngine, weth: InMemoryToken, fund: Callable
) -> SolvencyEngine:
    fund(weth, USER, COLLATERAL_AMOUNT)
    engine.deposit(USER, "WETH", COLLATERAL_AMOUNT)
    return engine


@pytest.fixture()
def minted(deposited: SolvencyEngine) -> SolvencyEngine:
    deposited.mint(USER, AMOUNT_TO_MINT)
    return deposited


@pytest.fixture()
def liquidatable(minted: SolvencyEngine, oracle: StaticOracle) -> SolvencyEngine:
    """USER's WETH crashes to $18: collateral $180, debt $100, HF 0.9."""
    oracle.set_price("WETH", "18")
    return minted


@pytest.fixture()
def funded_liquidator(
    liquidatable: SolvencyEngine,
    weth: InMemoryToken,
    stable: InMemoryStableToken,
    fund: Callable,
) -> SolvencyEngine:
    """LIQUIDATOR holds AMOUNT_TO_MINT stable units backed by 20 WETH."""
    fund(weth, LIQUIDATOR, 20 * ETHER)
    liquidatable.deposit_and_mint(LIQUIDATOR, "WETH", 20 * ETHER, AMOUNT_TO_MINT)
    stable.approve(LIQUIDATOR, ENGINE, AMOUNT_TO_MINT)
    return liquidatable


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_app_config() -> AppConfig:
    return AppConfig(
        risk=RiskConfig(),
        collateral=(
            CollateralConfig(symbol="WETH", decimals=18, feed="aaa"),
            CollateralConfig(symbol="WBTC", decimals=8, feed="bbb"),
        ),
        stable=StableConfig(symbol="USD", decimals=18),
        price_oracle=PriceOracleConfig(
            provider="static", static_prices={"WETH": "2000", "WBTC": "1000"}
        ),
    )


SAMPLE_YAML = textwrap.dedent("""\
    risk:
      liquidation_threshold: 50
      liquidation_bonus: 10
      liquidation_precision: 100
      min_health_factor: "1.0"
    collateral:
      - symbol: WETH
        decimals: 18
        feed: "aaa"
      - symbol: WBTC
        decimals: 8
        feed: "bbb"
    stable:
      symbol: USD
      decimals: 18
    price_oracle:
      provider: static
      pyth:
        hermes_url: "https://hermes.example.com"
      static_prices: {WETH: "2000", WBTC: "1000"}
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
