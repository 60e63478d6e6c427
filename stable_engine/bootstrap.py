"""Wire tokens, oracle and engine from an AppConfig."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import AppConfig, PythConfig, validate
from .models import CollateralAsset
from .oracles import PythOracle, StaticOracle
from .services.engine import SolvencyEngine
from .tokens import InMemoryStableToken, InMemoryToken
from .units import to_base_units

logger = logging.getLogger(__name__)

ENGINE_ADDRESS = "engine"


@dataclass
class EngineContext:
    """An engine together with the collaborators it was built with."""

    engine: SolvencyEngine
    oracle: StaticOracle | PythOracle
    stable: InMemoryStableToken
    tokens: dict[str, InMemoryToken]


def build_oracle(config: AppConfig) -> StaticOracle | PythOracle:
    oracle_cfg = config.price_oracle
    if oracle_cfg.provider == "pyth":
        feeds = dict(oracle_cfg.pyth.feeds)
        feeds.update({c.symbol: c.feed for c in config.collateral if c.feed})
        return PythOracle(PythConfig(hermes_url=oracle_cfg.pyth.hermes_url, feeds=feeds))
    return StaticOracle(oracle_cfg.static_prices)


def build_context(config: AppConfig) -> EngineContext:
    validate(config)
    oracle = build_oracle(config)
    stable = InMemoryStableToken(
        config.stable.symbol, minter=ENGINE_ADDRESS, decimals=config.stable.decimals
    )

    tokens: dict[str, InMemoryToken] = {}
    assets: list[CollateralAsset] = []
    for c in config.collateral:
        token = InMemoryToken(c.symbol, c.decimals)
        tokens[c.symbol] = token
        assets.append(
            CollateralAsset(symbol=c.symbol, token=token, decimals=c.decimals, feed=c.feed)
        )

    risk = config.risk
    engine = SolvencyEngine(
        assets,
        [oracle] * len(assets),
        stable,
        address=ENGINE_ADDRESS,
        liquidation_threshold=risk.liquidation_threshold,
        liquidation_bonus=risk.liquidation_bonus,
        liquidation_precision=risk.liquidation_precision,
        min_health_factor=to_base_units(risk.min_health_factor, 18),
        max_price_age=risk.max_price_age,
    )
    logger.debug("Built engine with %s oracle", config.price_oracle.provider)
    return EngineContext(engine=engine, oracle=oracle, stable=stable, tokens=tokens)
