"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PriceQuote:
    """Unit price of one collateral asset in USD, as ``value / 10**decimals``."""

    value: int
    decimals: int
    as_of: float = 0.0


@dataclass(frozen=True)
class CollateralAsset:
    """Allow-listed collateral: identity, token handle, native decimals, oracle feed."""

    symbol: str
    token: Any
    decimals: int = 18
    feed: str = ""


@dataclass(frozen=True)
class AccountInfo:
    """Debt and raw collateral value of one account, both 18-decimal USD."""

    debt: int
    collateral_value_usd: int


@dataclass(frozen=True)
class LiquidationResult:
    """Outcome of a successful liquidation."""

    user: str
    liquidator: str
    asset: str
    debt_covered: int
    collateral_seized: int
    bonus: int
    health_factor_before: int | float
    health_factor_after: int | float
