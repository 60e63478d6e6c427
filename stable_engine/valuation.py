"""Pure valuation functions — integer fixed-point math, no I/O.

All USD amounts settle to one canonical 18-decimal scale (``USD_DECIMALS``),
whatever the native decimals of the collateral asset or of its price feed.
"""
from __future__ import annotations

PRECISION = 10**18
USD_DECIMALS = 18
LIQUIDATION_PRECISION = 100

HEALTH_FACTOR_MAX = float("inf")


def usd_value(qty: int, price: int, price_decimals: int, asset_decimals: int) -> int:
    """Value ``qty`` native units at ``price`` (scaled by ``price_decimals``).

    usd = qty * price * 10^18 / (10^price_decimals * 10^asset_decimals)
    """
    return (qty * price * 10**USD_DECIMALS) // (
        10**price_decimals * 10**asset_decimals
    )


def asset_qty_for_usd(
    usd_amount: int, price: int, price_decimals: int, asset_decimals: int
) -> int:
    """Inverse of :func:`usd_value`, rounded down to whole native units."""
    return (usd_amount * 10**price_decimals * 10**asset_decimals) // (
        price * 10**USD_DECIMALS
    )


def adjusted_collateral(
    collateral_value_usd: int,
    liquidation_threshold: int,
    liquidation_precision: int = LIQUIDATION_PRECISION,
) -> int:
    """Share of raw collateral value that counts toward borrowing capacity."""
    return collateral_value_usd * liquidation_threshold // liquidation_precision


def calc_health_factor(
    debt: int,
    collateral_value_usd: int,
    liquidation_threshold: int,
    liquidation_precision: int = LIQUIDATION_PRECISION,
    precision: int = PRECISION,
) -> int | float:
    """Calculate health factor in ``precision`` scale.

    health_factor = adjusted_collateral * precision / debt   (inf when debt == 0)
    """
    if debt <= 0:
        return HEALTH_FACTOR_MAX
    adjusted = adjusted_collateral(
        collateral_value_usd, liquidation_threshold, liquidation_precision
    )
    return adjusted * precision // debt


def liquidation_bonus(
    base_qty: int,
    bonus_pct: int,
    liquidation_precision: int = LIQUIDATION_PRECISION,
) -> int:
    """Bonus collateral awarded to a liquidator on top of ``base_qty``."""
    return base_qty * bonus_pct // liquidation_precision


def format_health_factor(health_factor: int | float, precision: int = PRECISION) -> str:
    """Render a fixed-point health factor, e.g. '1.2500' or 'inf'."""
    if health_factor == HEALTH_FACTOR_MAX:
        return "inf"
    return f"{health_factor / precision:.4f}"
