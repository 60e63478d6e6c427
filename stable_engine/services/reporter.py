"""Account report formatting."""
from __future__ import annotations

from datetime import datetime, timezone

from .. import valuation
from ..units import format_amount
from .engine import SolvencyEngine

# Accounts below this multiple of the minimum health factor get a warning.
WARNING_MULTIPLE = 1.5


def get_status(health_factor: int | float, min_health_factor: int) -> str:
    if health_factor < min_health_factor:
        return "🚨 LIQUIDATABLE"
    if health_factor < min_health_factor * WARNING_MULTIPLE:
        return "⚠️ WARNING"
    return "✅ Healthy"


def _now_str() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def build_account_report(engine: SolvencyEngine, user: str) -> str:
    """Multi-line summary of one account: collateral, debt, health factor."""
    info = engine.account_info(user)
    hf = engine.health_factor(user)
    stable = engine.stable_token

    lines = [f"📊 {user} · {get_status(hf, engine.min_health_factor)}", ""]

    balances = engine.collateral_balances(user)
    if balances:
        lines.append("Collateral:")
        for asset, qty in balances.items():
            decimals = engine.collateral_asset(asset).decimals
            usd = engine.usd_value(asset, qty)
            lines.append(
                f"  {asset}: {format_amount(qty, decimals)} — "
                f"${format_amount(usd, valuation.USD_DECIMALS, 2)}"
            )
    else:
        lines.append("Collateral: —")

    lines.append(
        f"Total collateral: ${format_amount(info.collateral_value_usd, valuation.USD_DECIMALS, 2)}"
    )
    lines.append(f"Debt: {format_amount(info.debt, valuation.USD_DECIMALS, 2)} {stable.symbol}")
    lines.append(f"Health factor: {valuation.format_health_factor(hf, engine.precision)}")
    lines.append("")
    lines.append(f"{_now_str()} UTC")
    return "\n".join(lines)
