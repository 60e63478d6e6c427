"""Scripted scenarios — run a YAML list of user actions against an engine."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..bootstrap import EngineContext
from ..errors import EngineError
from ..oracles import StaticOracle
from ..tokens import InMemoryToken
from ..units import to_base_units
from ..valuation import USD_DECIMALS
from .reporter import build_account_report

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepResult:
    index: int
    op: str
    ok: bool
    error_kind: str = ""
    message: str = ""


def load_scenario(path: str | Path) -> list[dict[str, Any]]:
    """Read a scenario file: a ``steps`` list of single-key mappings."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {path}")
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    steps = raw.get("steps", [])
    for i, step in enumerate(steps):
        if not isinstance(step, dict) or len(step) != 1:
            raise ValueError(f"Step {i} must be a mapping with exactly one operation")
    return steps


class ScenarioRunner:
    """Execute scenario steps, approving token pulls the way a wallet would."""

    def __init__(self, ctx: EngineContext, echo: Callable[[str], object] = print) -> None:
        self._ctx = ctx
        self._engine = ctx.engine
        self._echo = echo
        self._handlers = {
            "fund": self._fund,
            "set_price": self._set_price,
            "deposit": self._deposit,
            "redeem": self._redeem,
            "mint": self._mint,
            "burn": self._burn,
            "deposit_and_mint": self._deposit_and_mint,
            "redeem_for_burn": self._redeem_for_burn,
            "liquidate": self._liquidate,
            "report": self._report,
        }

    # ------------------------------------------------------------------
    # Amount and approval helpers
    # ------------------------------------------------------------------

    def _qty(self, asset: str, amount: Any) -> int:
        return to_base_units(str(amount), self._collateral_token(asset).decimals)

    @staticmethod
    def _usd(amount: Any) -> int:
        return to_base_units(str(amount), USD_DECIMALS)

    @contextmanager
    def _approval(self, token: InMemoryToken, user: str, amount: int) -> Iterator[None]:
        """Approve exactly ``amount`` for one engine call; nothing stays approved after it."""
        token.approve(user, self._engine.address, amount)
        try:
            yield
        finally:
            token.approve(user, self._engine.address, 0)

    def _collateral_token(self, asset: str) -> InMemoryToken:
        token = self._ctx.tokens.get(asset)
        if token is None:
            raise ValueError(f"Unknown asset '{asset}' in scenario")
        return token

    # ------------------------------------------------------------------
    # Step handlers
    # ------------------------------------------------------------------

    def _fund(self, args: dict[str, Any]) -> None:
        asset = args["asset"]
        self._collateral_token(asset).credit(args["user"], self._qty(asset, args["amount"]))

    def _set_price(self, args: dict[str, Any]) -> None:
        oracle = self._ctx.oracle
        if not isinstance(oracle, StaticOracle):
            raise ValueError("set_price requires the static price oracle")
        oracle.set_price(args["asset"], str(args["price"]))

    def _deposit(self, args: dict[str, Any]) -> None:
        user, asset = args["user"], args["asset"]
        qty = self._qty(asset, args["amount"])
        with self._approval(self._collateral_token(asset), user, qty):
            self._engine.deposit(user, asset, qty)

    def _redeem(self, args: dict[str, Any]) -> None:
        asset = args["asset"]
        self._engine.redeem(args["user"], asset, self._qty(asset, args["amount"]))

    def _mint(self, args: dict[str, Any]) -> None:
        self._engine.mint(args["user"], self._usd(args["amount"]))

    def _burn(self, args: dict[str, Any]) -> None:
        user, amount = args["user"], self._usd(args["amount"])
        with self._approval(self._ctx.stable, user, amount):
            self._engine.burn(user, amount)

    def _deposit_and_mint(self, args: dict[str, Any]) -> None:
        user, asset = args["user"], args["asset"]
        qty = self._qty(asset, args["collateral"])
        mint_amount = self._usd(args["mint"])
        with self._approval(self._collateral_token(asset), user, qty):
            self._engine.deposit_and_mint(user, asset, qty, mint_amount)

    def _redeem_for_burn(self, args: dict[str, Any]) -> None:
        user, asset = args["user"], args["asset"]
        qty = self._qty(asset, args["collateral"])
        amount = self._usd(args["burn"])
        with self._approval(self._ctx.stable, user, amount):
            self._engine.redeem_for_burn(user, asset, qty, amount)

    def _liquidate(self, args: dict[str, Any]) -> None:
        liquidator, amount = args["liquidator"], self._usd(args["debt"])
        with self._approval(self._ctx.stable, liquidator, amount):
            result = self._engine.liquidate(liquidator, args["user"], args["asset"], amount)
        logger.info(
            "Liquidation seized %d %s (bonus %d)",
            result.collateral_seized, result.asset, result.bonus,
        )

    def _report(self, args: dict[str, Any]) -> None:
        self._echo(build_account_report(self._engine, args["user"]))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, steps: list[dict[str, Any]], strict: bool = False) -> list[StepResult]:
        """Run every step; rejected or malformed steps are recorded, not fatal, unless ``strict``.

        An unknown operation name always raises ``ValueError``.
        """
        results: list[StepResult] = []
        for index, step in enumerate(steps):
            op, args = next(iter(step.items()))
            handler = self._handlers.get(op)
            if handler is None:
                raise ValueError(f"Unknown scenario operation '{op}' at step {index}")

            try:
                handler(args or {})
            except EngineError as e:
                logger.warning("Step %d (%s) rejected [%s]: %s", index, op, e.kind.value, e)
                results.append(
                    StepResult(index, op, False, error_kind=type(e).__name__, message=str(e))
                )
                if strict:
                    raise
                continue
            except (KeyError, TypeError, ValueError) as e:
                message = f"missing field {e}" if isinstance(e, KeyError) else str(e)
                logger.warning("Step %d (%s) is invalid: %s", index, op, message)
                results.append(
                    StepResult(index, op, False, error_kind=type(e).__name__, message=message)
                )
                if strict:
                    raise
                continue

            logger.debug("Step %d (%s) ok", index, op)
            results.append(StepResult(index, op, True))
        return results
