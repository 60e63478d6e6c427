"""Collateral ledger — per-user, per-asset deposited balances."""
from __future__ import annotations

import logging

from .errors import InsufficientBalance

logger = logging.getLogger(__name__)

LedgerSnapshot = dict[str, dict[str, int]]


class CollateralLedger:
    """Pure bookkeeping: no allow-list or solvency rules live here."""

    def __init__(self) -> None:
        self._balances: dict[str, dict[str, int]] = {}

    def deposited_balance(self, user: str, asset: str) -> int:
        return self._balances.get(user, {}).get(asset, 0)

    def assets_of(self, user: str) -> dict[str, int]:
        """Non-zero balances of ``user`` keyed by asset."""
        return {a: q for a, q in self._balances.get(user, {}).items() if q > 0}

    def total_deposited(self, asset: str) -> int:
        return sum(balances.get(asset, 0) for balances in self._balances.values())

    def increase(self, user: str, asset: str, qty: int) -> None:
        if qty < 0:
            raise ValueError("qty must be non-negative")
        account = self._balances.setdefault(user, {})
        account[asset] = account.get(asset, 0) + qty
        logger.debug("ledger +%d %s for %s", qty, asset, user)

    def decrease(self, user: str, asset: str, qty: int) -> None:
        if qty < 0:
            raise ValueError("qty must be non-negative")
        available = self.deposited_balance(user, asset)
        if qty > available:
            raise InsufficientBalance(user, asset, qty, available)
        self._balances[user][asset] = available - qty
        logger.debug("ledger -%d %s for %s", qty, asset, user)

    # ------------------------------------------------------------------
    # Rollback support
    # ------------------------------------------------------------------

    def snapshot(self) -> LedgerSnapshot:
        return {user: dict(balances) for user, balances in self._balances.items()}

    def restore(self, snapshot: LedgerSnapshot) -> None:
        self._balances = {user: dict(balances) for user, balances in snapshot.items()}
