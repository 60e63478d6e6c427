"""In-process fungible tokens used as collateral and as the stable unit."""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class Unauthorized(Exception):
    """Raised when someone other than the minter tries to change supply."""


class InMemoryToken:
    """Fungible token with balances and allowances.

    Transfers that lack balance or allowance return ``False`` instead of
    raising, the way many deployed tokens signal failure.
    """

    def __init__(self, symbol: str, decimals: int = 18) -> None:
        self._symbol = symbol
        self.decimals = decimals
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._total_supply = 0

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        self._allowances[(owner, spender)] = amount
        return True

    def credit(self, account: str, amount: int) -> None:
        """Faucet: create ``amount`` out of thin air for ``account``."""
        if amount < 0:
            raise ValueError("amount must be non-negative")
        self._balances[account] = self.balance_of(account) + amount
        self._total_supply += amount

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        if amount < 0 or self.balance_of(sender) < amount:
            logger.debug(
                "%s transfer of %d from %s rejected: balance %d",
                self._symbol, amount, sender, self.balance_of(sender),
            )
            return False
        self._move(sender, recipient, amount)
        return True

    def transfer_from(
        self, spender: str, sender: str, recipient: str, amount: int
    ) -> bool:
        allowed = self.allowance(sender, spender)
        if amount < 0 or allowed < amount or self.balance_of(sender) < amount:
            logger.debug(
                "%s transfer_from of %d (%s -> %s) rejected: allowance %d, balance %d",
                self._symbol, amount, sender, recipient, allowed,
                self.balance_of(sender),
            )
            return False
        self._allowances[(sender, spender)] = allowed - amount
        self._move(sender, recipient, amount)
        return True

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[recipient] = self.balance_of(recipient) + amount


class InMemoryStableToken(InMemoryToken):
    """Stable unit whose mint and burn are restricted to a single minter."""

    def __init__(self, symbol: str, minter: str, decimals: int = 18) -> None:
        super().__init__(symbol, decimals)
        self.minter = minter

    def _check_minter(self, caller: str) -> None:
        if caller != self.minter:
            raise Unauthorized(f"{caller} may not change {self.symbol} supply")

    def mint(self, caller: str, to: str, amount: int) -> bool:
        self._check_minter(caller)
        if amount <= 0:
            raise ValueError("mint amount must be greater than zero")
        self.credit(to, amount)
        return True

    def burn(self, caller: str, amount: int) -> None:
        self._check_minter(caller)
        balance = self.balance_of(caller)
        if amount <= 0 or amount > balance:
            raise ValueError(f"cannot burn {amount}: balance is {balance}")
        self._balances[caller] = balance - amount
        self._total_supply -= amount
