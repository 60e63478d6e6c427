"""Solvency engine — collateral accounting, health factor, mint/burn, liquidation."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass

from .. import valuation
from ..errors import (
    BurnExceedsDebt,
    ConfigurationMismatch,
    HealthFactorBroken,
    HealthFactorNotImproved,
    HealthFactorOk,
    InsufficientCollateral,
    InvalidPrice,
    StalePrice,
    TransferFailed,
    UnsupportedAsset,
    ZeroAmount,
)
from ..interfaces.price_oracle import PriceOracle
from ..interfaces.token import FungibleToken, StableToken
from ..ledger import CollateralLedger
from ..models import AccountInfo, CollateralAsset, LiquidationResult, PriceQuote
from .guard import ReentrancyGuard

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Compensation:
    """A token movement that undoes one already-performed interaction."""

    token: str
    sender: str
    recipient: str
    amount: int
    action: Callable[[], object]


Undo = list[Compensation]


class SolvencyEngine:
    """Issue the stable unit against collateral while keeping every account solvent.

    Every mutating operation runs under one global guard and inside a
    journal: ledger and debt state are snapshotted on entry, and token
    interactions register compensating actions. Any exception restores the
    snapshot, runs the compensations in reverse, and re-raises. A
    compensation that fails surfaces as ``TransferFailed`` chained to the
    original error.

    Within an operation, every effect on engine state comes first, then the
    health-factor post-conditions, then token interactions. Outbound
    transfers to users are always the final interaction.
    """

    def __init__(
        self,
        assets: Sequence[CollateralAsset],
        oracles: Sequence[PriceOracle],
        stable_token: StableToken,
        *,
        address: str = "engine",
        liquidation_threshold: int = 50,
        liquidation_bonus: int = 10,
        liquidation_precision: int = valuation.LIQUIDATION_PRECISION,
        min_health_factor: int = valuation.PRECISION,
        max_price_age: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if len(assets) != len(oracles):
            raise ConfigurationMismatch(
                f"{len(assets)} collateral assets but {len(oracles)} price oracles"
            )
        symbols = [a.symbol for a in assets]
        if len(set(symbols)) != len(symbols):
            raise ConfigurationMismatch(f"Duplicate collateral symbols: {symbols}")

        self._address = address
        self._assets: dict[str, CollateralAsset] = {a.symbol: a for a in assets}
        self._oracles: dict[str, PriceOracle] = dict(zip(symbols, oracles))
        self._stable = stable_token

        self._liquidation_threshold = liquidation_threshold
        self._liquidation_bonus = liquidation_bonus
        self._liquidation_precision = liquidation_precision
        self._min_health_factor = min_health_factor
        self._max_price_age = max_price_age
        self._clock = clock

        self._ledger = CollateralLedger()
        self._debt: dict[str, int] = {}
        self._guard = ReentrancyGuard()

        logger.info(
            "Solvency engine ready: collateral=%s threshold=%d%% bonus=%d%%",
            ", ".join(symbols), liquidation_threshold, liquidation_bonus,
        )

    # ------------------------------------------------------------------
    # Risk parameters (fixed at construction)
    # ------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self._address

    @property
    def liquidation_threshold(self) -> int:
        return self._liquidation_threshold

    @property
    def liquidation_bonus(self) -> int:
        return self._liquidation_bonus

    @property
    def liquidation_precision(self) -> int:
        return self._liquidation_precision

    @property
    def min_health_factor(self) -> int:
        return self._min_health_factor

    @property
    def precision(self) -> int:
        return valuation.PRECISION

    @property
    def max_price_age(self) -> float | None:
        return self._max_price_age

    # ------------------------------------------------------------------
    # Atomicity
    # ------------------------------------------------------------------

    @contextmanager
    def _atomic(self, operation: str) -> Iterator[Undo]:
        with self._guard.hold(operation):
            ledger_snapshot = self._ledger.snapshot()
            debt_snapshot = dict(self._debt)
            undo: Undo = []
            try:
                yield undo
            except Exception as e:
                self._ledger.restore(ledger_snapshot)
                self._debt = debt_snapshot
                failure = self._compensate(undo)
                if failure is not None:
                    logger.error("%s rollback incomplete after %s", operation, e)
                    raise failure from e
                logger.warning("%s rolled back: %s", operation, e)
                raise

    @staticmethod
    def _compensate(undo: Undo) -> TransferFailed | None:
        """Run every compensation in reverse; return the first one that failed."""
        first_failure: TransferFailed | None = None
        for comp in reversed(undo):
            try:
                ok = comp.action()
            except Exception as e:
                logger.error("Compensation for %d %s raised: %s", comp.amount, comp.token, e)
                ok = False
            if not ok:
                failure = TransferFailed(comp.token, comp.sender, comp.recipient, comp.amount)
                logger.error("Compensation failed: %s", failure)
                if first_failure is None:
                    first_failure = failure
        return first_failure

    # ------------------------------------------------------------------
    # Token interactions
    # ------------------------------------------------------------------

    def _pull(self, token: FungibleToken, sender: str, amount: int, undo: Undo) -> None:
        """Move ``amount`` from ``sender`` into engine custody."""
        try:
            ok = token.transfer_from(self._address, sender, self._address, amount)
        except Exception as e:
            raise TransferFailed(token.symbol, sender, self._address, amount) from e
        if not ok:
            raise TransferFailed(token.symbol, sender, self._address, amount)
        undo.append(
            Compensation(
                token.symbol, self._address, sender, amount,
                lambda: token.transfer(self._address, sender, amount),
            )
        )

    def _push(self, token: FungibleToken, recipient: str, amount: int) -> None:
        """Move ``amount`` out of engine custody; always the last interaction."""
        try:
            ok = token.transfer(self._address, recipient, amount)
        except Exception as e:
            raise TransferFailed(token.symbol, self._address, recipient, amount) from e
        if not ok:
            raise TransferFailed(token.symbol, self._address, recipient, amount)

    def _issue(self, user: str, amount: int) -> None:
        try:
            ok = self._stable.mint(self._address, user, amount)
        except Exception as e:
            raise TransferFailed(self._stable.symbol, self._address, user, amount) from e
        if not ok:
            raise TransferFailed(self._stable.symbol, self._address, user, amount)

    def _destroy(self, payer: str, amount: int, undo: Undo) -> None:
        """Pull ``amount`` of the stable unit from ``payer`` and burn it."""
        self._pull(self._stable, payer, amount, undo)
        try:
            self._stable.burn(self._address, amount)
        except Exception as e:
            raise TransferFailed(self._stable.symbol, self._address, "burn", amount) from e
        undo.append(
            Compensation(
                self._stable.symbol, "mint", self._address, amount,
                lambda: self._stable.mint(self._address, self._address, amount),
            )
        )

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _require_asset(self, asset: str) -> CollateralAsset:
        try:
            return self._assets[asset]
        except KeyError:
            raise UnsupportedAsset(asset) from None

    @staticmethod
    def _require_positive(amount: int, field: str = "amount") -> None:
        if amount <= 0:
            raise ZeroAmount(field)

    def _require_healthy(self, user: str) -> None:
        if self._debt.get(user, 0) == 0:
            return
        hf = self.health_factor(user)
        if hf < self._min_health_factor:
            raise HealthFactorBroken(user, hf)

    # ------------------------------------------------------------------
    # State effects (no token interaction)
    # ------------------------------------------------------------------

    def _credit_collateral(self, user: str, asset: str, qty: int) -> CollateralAsset:
        self._require_positive(qty, "qty")
        collateral = self._require_asset(asset)
        self._ledger.increase(user, asset, qty)
        return collateral

    def _debit_collateral(self, user: str, asset: str, qty: int) -> CollateralAsset:
        self._require_positive(qty, "qty")
        collateral = self._require_asset(asset)
        available = self._ledger.deposited_balance(user, asset)
        if qty > available:
            raise InsufficientCollateral(user, asset, qty, available)
        self._ledger.decrease(user, asset, qty)
        return collateral

    def _add_debt(self, user: str, amount: int) -> None:
        self._require_positive(amount)
        self._debt[user] = self._debt.get(user, 0) + amount

    def _reduce_debt(self, user: str, amount: int) -> None:
        self._require_positive(amount)
        debt = self._debt.get(user, 0)
        if amount > debt:
            raise BurnExceedsDebt(user, amount, debt)
        self._debt[user] = debt - amount

    # ------------------------------------------------------------------
    # Public mutating operations
    # ------------------------------------------------------------------

    def deposit(self, user: str, asset: str, qty: int) -> None:
        """Lock ``qty`` of ``asset`` as collateral for ``user``."""
        with self._atomic("deposit") as undo:
            collateral = self._credit_collateral(user, asset, qty)
            self._pull(collateral.token, user, qty, undo)
        logger.info("deposit: %s locked %d %s", user, qty, asset)

    def redeem(self, user: str, asset: str, qty: int) -> None:
        """Return ``qty`` of deposited ``asset`` to ``user`` if they stay healthy."""
        with self._atomic("redeem"):
            collateral = self._debit_collateral(user, asset, qty)
            self._require_healthy(user)
            self._push(collateral.token, user, qty)
        logger.info("redeem: %s withdrew %d %s", user, qty, asset)

    def mint(self, user: str, amount: int) -> None:
        """Mint ``amount`` of the stable unit to ``user`` against their collateral."""
        with self._atomic("mint"):
            self._add_debt(user, amount)
            self._require_healthy(user)
            self._issue(user, amount)
        logger.info("mint: %s minted %d %s", user, amount, self._stable.symbol)

    def burn(self, user: str, amount: int) -> None:
        """Repay ``amount`` of ``user``'s debt with stable units pulled from ``user``."""
        with self._atomic("burn") as undo:
            self._reduce_debt(user, amount)
            self._destroy(user, amount, undo)
        logger.info("burn: %s repaid %d %s", user, amount, self._stable.symbol)

    def deposit_and_mint(
        self, user: str, asset: str, collateral_qty: int, mint_amount: int
    ) -> None:
        with self._atomic("deposit_and_mint") as undo:
            collateral = self._credit_collateral(user, asset, collateral_qty)
            self._add_debt(user, mint_amount)
            self._require_healthy(user)
            self._pull(collateral.token, user, collateral_qty, undo)
            self._issue(user, mint_amount)
        logger.info(
            "deposit_and_mint: %s locked %d %s and minted %d",
            user, collateral_qty, asset, mint_amount,
        )

    def redeem_for_burn(
        self, user: str, asset: str, collateral_qty: int, burn_amount: int
    ) -> None:
        """The health check runs against the reduced debt."""
        with self._atomic("redeem_for_burn") as undo:
            self._reduce_debt(user, burn_amount)
            collateral = self._debit_collateral(user, asset, collateral_qty)
            self._require_healthy(user)
            self._destroy(user, burn_amount, undo)
            self._push(collateral.token, user, collateral_qty)
        logger.info(
            "redeem_for_burn: %s repaid %d and withdrew %d %s",
            user, burn_amount, collateral_qty, asset,
        )

    def liquidate(
        self, liquidator: str, user: str, asset: str, debt_to_cover: int
    ) -> LiquidationResult:
        """Repay part of an unhealthy account's debt in exchange for its collateral.

        The liquidator receives collateral worth ``debt_to_cover`` plus the
        liquidation bonus. The account's health factor must strictly improve
        and the liquidator must stay healthy.
        """
        with self._atomic("liquidate") as undo:
            self._require_positive(debt_to_cover, "debt_to_cover")
            collateral = self._require_asset(asset)

            hf_before = self.health_factor(user)
            if hf_before >= self.min_health_factor:
                raise HealthFactorOk(user, hf_before)

            base_qty, bonus_qty = self.liquidation_quote(asset, debt_to_cover)
            payout = base_qty + bonus_qty
            available = self._ledger.deposited_balance(user, asset)
            if payout > available:
                raise InsufficientCollateral(user, asset, payout, available)

            debt = self._debt.get(user, 0)
            if debt_to_cover > debt:
                raise BurnExceedsDebt(user, debt_to_cover, debt)

            self._ledger.decrease(user, asset, payout)
            self._debt[user] = debt - debt_to_cover

            hf_after = self.health_factor(user)
            if hf_after <= hf_before:
                raise HealthFactorNotImproved(user, hf_before, hf_after)
            self._require_healthy(liquidator)

            self._destroy(liquidator, debt_to_cover, undo)
            self._push(collateral.token, liquidator, payout)

        logger.info(
            "liquidate: %s covered %d of %s's debt for %d %s (bonus %d), HF %s -> %s",
            liquidator, debt_to_cover, user, payout, asset, bonus_qty,
            valuation.format_health_factor(hf_before),
            valuation.format_health_factor(hf_after),
        )
        return LiquidationResult(
            user=user,
            liquidator=liquidator,
            asset=asset,
            debt_covered=debt_to_cover,
            collateral_seized=payout,
            bonus=bonus_qty,
            health_factor_before=hf_before,
            health_factor_after=hf_after,
        )

    # ------------------------------------------------------------------
    # Read-only valuation (no lock)
    # ------------------------------------------------------------------

    def _quote(self, asset: str) -> PriceQuote:
        quote = self._oracles[asset].price(asset)
        if quote.value <= 0:
            raise InvalidPrice(f"Non-positive price {quote.value} for {asset}")
        if self.max_price_age is not None:
            age = self._clock() - quote.as_of
            if age > self.max_price_age:
                raise StalePrice(asset, age, self.max_price_age)
        return quote

    def usd_value(self, asset: str, qty: int) -> int:
        """USD value (18 decimals) of ``qty`` native units of ``asset``."""
        collateral = self._require_asset(asset)
        quote = self._quote(asset)
        return valuation.usd_value(qty, quote.value, quote.decimals, collateral.decimals)

    def asset_qty_for_usd(self, asset: str, usd_amount: int) -> int:
        """Native units of ``asset`` worth ``usd_amount`` (18 decimals)."""
        collateral = self._require_asset(asset)
        quote = self._quote(asset)
        return valuation.asset_qty_for_usd(
            usd_amount, quote.value, quote.decimals, collateral.decimals
        )

    def liquidation_quote(self, asset: str, debt_to_cover: int) -> tuple[int, int]:
        """(collateral worth ``debt_to_cover``, bonus on top of it) in native units."""
        base_qty = self.asset_qty_for_usd(asset, debt_to_cover)
        bonus_qty = valuation.liquidation_bonus(
            base_qty, self.liquidation_bonus, self.liquidation_precision
        )
        return base_qty, bonus_qty

    def account_collateral_value(self, user: str) -> int:
        total = 0
        for asset, qty in self._ledger.assets_of(user).items():
            value = self.usd_value(asset, qty)
            logger.debug("  %s: %d %s = $%d (1e-18)", user, qty, asset, value)
            total += value
        return total

    def account_info(self, user: str) -> AccountInfo:
        return AccountInfo(
            debt=self._debt.get(user, 0),
            collateral_value_usd=self.account_collateral_value(user),
        )

    def calculate_health_factor(self, debt: int, collateral_value_usd: int) -> int | float:
        """Health factor for a hypothetical (debt, collateral value) pair."""
        return valuation.calc_health_factor(
            debt,
            collateral_value_usd,
            self.liquidation_threshold,
            self.liquidation_precision,
            self.precision,
        )

    def health_factor(self, user: str) -> int | float:
        debt = self._debt.get(user, 0)
        if debt == 0:
            return valuation.HEALTH_FACTOR_MAX
        return self.calculate_health_factor(debt, self.account_collateral_value(user))

    # ------------------------------------------------------------------
    # Read-only bookkeeping queries
    # ------------------------------------------------------------------

    def collateral_assets(self) -> tuple[str, ...]:
        return tuple(self._assets)

    def collateral_asset(self, asset: str) -> CollateralAsset:
        return self._require_asset(asset)

    def collateral_balance(self, user: str, asset: str) -> int:
        return self._ledger.deposited_balance(user, asset)

    def collateral_balances(self, user: str) -> dict[str, int]:
        return self._ledger.assets_of(user)

    def total_collateral(self, asset: str) -> int:
        """Sum of every account's deposit of ``asset``."""
        return self._ledger.total_deposited(asset)

    def debt_of(self, user: str) -> int:
        return self._debt.get(user, 0)

    def total_debt(self) -> int:
        return sum(self._debt.values())

    @property
    def stable_token(self) -> StableToken:
        return self._stable
