"""Engine error taxonomy — every failure is a typed, all-or-nothing abort."""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INPUT_VALIDATION = "input_validation"
    INSUFFICIENT_RESOURCES = "insufficient_resources"
    INVARIANT_VIOLATION = "invariant_violation"
    COLLABORATOR_FAILURE = "collaborator_failure"


class EngineError(Exception):
    """Base class for all engine failures."""

    kind: ErrorKind = ErrorKind.INPUT_VALIDATION


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class ZeroAmount(EngineError):
    kind = ErrorKind.INPUT_VALIDATION

    def __init__(self, field: str = "amount") -> None:
        super().__init__(f"{field} must be greater than zero")
        self.field = field


class UnsupportedAsset(EngineError):
    kind = ErrorKind.INPUT_VALIDATION

    def __init__(self, asset: str) -> None:
        super().__init__(f"Asset '{asset}' is not an allowed collateral")
        self.asset = asset


class ConfigurationMismatch(EngineError):
    kind = ErrorKind.INPUT_VALIDATION


# ---------------------------------------------------------------------------
# Insufficient resources
# ---------------------------------------------------------------------------


class InsufficientBalance(EngineError):
    """Raised by the ledger when a decrease exceeds the recorded balance."""

    kind = ErrorKind.INSUFFICIENT_RESOURCES

    def __init__(self, user: str, asset: str, requested: int, available: int) -> None:
        super().__init__(
            f"Cannot remove {requested} {asset} for {user}: balance is {available}"
        )
        self.user = user
        self.asset = asset
        self.requested = requested
        self.available = available


class InsufficientCollateral(EngineError):
    kind = ErrorKind.INSUFFICIENT_RESOURCES

    def __init__(self, user: str, asset: str, requested: int, available: int) -> None:
        super().__init__(
            f"{user} has {available} {asset} deposited, {requested} required"
        )
        self.user = user
        self.asset = asset
        self.requested = requested
        self.available = available


class BurnExceedsDebt(EngineError):
    kind = ErrorKind.INSUFFICIENT_RESOURCES

    def __init__(self, user: str, amount: int, debt: int) -> None:
        super().__init__(f"Cannot burn {amount} for {user}: debt is {debt}")
        self.user = user
        self.amount = amount
        self.debt = debt


# ---------------------------------------------------------------------------
# Invariant violations
# ---------------------------------------------------------------------------


class HealthFactorBroken(EngineError):
    kind = ErrorKind.INVARIANT_VIOLATION

    def __init__(self, user: str, health_factor: int | float) -> None:
        super().__init__(f"Health factor of {user} would drop to {health_factor}")
        self.user = user
        self.health_factor = health_factor


class HealthFactorOk(EngineError):
    kind = ErrorKind.INVARIANT_VIOLATION

    def __init__(self, user: str, health_factor: int | float) -> None:
        super().__init__(
            f"{user} is not liquidatable: health factor is {health_factor}"
        )
        self.user = user
        self.health_factor = health_factor


class HealthFactorNotImproved(EngineError):
    kind = ErrorKind.INVARIANT_VIOLATION

    def __init__(self, user: str, before: int | float, after: int | float) -> None:
        super().__init__(
            f"Liquidation of {user} did not improve health factor ({before} -> {after})"
        )
        self.user = user
        self.before = before
        self.after = after


class ReentrantCall(EngineError):
    kind = ErrorKind.INVARIANT_VIOLATION

    def __init__(self, operation: str) -> None:
        super().__init__(f"Re-entrant call to '{operation}' rejected")
        self.operation = operation


# ---------------------------------------------------------------------------
# Collaborator failures
# ---------------------------------------------------------------------------


class TransferFailed(EngineError):
    kind = ErrorKind.COLLABORATOR_FAILURE

    def __init__(self, token: str, sender: str, recipient: str, amount: int) -> None:
        super().__init__(f"Transfer of {amount} {token} from {sender} to {recipient} failed")
        self.token = token
        self.sender = sender
        self.recipient = recipient
        self.amount = amount


class InvalidPrice(EngineError):
    kind = ErrorKind.COLLABORATOR_FAILURE


class StalePrice(EngineError):
    kind = ErrorKind.COLLABORATOR_FAILURE

    def __init__(self, asset: str, age: float, max_age: float) -> None:
        super().__init__(
            f"Price for {asset} is {age:.0f}s old (max allowed {max_age:.0f}s)"
        )
        self.asset = asset
        self.age = age
        self.max_age = max_age
