"""Token protocols — fungible asset and engine-controlled stable unit."""
from typing import Protocol


class FungibleToken(Protocol):
    """Standard fungible asset used as collateral or as the stable unit."""

    @property
    def symbol(self) -> str: ...

    def balance_of(self, account: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool: ...

    def transfer_from(
        self, spender: str, sender: str, recipient: str, amount: int
    ) -> bool: ...


class StableToken(FungibleToken, Protocol):
    """Stable unit whose supply only the engine may change."""

    def mint(self, caller: str, to: str, amount: int) -> bool: ...

    def burn(self, caller: str, amount: int) -> None: ...
