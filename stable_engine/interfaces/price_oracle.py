"""Price oracle protocol — price feed abstraction."""
from typing import Protocol

from ..models import PriceQuote


class PriceOracle(Protocol):
    """Read-only source of the current USD price of a collateral asset."""

    def price(self, asset: str) -> PriceQuote: ...
