"""In-process oracle with settable prices."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from decimal import Decimal

from ..errors import InvalidPrice
from ..models import PriceQuote
from ..units import to_base_units

logger = logging.getLogger(__name__)

DEFAULT_FEED_DECIMALS = 8


class StaticOracle:
    """Serve prices set by the host; ``as_of`` is stamped when a price is set."""

    def __init__(
        self,
        prices: dict[str, str | int | Decimal] | None = None,
        decimals: int = DEFAULT_FEED_DECIMALS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.decimals = decimals
        self._clock = clock
        self._quotes: dict[str, PriceQuote] = {}
        for asset, price in (prices or {}).items():
            self.set_price(asset, price)

    def set_price(self, asset: str, price: str | int | Decimal) -> PriceQuote:
        """Set the USD price of one whole unit of ``asset``."""
        value = to_base_units(price, self.decimals)
        quote = PriceQuote(value=value, decimals=self.decimals, as_of=self._clock())
        self._quotes[asset] = quote
        logger.info("Price set: %s = $%s", asset, price)
        return quote

    def set_quote(self, asset: str, quote: PriceQuote) -> None:
        self._quotes[asset] = quote

    def price(self, asset: str) -> PriceQuote:
        try:
            return self._quotes[asset]
        except KeyError:
            raise InvalidPrice(f"No price available for {asset}") from None

    async def refresh(self) -> dict[str, PriceQuote]:
        return dict(self._quotes)
