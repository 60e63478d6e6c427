"""Pyth Network price oracle service."""
import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import InvalidPrice
from ..models import PriceQuote

logger = logging.getLogger(__name__)


def parse_price_item(item: dict) -> PriceQuote:
    """Convert one Hermes ``parsed`` entry into a PriceQuote.

    Hermes reports ``price * 10^expo``; a negative ``expo`` becomes the
    quote's decimals.
    """
    price_data = item.get("price", {})
    price_raw = int(price_data.get("price", 0))
    expo = int(price_data.get("expo", 0))
    publish_time = float(price_data.get("publish_time", 0))

    if expo > 0:
        return PriceQuote(value=price_raw * 10**expo, decimals=0, as_of=publish_time)
    return PriceQuote(value=price_raw, decimals=-expo, as_of=publish_time)


class PythOracle:
    """Fetch prices from Pyth Network and serve the latest snapshot.

    Network I/O only happens in :meth:`refresh`; :meth:`price` reads the
    cached snapshot so engine operations never wait on the network.
    """

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)
        self._quotes: dict[str, PriceQuote] = {}

    def price(self, asset: str) -> PriceQuote:
        try:
            return self._quotes[asset]
        except KeyError:
            raise InvalidPrice(f"No Pyth price cached for {asset}") from None

    async def refresh(self, symbols: list[str] | None = None) -> dict[str, PriceQuote]:
        """Fetch current prices from Pyth Network into the snapshot.

        Args:
            symbols: Optional list of symbols to fetch. If None, fetches all
                     configured feeds.

        On HTTP or network errors the previous snapshot is kept.
        """
        fetched: dict[str, PriceQuote] = {}

        feeds = self.price_feeds
        if symbols is not None:
            feeds = {k: v for k, v in self.price_feeds.items() if k in symbols}

        feed_ids = list(set(feeds.values()))
        if not feed_ids:
            return fetched

        query_params = "&".join([f"ids[]={fid}" for fid in feed_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return fetched

                    data = await response.json()
                    parsed = data.get("parsed", [])

                    id_to_assets: dict[str, list[str]] = {}
                    for asset, feed_id in feeds.items():
                        id_to_assets.setdefault(feed_id.lower().removeprefix("0x"), []).append(asset)

                    for item in parsed:
                        feed_id = str(item.get("id", "")).lower().removeprefix("0x")
                        if feed_id not in id_to_assets:
                            continue
                        quote = parse_price_item(item)
                        if quote.value <= 0:
                            logger.warning("Ignoring non-positive Pyth price for feed %s", feed_id)
                            continue
                        for asset in id_to_assets[feed_id]:
                            fetched[asset] = quote

        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)
            return fetched

        self._quotes.update(fetched)
        logger.info("Fetched %d prices from Pyth Network", len(fetched))
        for asset, quote in sorted(fetched.items()):
            logger.debug("  %s: %d (1e-%d)", asset, quote.value, quote.decimals)
        return fetched
