"""Pyth Network price source for refreshing a :class:`PriceTable`."""
import asyncio
import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..fixed_point import PRECISION

logger = logging.getLogger(__name__)


def to_fixed_point(price_raw: int, expo: int) -> int:
    """Scale a Pyth ``price * 10^expo`` to PRECISION, rounding down."""
    if expo >= 0:
        return price_raw * PRECISION * 10**expo
    return price_raw * PRECISION // 10 ** (-expo)


class PythOracle:
    """Fetch fixed-point prices from the Pyth Hermes API."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, int]:
        """Fetch current prices keyed by symbol.

        Args:
            symbols: Optional list of symbols to fetch. If None, fetches all
                     configured feeds.

        Failed requests are logged and yield whatever prices were parsed.
        """
        prices: dict[str, int] = {}

        feeds = self.price_feeds
        if symbols is not None:
            feeds = {k: v for k, v in self.price_feeds.items() if k in symbols}

        feed_ids = sorted(set(feeds.values()))
        if not feed_ids:
            return prices

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
                        return prices

                    data = await response.json()
                    parsed = data.get("parsed", [])

                    id_to_symbols: dict[str, list[str]] = {}
                    for symbol, feed_id in feeds.items():
                        id_to_symbols.setdefault(feed_id, []).append(symbol)

                    for item in parsed:
                        feed_id = item.get("id")
                        price_data = item.get("price", {})
                        price = to_fixed_point(
                            int(price_data.get("price", 0)), int(price_data.get("expo", 0))
                        )
                        if price <= 0:
                            logger.warning("Ignoring non-positive Pyth price for feed %s", feed_id)
                            continue
                        for symbol in id_to_symbols.get(feed_id, []):
                            prices[symbol] = price

                    logger.info("Fetched %d prices from Pyth Network", len(prices))
                    for symbol, price in sorted(prices.items()):
                        logger.debug("  %s: %d", symbol, price)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Error fetching prices from Pyth: %s", e)

        return prices
