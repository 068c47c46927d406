"""Pyth Network base-asset price source."""
import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import PriceUnavailable
from ..models import SCALE

logger = logging.getLogger(__name__)

_TARGET_DECIMALS = 18


def to_base_scale(price_raw: int, expo: int) -> int:
    """Rescale a Pyth ``price * 10**expo`` pair to 18 decimals exactly."""
    shift = _TARGET_DECIMALS + expo
    if shift >= 0:
        return price_raw * 10**shift
    return price_raw // 10**-shift


class PythOracle:
    """Fetch one configured feed from the Pyth Hermes API."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.feed_id = config.feed_id

    async def fetch_price(self) -> int:
        """Return the feed's latest price as an 18-decimal integer.

        Raises:
            PriceUnavailable: on HTTP or transport failure, or when the feed
                is absent from the response or non-positive.
        """
        url = f"{self.hermes_url}?ids[]={self.feed_id}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise PriceUnavailable(
                            f"Pyth returned HTTP {response.status}"
                        )
                    data = await response.json()
        except PriceUnavailable:
            raise
        except Exception as e:
            raise PriceUnavailable(f"Error fetching price from Pyth: {e}") from e

        parsed = data.get("parsed") if isinstance(data, dict) else None
        if not isinstance(parsed, list):
            raise PriceUnavailable(f"Malformed Pyth response: {data!r}")

        wanted = self.feed_id.lower().removeprefix("0x")
        for item in parsed:
            if not isinstance(item, dict):
                continue
            if str(item.get("id", "")).lower().removeprefix("0x") != wanted:
                continue
            price_data = item.get("price")
            if not isinstance(price_data, dict):
                raise PriceUnavailable(f"Malformed Pyth price {price_data!r}")
            try:
                price = to_base_scale(
                    int(price_data.get("price", 0)), int(price_data.get("expo", 0))
                )
            except (TypeError, ValueError) as e:
                raise PriceUnavailable(f"Malformed Pyth price {price_data!r}") from e
            if price <= 0:
                raise PriceUnavailable(f"Non-positive Pyth price {price_data!r}")

            logger.info("Fetched price from Pyth Network: $%.4f", price / SCALE)
            return price

        raise PriceUnavailable(f"Feed {self.feed_id} missing from Pyth response")
