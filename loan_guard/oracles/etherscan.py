"""Etherscan base-asset price source."""
import logging
import ssl
from decimal import Decimal, InvalidOperation

import aiohttp
import certifi
from web3 import Web3

from ..config import EtherscanConfig
from ..errors import PriceUnavailable

logger = logging.getLogger(__name__)


class EtherscanOracle:
    """Fetch the ETH/USD last price from the Etherscan stats API."""

    def __init__(self, config: EtherscanConfig) -> None:
        self.api_url = config.api_url
        self.api_key = config.api_key
        self.chain_id = config.chain_id

    async def fetch_price(self) -> int:
        """Return the USD price of ETH as an 18-decimal integer.

        One request, no retry.

        Raises:
            PriceUnavailable: on HTTP or transport failure, an error status
                from the API, or a missing/non-positive price.
        """
        params = {
            "chainid": str(self.chain_id),
            "module": "stats",
            "action": "ethprice",
            "apikey": self.api_key,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(self.api_url, params=params) as response:
                    if response.status != 200:
                        raise PriceUnavailable(
                            f"Etherscan returned HTTP {response.status}"
                        )
                    data = await response.json()
        except PriceUnavailable:
            raise
        except Exception as e:
            raise PriceUnavailable(f"Error fetching price from Etherscan: {e}") from e

        if not isinstance(data, dict):
            raise PriceUnavailable(f"Malformed Etherscan response: {data!r}")
        if str(data.get("status")) != "1" or not isinstance(data.get("result"), dict):
            raise PriceUnavailable(
                f"Etherscan error: {data.get('message')} {data.get('result')}"
            )

        raw_price = data["result"].get("ethusd")
        try:
            price = int(Web3.to_wei(Decimal(str(raw_price)), "ether"))
        except (InvalidOperation, ValueError, TypeError) as e:
            raise PriceUnavailable(f"Unparseable Etherscan price {raw_price!r}") from e

        if price <= 0:
            raise PriceUnavailable(f"Non-positive Etherscan price {raw_price!r}")

        logger.info("Fetched ETH price from Etherscan: $%s", raw_price)
        return price
