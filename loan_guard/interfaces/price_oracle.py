"""Price source protocol — reference price of the base asset."""
from typing import Protocol


class PriceSource(Protocol):
    """Fetch the base asset's fiat price as an 18-decimal integer.

    Raises ``PriceUnavailable`` instead of returning a placeholder value.
    """

    async def fetch_price(self) -> int: ...
