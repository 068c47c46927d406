"""Chain client protocol — EVM contract reads and confirmed writes."""
from typing import Any, Protocol

from ..models import TransactionResult


class ChainClient(Protocol):
    """Abstract interface for contract calls against one EVM chain."""

    async def call(
        self, contract: str, abi: list[dict[str, Any]], function_name: str, *args: Any
    ) -> Any: ...

    async def transact(
        self,
        contract: str,
        abi: list[dict[str, Any]],
        function_name: str,
        *args: Any,
        gas_limit: int | None = None,
    ) -> TransactionResult: ...
