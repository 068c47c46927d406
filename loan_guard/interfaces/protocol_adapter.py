"""Protocol adapters — the two external protocols the guard acts against."""
from typing import Protocol

from ..models import SolvencyMetrics, TransactionResult


class LendingProtocol(Protocol):
    """Lending/borrowing protocol holding the debt position."""

    async def get_solvency_metrics(self, owner: str) -> SolvencyMetrics: ...

    async def get_token_balance(self, asset: str, owner: str) -> int: ...

    async def repay(
        self, asset: str, amount: int, rate_mode: int, owner: str
    ) -> TransactionResult: ...


class ReserveProtocol(Protocol):
    """Stable-pool reserve with a staking gauge."""

    async def get_staked_balance(self, owner: str) -> int: ...

    async def get_unstaked_balance(self, owner: str) -> int: ...

    async def get_exchange_rate(self) -> int: ...

    async def quote_withdraw_one_coin(self, amount: int, coin: int) -> int: ...

    async def unstake(self, amount: int) -> TransactionResult: ...

    async def remove_liquidity_one_coin(
        self, amount: int, coin: int, min_amount: int, use_underlying: bool
    ) -> TransactionResult: ...
