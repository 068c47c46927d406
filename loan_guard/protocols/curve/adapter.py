"""Curve stable pool adapter — gauge staking and single-coin withdrawals."""
from __future__ import annotations

import logging

from ...chains.evm.abis import ERC20_ABI, GAUGE_ABI, STABLE_POOL_ABI
from ...config import ReserveConfig
from ...interfaces.chain import ChainClient
from ...models import TransactionResult

logger = logging.getLogger(__name__)


class CurveReserveAdapter:
    """Gauge-staked LP position in a Curve stable pool."""

    def __init__(self, chain_client: ChainClient, config: ReserveConfig) -> None:
        self._client = chain_client
        self._gauge = config.gauge
        self._pool = config.pool
        self._token = config.token
        self._unstake_gas_limit = config.unstake_gas_limit
        self._withdraw_gas_limit = config.withdraw_gas_limit

    @property
    def protocol_name(self) -> str:
        return "curve"

    async def get_staked_balance(self, owner: str) -> int:
        return int(await self._client.call(self._gauge, GAUGE_ABI, "balanceOf", owner))

    async def get_unstaked_balance(self, owner: str) -> int:
        """LP tokens held in the wallet rather than the gauge."""
        return int(await self._client.call(self._token, ERC20_ABI, "balanceOf", owner))

    async def get_exchange_rate(self) -> int:
        return int(await self._client.call(self._pool, STABLE_POOL_ABI, "get_virtual_price"))

    async def quote_withdraw_one_coin(self, amount: int, coin: int) -> int:
        return int(
            await self._client.call(
                self._pool, STABLE_POOL_ABI, "calc_withdraw_one_coin", amount, coin
            )
        )

    async def unstake(self, amount: int) -> TransactionResult:
        # Gas estimation under-shoots on this path and runs out of gas.
        return await self._client.transact(
            self._gauge, GAUGE_ABI, "withdraw", amount,
            gas_limit=self._unstake_gas_limit,
        )

    async def remove_liquidity_one_coin(
        self, amount: int, coin: int, min_amount: int, use_underlying: bool
    ) -> TransactionResult:
        logger.info(
            "Removing %d LP for coin %d (min out %d, underlying=%s)",
            amount, coin, min_amount, use_underlying,
        )
        return await self._client.transact(
            self._pool, STABLE_POOL_ABI, "remove_liquidity_one_coin",
            amount, coin, min_amount, use_underlying,
            gas_limit=self._withdraw_gas_limit,
        )
