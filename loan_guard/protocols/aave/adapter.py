"""Aave lending pool adapter — account data reads and variable-rate repay."""
from __future__ import annotations

import logging

from ...chains.evm.abis import ERC20_ABI, LENDING_POOL_ABI
from ...config import LendingConfig
from ...errors import ReadFailure
from ...interfaces.chain import ChainClient
from ...models import SolvencyMetrics, TransactionResult, format_units
from . import parser

logger = logging.getLogger(__name__)


class AaveLendingAdapter:
    """Read and repay a debt position on an Aave v2 style lending pool."""

    def __init__(self, chain_client: ChainClient, config: LendingConfig) -> None:
        self._client = chain_client
        self._pool = config.lending_pool

    @property
    def protocol_name(self) -> str:
        return "aave"

    async def get_solvency_metrics(self, owner: str) -> SolvencyMetrics:
        raw = await self._client.call(
            self._pool, LENDING_POOL_ABI, "getUserAccountData", owner
        )
        try:
            metrics = parser.parse_account_data(raw)
        except (TypeError, ValueError) as e:
            raise ReadFailure(f"Malformed account data for {owner}: {e}") from e

        logger.info(
            "Lending position %s — collateral %s, debt %s, HF %s, LT %.2f%%",
            owner,
            format_units(metrics.total_collateral_value),
            format_units(metrics.total_debt_value),
            format_units(metrics.health_factor),
            metrics.liquidation_threshold / 100,
        )
        return metrics

    async def get_token_balance(self, asset: str, owner: str) -> int:
        return int(await self._client.call(asset, ERC20_ABI, "balanceOf", owner))

    async def repay(
        self, asset: str, amount: int, rate_mode: int, owner: str
    ) -> TransactionResult:
        logger.info("Repaying %d of %s (rate mode %d) for %s", amount, asset, rate_mode, owner)
        return await self._client.transact(
            self._pool, LENDING_POOL_ABI, "repay", asset, amount, rate_mode, owner
        )
