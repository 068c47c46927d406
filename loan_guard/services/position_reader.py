"""Position reader — one consistent snapshot of the debt and reserve positions."""
from __future__ import annotations

import logging

from ..errors import LoanGuardError, ReadFailure
from ..interfaces.protocol_adapter import LendingProtocol, ReserveProtocol
from ..models import ReservePosition, SolvencyMetrics, format_units

logger = logging.getLogger(__name__)


class PositionReader:
    """Read solvency metrics and reserve balances; never mutates state."""

    def __init__(self, lending: LendingProtocol, reserve: ReserveProtocol) -> None:
        self._lending = lending
        self._reserve = reserve

    async def read_solvency_metrics(self, owner: str) -> SolvencyMetrics:
        try:
            return await self._lending.get_solvency_metrics(owner)
        except LoanGuardError:
            raise
        except Exception as e:
            raise ReadFailure(f"Could not read solvency metrics for {owner}: {e}") from e

    async def read_reserve_position(self, owner: str, price: int) -> ReservePosition:
        """Value the staked reserve at ``price``.

        The caller passes the same price it used for everything else in the
        cycle; this method never fetches its own.
        """
        if price <= 0:
            raise ReadFailure(f"Refusing to value reserve at price {price}")

        try:
            staked = await self._reserve.get_staked_balance(owner)
            unstaked = await self._reserve.get_unstaked_balance(owner)
            exchange_rate = await self._reserve.get_exchange_rate()
        except LoanGuardError:
            raise
        except Exception as e:
            raise ReadFailure(f"Could not read reserve position for {owner}: {e}") from e

        position = ReservePosition(
            staked_units=staked,
            exchange_rate=exchange_rate,
            price=price,
            unstaked_units=unstaked,
        )
        logger.info(
            "Reserve position %s — staked %s LP (unstaked %s), virtual price %s, value %s",
            owner,
            format_units(staked),
            format_units(unstaked),
            format_units(exchange_rate),
            format_units(position.value_in_base_asset),
        )
        return position
