"""Reserve unwinder — unstake from the gauge, then withdraw one coin from the pool."""
from __future__ import annotations

import logging

from ..errors import LoanGuardError
from ..interfaces.protocol_adapter import ReserveProtocol
from ..models import (
    ExecutionOutcome,
    OutcomeStatus,
    TransactionResult,
    WithdrawMode,
)

logger = logging.getLogger(__name__)


class ReserveUnwinder:
    """Two non-atomic steps; a failure between them is reported, never hidden.

    1. ``unstake`` the requested units from the gauge and wait for the receipt;
    2. quote the whole unstaked LP balance and ``remove_liquidity_one_coin``.

    If step 1 fails nothing has moved and the outcome is ``REJECTED``. If step
    2 fails after step 1 confirmed, the LP tokens sit unstaked in the wallet
    and the outcome is ``PARTIALLY_UNWOUND`` so the next run can resume with
    ``resume_withdrawal``.
    """

    def __init__(self, reserve: ReserveProtocol, owner: str, withdraw_coin: int) -> None:
        self._reserve = reserve
        self._owner = owner
        self._withdraw_coin = withdraw_coin

    async def unwind(self, units: int, withdraw_mode: WithdrawMode) -> ExecutionOutcome:
        if units <= 0:
            return ExecutionOutcome(
                status=OutcomeStatus.REJECTED, error=f"Nothing to unwind ({units} units)"
            )

        logger.info("Unstaking %d units from gauge (%s)", units, withdraw_mode.value)
        unstake_tx = await self._reserve.unstake(units)
        if not unstake_tx.ok:
            logger.error("Unstake failed: %s", unstake_tx.error)
            return ExecutionOutcome(
                status=OutcomeStatus.REJECTED,
                transactions=(unstake_tx,),
                error=f"Unstake failed: {unstake_tx.error}",
            )

        return await self._withdraw(withdraw_mode, prior=(unstake_tx,), unstaked=units)

    async def resume_withdrawal(self, withdraw_mode: WithdrawMode) -> ExecutionOutcome:
        """Run only the pool withdrawal, for LP tokens a previous run left unstaked."""
        logger.info("Resuming withdrawal of unstaked LP tokens (%s)", withdraw_mode.value)
        return await self._withdraw(withdraw_mode, prior=(), unstaked=0)

    async def _withdraw(
        self,
        withdraw_mode: WithdrawMode,
        prior: tuple[TransactionResult, ...],
        unstaked: int,
    ) -> ExecutionOutcome:
        # Only reached once LP tokens are out of the gauge: every failure
        # from here on leaves them unstaked.
        try:
            amount = await self._reserve.get_unstaked_balance(self._owner)
            if amount <= 0 and not prior:
                logger.info("No unstaked LP balance left; nothing to resume")
                return ExecutionOutcome(status=OutcomeStatus.COMPLETED)
            if amount <= 0:
                return self._partial(prior, unstaked, "No unstaked LP balance to withdraw")
            min_amount = await self._reserve.quote_withdraw_one_coin(
                amount, self._withdraw_coin
            )
        except LoanGuardError as e:
            return self._partial(prior, unstaked, f"Withdrawal quote failed: {e}")

        withdraw_tx = await self._reserve.remove_liquidity_one_coin(
            amount, self._withdraw_coin, min_amount, withdraw_mode.use_underlying
        )
        transactions = prior + (withdraw_tx,)
        if not withdraw_tx.ok:
            return self._partial(
                transactions, max(unstaked, amount), f"Withdrawal failed: {withdraw_tx.error}"
            )

        logger.info("Withdrew %d LP tokens as coin %d", amount, self._withdraw_coin)
        return ExecutionOutcome(
            status=OutcomeStatus.COMPLETED,
            amount=amount,
            transactions=transactions,
        )

    @staticmethod
    def _partial(
        transactions: tuple[TransactionResult, ...], unstaked: int, error: str
    ) -> ExecutionOutcome:
        logger.error("Reserve left unstaked but not withdrawn: %s", error)
        return ExecutionOutcome(
            status=OutcomeStatus.PARTIALLY_UNWOUND,
            amount=unstaked,
            transactions=transactions,
            error=error,
        )
