"""Debt settler — repay the full liquid balance of the debt asset."""
from __future__ import annotations

import logging

from ..errors import LoanGuardError
from ..interfaces.protocol_adapter import LendingProtocol
from ..models import ExecutionOutcome, OutcomeStatus

logger = logging.getLogger(__name__)


class DebtSettler:
    def __init__(self, lending: LendingProtocol, rate_mode: int = 2) -> None:
        self._lending = lending
        self._rate_mode = rate_mode

    async def repay(self, asset: str, owner: str) -> ExecutionOutcome:
        """Repay ``owner``'s whole wallet balance of ``asset`` and wait for the receipt."""
        try:
            balance = await self._lending.get_token_balance(asset, owner)
        except LoanGuardError as e:
            return ExecutionOutcome(
                status=OutcomeStatus.REJECTED, error=f"Balance read failed: {e}"
            )

        if balance <= 0:
            return ExecutionOutcome(
                status=OutcomeStatus.REJECTED, error=f"No {asset} balance to repay with"
            )

        repay_tx = await self._lending.repay(asset, balance, self._rate_mode, owner)
        if not repay_tx.ok:
            logger.error("Repay failed: %s", repay_tx.error)
            return ExecutionOutcome(
                status=OutcomeStatus.REJECTED,
                amount=balance,
                transactions=(repay_tx,),
                error=f"Repay failed: {repay_tx.error}",
            )

        logger.info("Repaid %d of %s", balance, asset)
        return ExecutionOutcome(
            status=OutcomeStatus.COMPLETED, amount=balance, transactions=(repay_tx,)
        )
