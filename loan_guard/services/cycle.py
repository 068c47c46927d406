"""One rebalancing cycle: price → snapshot → plan → unwind (→ repay)."""
from __future__ import annotations

import logging

from ..errors import LoanGuardError, PartiallyUnwound, TransactionRejected
from ..interfaces.price_oracle import PriceSource
from ..models import (
    CycleReport,
    ExecutionOutcome,
    FoldIntoCollateral,
    NoActionNeeded,
    OutcomeStatus,
    PendingUnwind,
    RepayDebt,
    WithdrawMode,
)
from . import rebalance_engine
from .debt_settler import DebtSettler
from .position_reader import PositionReader
from .reserve_unwinder import ReserveUnwinder

logger = logging.getLogger(__name__)


def _raise_for_outcome(outcome: ExecutionOutcome, step: str) -> None:
    if outcome.status is OutcomeStatus.PARTIALLY_UNWOUND:
        raise PartiallyUnwound(f"{step}: {outcome.error}")
    if outcome.status is OutcomeStatus.REJECTED:
        raise TransactionRejected(f"{step}: {outcome.error}")


class RebalanceCycle:
    """Runs the guard's decision and execution once; no loop, no retries.

    Any failure ends the invocation. Whatever already confirmed on-chain stays
    confirmed, and the returned ``CycleReport`` names the failure kind so the
    caller can decide what to persist for the next run.
    """

    def __init__(
        self,
        price_source: PriceSource,
        reader: PositionReader,
        unwinder: ReserveUnwinder,
        settler: DebtSettler,
        debt_asset: str,
        safety_threshold: int,
    ) -> None:
        self._price_source = price_source
        self._reader = reader
        self._unwinder = unwinder
        self._settler = settler
        self._debt_asset = debt_asset
        self._safety_threshold = safety_threshold

    async def preview(self, owner: str) -> CycleReport:
        """Read and plan without sending anything."""
        report = CycleReport(owner=owner)
        try:
            return await self._snapshot_and_plan(report)
        except LoanGuardError as e:
            return self._failed(report, e)

    async def run(self, owner: str, pending: PendingUnwind | None = None) -> CycleReport:
        report = CycleReport(owner=owner)
        try:
            if pending is not None:
                # A recovered cycle ends here; the next run plans from fresh balances.
                return await self._recover(report, pending)

            report = await self._snapshot(report)
            if report.reserve.unstaked_units > 0:
                # LP left in the wallet by an earlier run whose marker is gone.
                logger.warning(
                    "Found %d unstaked LP units with no recovery marker",
                    report.reserve.unstaked_units,
                )
                return await self._recover(
                    report,
                    PendingUnwind(
                        owner=owner,
                        withdraw_mode=WithdrawMode.AS_UNDERLYING_COIN,
                        plan_kind="repay",
                        unstaked_units=report.reserve.unstaked_units,
                    ),
                )

            report.plan = rebalance_engine.plan(
                report.metrics, report.reserve, self._safety_threshold
            )
            plan = report.plan

            if isinstance(plan, NoActionNeeded):
                logger.info("Health factor at or above target; no action")
                return report

            report.unwind = await self._unwinder.unwind(plan.amount, plan.withdraw_mode)
            _raise_for_outcome(report.unwind, f"{plan.kind} unwind")

            if isinstance(plan, RepayDebt):
                report.settlement = await self._settler.repay(self._debt_asset, owner)
                _raise_for_outcome(report.settlement, "repay")
            elif isinstance(plan, FoldIntoCollateral):
                logger.info("Folded %d reserve units into collateral", plan.amount)

        except LoanGuardError as e:
            return self._failed(report, e)

        return report

    async def _recover(self, report: CycleReport, pending: PendingUnwind) -> CycleReport:
        """Finish a withdrawal a previous run left half done, then settle if needed."""
        logger.warning(
            "Resuming %s unwind left partially done at %s",
            pending.plan_kind, pending.created_at.isoformat(),
        )
        report.recovered = await self._unwinder.resume_withdrawal(pending.withdraw_mode)
        _raise_for_outcome(report.recovered, "resume withdrawal")

        if pending.plan_kind == "repay" and report.recovered.amount > 0:
            report.settlement = await self._settler.repay(self._debt_asset, report.owner)
            _raise_for_outcome(report.settlement, "repay after resume")
        return report

    async def _snapshot(self, report: CycleReport) -> CycleReport:
        # Metrics and reserve are read against the same price value.
        report.price = await self._price_source.fetch_price()
        report.metrics = await self._reader.read_solvency_metrics(report.owner)
        report.reserve = await self._reader.read_reserve_position(report.owner, report.price)
        return report

    async def _snapshot_and_plan(self, report: CycleReport) -> CycleReport:
        report = await self._snapshot(report)
        report.plan = rebalance_engine.plan(
            report.metrics, report.reserve, self._safety_threshold
        )
        return report

    @staticmethod
    def _failed(report: CycleReport, error: LoanGuardError) -> CycleReport:
        logger.error("Cycle aborted (%s): %s", error.kind.value, error)
        report.failure = error.kind
        report.error = str(error)
        return report
