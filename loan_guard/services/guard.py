"""Guard orchestration — wiring, single-flight invocations, recovery, alerts."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from ..chains.evm import EvmClient
from ..config import AppConfig
from ..errors import FailureKind
from ..interfaces.notifier import Notifier
from ..models import (
    SCALE,
    CycleReport,
    NoActionNeeded,
    OutcomeStatus,
    PendingUnwind,
    WithdrawMode,
    format_units,
)
from ..notifications import EmailNotifier, TelegramNotifier
from ..oracles import build_price_source
from ..protocols.aave import AaveLendingAdapter
from ..protocols.curve import CurveReserveAdapter
from ..store import RecoveryStore
from .cycle import RebalanceCycle
from .debt_settler import DebtSettler
from .position_reader import PositionReader
from .reserve_unwinder import ReserveUnwinder

logger = logging.getLogger(__name__)


class LoanGuard:
    """Defends one wallet's health factor with its staked stable reserve."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._owner = config.wallet.address
        self._safety = config.guard.safety_health_factor

        chain_client = EvmClient(config.chain, config.wallet.private_key)
        lending = AaveLendingAdapter(chain_client, config.lending)
        reserve = CurveReserveAdapter(chain_client, config.reserve)

        self._cycle = RebalanceCycle(
            price_source=build_price_source(config.price_oracle),
            reader=PositionReader(lending, reserve),
            unwinder=ReserveUnwinder(reserve, self._owner, config.reserve.withdraw_coin),
            settler=DebtSettler(lending, config.lending.rate_mode),
            debt_asset=config.lending.debt_asset,
            safety_threshold=self._safety,
        )
        self._store = RecoveryStore(config.state.path)
        self._locks: dict[str, asyncio.Lock] = {}

        self._notifiers: list[Notifier] = []
        if config.notifications.telegram.enabled:
            self._notifiers.append(TelegramNotifier(config.notifications.telegram))
        if config.notifications.email.enabled:
            self._notifiers.append(EmailNotifier(config.notifications.email))

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _format_wallet(address: str) -> str:
        if len(address) > 16:
            return f"{address[:10]}...{address[-6:]}"
        return address

    def _get_status(self, health_factor: int) -> str:
        if health_factor < SCALE:
            return "🚨 LIQUIDATABLE"
        if health_factor < self._safety:
            return "⚠️ BELOW TARGET"
        return "✅ Healthy"

    @staticmethod
    def _now_str() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    @staticmethod
    def _describe_action(report: CycleReport) -> str:
        if report.recovered is not None:
            line = f"Resumed withdrawal: {report.recovered.status.value}"
            if report.settlement is not None:
                line += f", repay {report.settlement.status.value}"
            return line
        plan = report.plan
        if plan is None:
            return "No plan"
        if isinstance(plan, NoActionNeeded):
            return "No action needed"
        line = f"{plan.kind.capitalize()}: unwind {format_units(plan.amount)} LP"
        if report.unwind is not None:
            line += f" → {report.unwind.status.value}"
        if report.settlement is not None:
            line += f", repay {report.settlement.status.value}"
        return line

    def _build_log_message(self, report: CycleReport) -> str:
        lines = [f"🛡️ {self._config.wallet.label or 'wallet'} · {self._config.chain.name.upper()}", ""]
        if report.metrics is not None:
            m = report.metrics
            lines += [
                self._get_status(m.health_factor),
                "",
                f"Collateral: {format_units(m.total_collateral_value)} ETH",
                f"Debt: {format_units(m.total_debt_value)} ETH",
                f"HF: {format_units(m.health_factor, places=3)}"
                f" (target {format_units(self._safety, places=2)})",
            ]
        if report.reserve is not None:
            lines.append(
                f"Reserve: {format_units(report.reserve.staked_units)} LP"
                f" ≈ {format_units(report.reserve.value_in_base_asset)} ETH"
            )
        lines += ["", self._describe_action(report), "", f"{self._now_str()} UTC"]
        return "\n".join(lines)

    def _build_failure_alert(self, report: CycleReport) -> str:
        headline = {
            FailureKind.PARTIALLY_UNWOUND: "🚨 PARTIALLY UNWOUND — LP tokens unstaked but not withdrawn",
            FailureKind.TRANSACTION_REJECTED: "🚨 TRANSACTION REJECTED",
            FailureKind.PRICE_UNAVAILABLE: "⚠️ PRICE UNAVAILABLE — cycle skipped",
            FailureKind.READ_FAILURE: "⚠️ READ FAILURE — cycle skipped",
            FailureKind.ARITHMETIC_ERROR: "⚠️ INVALID POSITION DATA — cycle skipped",
        }.get(report.failure, "⚠️ CYCLE FAILED")
        return (
            f"{headline}\n"
            f"\n"
            f"{report.error}\n"
            f"\n"
            f"{self._describe_action(report)}\n"
            f"\n"
            f"Wallet: {self._format_wallet(report.owner)}\n"
            f"{self._now_str()} UTC"
        )

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    async def _send_log(self, message: str, silent: bool = True) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message, silent=silent)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    async def _send_alert(self, message: str, subject: str = "") -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)

    # ------------------------------------------------------------------
    # Recovery bookkeeping
    # ------------------------------------------------------------------

    def _record_recovery(self, report: CycleReport, pending: PendingUnwind | None) -> str | None:
        """Persist or clear the recovery marker; returns the store error, if any."""
        try:
            if report.failure is FailureKind.PARTIALLY_UNWOUND:
                partial = report.recovered if report.recovered is not None else report.unwind
                if pending is not None:
                    mode, kind = pending.withdraw_mode, pending.plan_kind
                elif report.plan is not None and not isinstance(report.plan, NoActionNeeded):
                    mode, kind = report.plan.withdraw_mode, report.plan.kind
                else:
                    mode, kind = WithdrawMode.AS_UNDERLYING_COIN, "repay"
                self._store.save(
                    PendingUnwind(
                        owner=report.owner,
                        withdraw_mode=mode,
                        plan_kind=kind,
                        unstaked_units=partial.amount if partial is not None else 0,
                    )
                )
            elif (
                pending is not None
                and report.recovered is not None
                and report.recovered.status is OutcomeStatus.COMPLETED
            ):
                self._store.clear(report.owner)
        except OSError as e:
            logger.error("Failed to update recovery marker in %s: %s", self._store.path, e)
            return str(e)
        return None

    def _load_pending(self) -> PendingUnwind | None:
        try:
            pending = self._store.load(self._owner)
        except (OSError, ValueError, KeyError) as e:
            # Leftover unstaked LP is still found on-chain by the cycle.
            logger.error("Unreadable recovery marker in %s: %s", self._store.path, e)
            return None
        if pending is not None:
            logger.warning(
                "Found pending %s unwind of %d units from %s",
                pending.plan_kind, pending.unstaked_units, pending.created_at.isoformat(),
            )
        return pending

    # ------------------------------------------------------------------
    # Core workflows
    # ------------------------------------------------------------------

    def _lock_for(self, owner: str) -> asyncio.Lock:
        return self._locks.setdefault(owner.lower(), asyncio.Lock())

    async def check_and_rebalance(self) -> CycleReport:
        """Run one guarded cycle; invocations for the same owner never overlap."""
        lock = self._lock_for(self._owner)
        if lock.locked():
            logger.warning("Cycle already running for %s; waiting", self._owner)

        async with lock:
            pending = self._load_pending()
            report = await self._cycle.run(self._owner, pending)
            store_error = self._record_recovery(report, pending)

        if report.ok:
            await self._send_log(self._build_log_message(report), silent=not report.acted)
        else:
            alert = self._build_failure_alert(report)
            if store_error is not None:
                alert += f"\n\n⚠️ Recovery marker NOT saved: {store_error}"
            await self._send_log(self._build_log_message(report), silent=False)
            await self._send_alert(alert, subject=f"Loan guard: {report.failure.value}")
        return report

    async def preview(self) -> CycleReport:
        """Read and plan only; nothing is sent."""
        report = await self._cycle.preview(self._owner)
        logger.info("Preview:\n%s", self._build_log_message(report))
        return report

    async def send_status_report(self) -> None:
        """Send a position report through every alert channel."""
        report = await self._cycle.preview(self._owner)
        message = "📋 Loan Guard Position Report\n\n" + self._build_log_message(report)
        if not report.ok:
            message += f"\n\n{report.error}"
        await self._send_alert(message)
        logger.info("Position report sent")

    async def run_continuous(self, check_interval_minutes: int | None = None) -> None:
        """Run a cycle every interval until cancelled."""
        interval = check_interval_minutes or self._config.guard.check_interval_minutes
        logger.info("Starting loan guard (checking every %d minutes)", interval)

        while True:
            try:
                await self.check_and_rebalance()
                await asyncio.sleep(interval * 60)
            except Exception as e:
                logger.error("Error in guard loop: %s", e)
                await asyncio.sleep(60)
