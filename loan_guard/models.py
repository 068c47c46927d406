"""Data models — snapshots, plans and outcomes are frozen (immutable).

Every on-chain quantity is kept as a Python ``int`` in the protocol's own
fixed-point scale. Position values share the 18-decimal base scale; the
lending protocol's liquidation threshold and LTV use 4 decimals.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Union

from .errors import FailureKind, PlanArithmeticError

SCALE = 10**18
THRESHOLD_RESCALE = 10**14


def format_units(value: int, decimals: int = 18, places: int = 4) -> str:
    """Render a fixed-point integer for humans, e.g. 1250000000000000000 → '1.2500'."""
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10**decimals)
    frac_str = str(frac).rjust(decimals, "0")[:places]
    return f"{sign}{whole}.{frac_str}" if places else f"{sign}{whole}"


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SolvencyMetrics:
    """Point-in-time view of the debt position. Stale once any tx is sent."""

    health_factor: int
    total_collateral_value: int
    total_debt_value: int
    liquidation_threshold: int
    available_borrows_value: int = 0
    ltv: int = 0


@dataclass(frozen=True)
class ReservePosition:
    """Staked reserve holdings, valued with one exchange rate and one price."""

    staked_units: int
    exchange_rate: int
    price: int
    unstaked_units: int = 0

    @property
    def value_in_base_asset(self) -> int:
        if self.price <= 0:
            raise PlanArithmeticError(f"cannot value reserve at price {self.price}")
        return self.staked_units * self.exchange_rate // self.price


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


class WithdrawMode(str, Enum):
    """Which side of the stable pool a withdrawal targets."""

    AS_UNDERLYING_COIN = "underlying"
    AS_LP_TOKEN = "wrapped"

    @property
    def use_underlying(self) -> bool:
        return self is WithdrawMode.AS_UNDERLYING_COIN


@dataclass(frozen=True)
class NoActionNeeded:
    kind: str = field(default="no_action", init=False)


@dataclass(frozen=True)
class FoldIntoCollateral:
    """Unwind ``amount`` staked units and keep the wrapped asset as collateral."""

    amount: int
    kind: str = field(default="fold", init=False)

    @property
    def withdraw_mode(self) -> WithdrawMode:
        return WithdrawMode.AS_LP_TOKEN


@dataclass(frozen=True)
class RepayDebt:
    """Unwind ``amount`` staked units to the underlying coin and repay with it."""

    amount: int
    kind: str = field(default="repay", init=False)

    @property
    def withdraw_mode(self) -> WithdrawMode:
        return WithdrawMode.AS_UNDERLYING_COIN


RebalancePlan = Union[NoActionNeeded, FoldIntoCollateral, RepayDebt]


# ---------------------------------------------------------------------------
# Execution results
# ---------------------------------------------------------------------------


class TransactionStatus(str, Enum):
    """Transaction execution status."""

    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class TransactionResult:
    """Result of one submitted transaction."""

    function_name: str
    status: TransactionStatus
    tx_hash: str = ""
    block_number: int | None = None
    gas_used: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is TransactionStatus.SUCCESS


class OutcomeStatus(str, Enum):
    COMPLETED = "completed"
    REJECTED = "rejected"
    PARTIALLY_UNWOUND = "partially_unwound"


@dataclass(frozen=True)
class ExecutionOutcome:
    """Result of an unwind or a debt settlement."""

    status: OutcomeStatus
    amount: int = 0
    transactions: tuple[TransactionResult, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.COMPLETED


@dataclass(frozen=True)
class PendingUnwind:
    """Marker for an unstake whose pool withdrawal never confirmed."""

    owner: str
    withdraw_mode: WithdrawMode
    plan_kind: str
    unstaked_units: int
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class CycleReport:
    """Everything one invocation saw and did, filled in as the cycle runs."""

    owner: str
    price: int | None = None
    metrics: SolvencyMetrics | None = None
    reserve: ReservePosition | None = None
    plan: RebalancePlan | None = None
    unwind: ExecutionOutcome | None = None
    settlement: ExecutionOutcome | None = None
    recovered: ExecutionOutcome | None = None
    failure: FailureKind | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def acted(self) -> bool:
        return self.unwind is not None or self.recovered is not None
