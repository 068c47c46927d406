"""Rebalance decision engine — pure integer arithmetic, no I/O.

Given a solvency snapshot and the reserve position valued at the same price,
decide whether the health factor needs defending and, if so, how many staked
reserve units to unwind and where the proceeds go:

* **fold** — when the whole reserve is worth at least the collateral
  shortfall, unwind just enough to top collateral up to the safety health
  factor;
* **repay** — otherwise, unwind enough to repay the debt down to what current
  collateral supports at the safety health factor, capped at the whole
  reserve.

All values are 18-decimal fixed point except the liquidation threshold,
which the lending pool reports with 4 decimals (8000 = 80%). Division
truncates, matching the on-chain integer math the plan feeds into.
"""
from __future__ import annotations

import logging

from ..errors import PlanArithmeticError
from ..models import (
    SCALE,
    THRESHOLD_RESCALE,
    FoldIntoCollateral,
    NoActionNeeded,
    RebalancePlan,
    RepayDebt,
    ReservePosition,
    SolvencyMetrics,
    format_units,
)

logger = logging.getLogger(__name__)


def _validate(metrics: SolvencyMetrics, reserve: ReservePosition, safety_threshold: int) -> None:
    if safety_threshold <= 0:
        raise PlanArithmeticError(f"safety threshold must be positive, got {safety_threshold}")
    if metrics.liquidation_threshold <= 0:
        raise PlanArithmeticError("liquidation threshold is zero")
    if metrics.total_debt_value <= 0:
        raise PlanArithmeticError("total debt is zero")
    if metrics.total_collateral_value < 0 or reserve.staked_units < 0:
        raise PlanArithmeticError("negative collateral or staked balance")


def units_for_value(target_value: int, reserve_value: int, staked_units: int) -> int:
    """Convert a base-asset value into reserve units, capped at ``staked_units``.

    The share of the reserve is computed first in 18-decimal fixed point, then
    applied to the staked balance; a share above 100% means the whole reserve.
    """
    if target_value <= 0:
        return 0
    if reserve_value <= 0:
        raise PlanArithmeticError("reserve value is zero")
    fraction = target_value * SCALE // reserve_value
    if fraction > SCALE:
        return staked_units
    return fraction * staked_units // SCALE


def target_fold_value(metrics: SolvencyMetrics, safety_threshold: int) -> int:
    """Collateral value to add so the health factor lands on ``safety_threshold``."""
    adjusted_threshold = metrics.liquidation_threshold * THRESHOLD_RESCALE
    return (
        safety_threshold * metrics.total_debt_value // adjusted_threshold
        - metrics.total_collateral_value
    )


def target_repay_value(metrics: SolvencyMetrics, safety_threshold: int) -> int:
    """Debt value to repay so current collateral sits at ``safety_threshold``."""
    adjusted_threshold = metrics.liquidation_threshold * THRESHOLD_RESCALE
    debt_for_safety = metrics.total_collateral_value * adjusted_threshold // safety_threshold
    return metrics.total_debt_value - debt_for_safety


def plan(
    metrics: SolvencyMetrics, reserve: ReservePosition, safety_threshold: int
) -> RebalancePlan:
    """Decide how to restore ``safety_threshold``.

    Raises:
        PlanArithmeticError: a divisor (liquidation threshold, debt, safety
            threshold, reserve value) is zero or an input is negative.
    """
    if metrics.health_factor >= safety_threshold:
        return NoActionNeeded()

    _validate(metrics, reserve, safety_threshold)

    reserve_value = reserve.value_in_base_asset
    fold_value = target_fold_value(metrics, safety_threshold)

    if reserve_value >= fold_value:
        units = units_for_value(fold_value, reserve_value, reserve.staked_units)
        result: RebalancePlan = FoldIntoCollateral(units)
        target = fold_value
    else:
        repay_value = target_repay_value(metrics, safety_threshold)
        units = units_for_value(repay_value, reserve_value, reserve.staked_units)
        result = RepayDebt(units)
        target = repay_value

    if units == 0:
        logger.info("Health factor below target but nothing to unwind")
        return NoActionNeeded()

    logger.info(
        "Plan %s: target value %s of reserve %s → unwind %s of %s staked units",
        result.kind,
        format_units(target),
        format_units(reserve_value),
        format_units(units),
        format_units(reserve.staked_units),
    )
    return result
