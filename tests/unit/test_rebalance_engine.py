"""Unit and property tests for the rebalance decision engine."""
from __future__ import annotations

import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from conftest import SAFETY
from loan_guard.errors import PlanArithmeticError
from loan_guard.models import (
    SCALE,
    FoldIntoCollateral,
    NoActionNeeded,
    RepayDebt,
    ReservePosition,
    SolvencyMetrics,
)
from loan_guard.services.rebalance_engine import (
    plan,
    target_fold_value,
    target_repay_value,
    units_for_value,
)


def _reserve_worth(value: int) -> ReservePosition:
    """A reserve whose staked units equal its base-asset value."""
    return ReservePosition(staked_units=value, exchange_rate=SCALE, price=SCALE)


class TestTargets:
    def test_fold_target(self, at_risk_metrics: SolvencyMetrics) -> None:
        # 1.5 * 6 / 0.8 - 10 = 1.25
        assert target_fold_value(at_risk_metrics, SAFETY) == 1_250_000_000_000_000_000

    def test_repay_target(self, at_risk_metrics: SolvencyMetrics) -> None:
        # 6 - 10 * 0.8 / 1.5 = 0.666...; the floored debt term rounds the target up
        assert target_repay_value(at_risk_metrics, SAFETY) == 666_666_666_666_666_667


class TestUnitsForValue:
    def test_proportional_share(self) -> None:
        assert units_for_value(SCALE, 4 * SCALE, 8 * SCALE) == 2 * SCALE

    def test_caps_at_staked(self) -> None:
        assert units_for_value(10 * SCALE, SCALE, 3 * SCALE) == 3 * SCALE

    def test_non_positive_target_is_zero(self) -> None:
        assert units_for_value(0, SCALE, SCALE) == 0
        assert units_for_value(-5, SCALE, SCALE) == 0

    def test_zero_reserve_value_raises(self) -> None:
        with pytest.raises(PlanArithmeticError):
            units_for_value(SCALE, 0, SCALE)


class TestPlan:
    def test_healthy_needs_no_action(
        self, healthy_metrics: SolvencyMetrics, large_reserve: ReservePosition
    ) -> None:
        assert plan(healthy_metrics, large_reserve, SAFETY) == NoActionNeeded()

    def test_exactly_at_threshold_is_safe(
        self, at_risk_metrics: SolvencyMetrics, large_reserve: ReservePosition
    ) -> None:
        metrics = SolvencyMetrics(
            health_factor=SAFETY,
            total_collateral_value=at_risk_metrics.total_collateral_value,
            total_debt_value=at_risk_metrics.total_debt_value,
            liquidation_threshold=at_risk_metrics.liquidation_threshold,
        )
        assert isinstance(plan(metrics, large_reserve, SAFETY), NoActionNeeded)

    def test_fold_when_reserve_covers_shortfall(
        self, at_risk_metrics: SolvencyMetrics, large_reserve: ReservePosition
    ) -> None:
        # fraction 1.25 / 5 = 0.25 of 5 staked units
        assert plan(at_risk_metrics, large_reserve, SAFETY) == FoldIntoCollateral(
            1_250_000_000_000_000_000
        )

    def test_repay_when_reserve_falls_short(
        self, at_risk_metrics: SolvencyMetrics, small_reserve: ReservePosition
    ) -> None:
        result = plan(at_risk_metrics, small_reserve, SAFETY)
        assert result == RepayDebt(666_666_666_666_666_667)
        assert result.amount < small_reserve.staked_units

    def test_repay_caps_at_whole_reserve(self, at_risk_metrics: SolvencyMetrics) -> None:
        tiny = ReservePosition(staked_units=SCALE // 10, exchange_rate=SCALE, price=SCALE)
        assert plan(at_risk_metrics, tiny, SAFETY) == RepayDebt(SCALE // 10)

    def test_reserve_equal_to_fold_target_folds_everything(
        self, at_risk_metrics: SolvencyMetrics
    ) -> None:
        reserve = _reserve_worth(1_250_000_000_000_000_000)
        assert plan(at_risk_metrics, reserve, SAFETY) == FoldIntoCollateral(reserve.staked_units)

    def test_exchange_rate_and_price_drive_value(self, at_risk_metrics: SolvencyMetrics) -> None:
        # 10 LP at virtual price 1.0, base asset at 4: worth 2.5, covering the 1.25 shortfall
        reserve = ReservePosition(staked_units=10 * SCALE, exchange_rate=SCALE, price=4 * SCALE)
        assert plan(at_risk_metrics, reserve, SAFETY) == FoldIntoCollateral(5 * SCALE)

    def test_zero_liquidation_threshold_raises(self, large_reserve: ReservePosition) -> None:
        metrics = SolvencyMetrics(
            health_factor=SCALE,
            total_collateral_value=10 * SCALE,
            total_debt_value=6 * SCALE,
            liquidation_threshold=0,
        )
        with pytest.raises(PlanArithmeticError, match="liquidation threshold"):
            plan(metrics, large_reserve, SAFETY)

    def test_zero_debt_below_threshold_raises(self, large_reserve: ReservePosition) -> None:
        metrics = SolvencyMetrics(
            health_factor=0,
            total_collateral_value=10 * SCALE,
            total_debt_value=0,
            liquidation_threshold=8000,
        )
        with pytest.raises(PlanArithmeticError, match="debt"):
            plan(metrics, large_reserve, SAFETY)

    def test_empty_reserve_raises(self, at_risk_metrics: SolvencyMetrics) -> None:
        with pytest.raises(PlanArithmeticError, match="reserve value"):
            plan(at_risk_metrics, _reserve_worth(0), SAFETY)

    def test_non_positive_safety_threshold_raises(
        self, at_risk_metrics: SolvencyMetrics, large_reserve: ReservePosition
    ) -> None:
        metrics = SolvencyMetrics(
            health_factor=-1,
            total_collateral_value=10 * SCALE,
            total_debt_value=6 * SCALE,
            liquidation_threshold=8000,
        )
        with pytest.raises(PlanArithmeticError, match="safety threshold"):
            plan(metrics, large_reserve, 0)

    def test_inconsistent_snapshot_collapses_to_no_action(
        self, large_reserve: ReservePosition
    ) -> None:
        # HF says unsafe but collateral already covers the target.
        metrics = SolvencyMetrics(
            health_factor=SCALE,
            total_collateral_value=100 * SCALE,
            total_debt_value=SCALE,
            liquidation_threshold=8000,
        )
        assert plan(metrics, large_reserve, SAFETY) == NoActionNeeded()


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

safety_thresholds = st.integers(min_value=SCALE + SCALE // 100, max_value=3 * SCALE)
amounts = st.integers(min_value=1, max_value=10**24)
liquidation_thresholds = st.integers(min_value=1, max_value=10_000)


@st.composite
def unsafe_metrics(draw: st.DrawFn, safety: int) -> SolvencyMetrics:
    return SolvencyMetrics(
        health_factor=draw(st.integers(min_value=0, max_value=safety - 1)),
        total_collateral_value=draw(st.integers(min_value=0, max_value=10**24)),
        total_debt_value=draw(amounts),
        liquidation_threshold=draw(liquidation_thresholds),
    )


@st.composite
def reserves(draw: st.DrawFn) -> ReservePosition:
    return ReservePosition(
        staked_units=draw(st.integers(min_value=0, max_value=10**24)),
        exchange_rate=draw(st.integers(min_value=SCALE // 2, max_value=2 * SCALE)),
        price=draw(st.integers(min_value=SCALE // 100, max_value=10**22)),
    )


class TestPlanProperties:
    @given(
        safety=safety_thresholds,
        hf_margin=st.integers(min_value=0, max_value=10 * SCALE),
        collateral=st.integers(min_value=0, max_value=10**24),
        debt=st.integers(min_value=0, max_value=10**24),
        lt=st.integers(min_value=0, max_value=10_000),
        reserve=reserves(),
    )
    def test_safe_position_never_acts(
        self, safety: int, hf_margin: int, collateral: int, debt: int, lt: int,
        reserve: ReservePosition,
    ) -> None:
        metrics = SolvencyMetrics(
            health_factor=safety + hf_margin,
            total_collateral_value=collateral,
            total_debt_value=debt,
            liquidation_threshold=lt,
        )
        assert plan(metrics, reserve, safety) == NoActionNeeded()

    @given(data=st.data(), safety=safety_thresholds, reserve=reserves())
    def test_amount_within_staked_balance(
        self, data: st.DataObject, safety: int, reserve: ReservePosition
    ) -> None:
        assume(reserve.value_in_base_asset > 0)
        metrics = data.draw(unsafe_metrics(safety))

        result = plan(metrics, reserve, safety)

        if not isinstance(result, NoActionNeeded):
            assert 0 < result.amount <= reserve.staked_units

    @given(data=st.data(), safety=safety_thresholds, reserve=reserves())
    def test_plan_is_deterministic(
        self, data: st.DataObject, safety: int, reserve: ReservePosition
    ) -> None:
        assume(reserve.value_in_base_asset > 0)
        metrics = data.draw(unsafe_metrics(safety))
        assert plan(metrics, reserve, safety) == plan(metrics, reserve, safety)

    @settings(max_examples=200)
    @given(data=st.data(), safety=safety_thresholds)
    def test_branch_flips_at_fold_target(self, data: st.DataObject, safety: int) -> None:
        metrics = data.draw(unsafe_metrics(safety))
        fold_value = target_fold_value(metrics, safety)
        assume(fold_value >= 2)

        at_target = plan(metrics, _reserve_worth(fold_value), safety)
        below_target = plan(metrics, _reserve_worth(fold_value - 1), safety)

        assert at_target == FoldIntoCollateral(fold_value)
        assert not isinstance(below_target, FoldIntoCollateral)
