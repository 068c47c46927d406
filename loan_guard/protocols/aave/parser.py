"""Pure parsing functions for lending pool account data — no I/O."""
from __future__ import annotations

from typing import Any, Sequence

from ...models import SolvencyMetrics

# getUserAccountData output order
_FIELDS = (
    "totalCollateralETH",
    "totalDebtETH",
    "availableBorrowsETH",
    "currentLiquidationThreshold",
    "ltv",
    "healthFactor",
)


def parse_account_data(raw: Sequence[Any]) -> SolvencyMetrics:
    """Convert the ``getUserAccountData`` tuple into ``SolvencyMetrics``.

    Raises:
        ValueError: the tuple does not have the six expected uint fields.
    """
    if len(raw) != len(_FIELDS):
        raise ValueError(
            f"getUserAccountData returned {len(raw)} fields, expected {len(_FIELDS)}"
        )
    values = dict(zip(_FIELDS, (int(v) for v in raw)))
    for name, value in values.items():
        if value < 0:
            raise ValueError(f"{name} is negative: {value}")

    return SolvencyMetrics(
        health_factor=values["healthFactor"],
        total_collateral_value=values["totalCollateralETH"],
        total_debt_value=values["totalDebtETH"],
        liquidation_threshold=values["currentLiquidationThreshold"],
        available_borrows_value=values["availableBorrowsETH"],
        ltv=values["ltv"],
    )

