"""Failure taxonomy for a rebalancing cycle."""
from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Why a cycle stopped early."""

    PRICE_UNAVAILABLE = "price_unavailable"
    READ_FAILURE = "read_failure"
    ARITHMETIC_ERROR = "arithmetic_error"
    TRANSACTION_REJECTED = "transaction_rejected"
    PARTIALLY_UNWOUND = "partially_unwound"


class LoanGuardError(Exception):
    """Base class for every failure the guard surfaces to its caller."""

    kind: FailureKind


class PriceUnavailable(LoanGuardError):
    """The reference price provider did not return a usable price."""

    kind = FailureKind.PRICE_UNAVAILABLE


class ReadFailure(LoanGuardError):
    """An on-chain read could not be completed."""

    kind = FailureKind.READ_FAILURE


class PlanArithmeticError(LoanGuardError, ArithmeticError):
    """The rebalance engine was handed inputs it cannot divide by."""

    kind = FailureKind.ARITHMETIC_ERROR


class TransactionRejected(LoanGuardError):
    """A transaction failed to submit, reverted or timed out."""

    kind = FailureKind.TRANSACTION_REJECTED


class PartiallyUnwound(LoanGuardError):
    """LP tokens were unstaked from the gauge but never withdrawn from the pool."""

    kind = FailureKind.PARTIALLY_UNWOUND
