"""Service modules"""
from .cycle import RebalanceCycle
from .debt_settler import DebtSettler
from .guard import LoanGuard
from .position_reader import PositionReader
from .reserve_unwinder import ReserveUnwinder

__all__ = ["RebalanceCycle", "DebtSettler", "LoanGuard", "PositionReader", "ReserveUnwinder"]
