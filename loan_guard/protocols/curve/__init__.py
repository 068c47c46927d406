"""Curve-style stable pool + gauge adapter."""
from .adapter import CurveReserveAdapter

__all__ = ["CurveReserveAdapter"]
