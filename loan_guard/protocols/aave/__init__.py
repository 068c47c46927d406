"""Aave-style lending pool adapter."""
from .adapter import AaveLendingAdapter

__all__ = ["AaveLendingAdapter"]
