"""Persistence for state that must survive between invocations."""
from .recovery_store import RecoveryStore

__all__ = ["RecoveryStore"]
