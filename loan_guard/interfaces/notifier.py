"""Notifier protocol — where cycle reports and alerts are delivered."""
from typing import Protocol


class Notifier(Protocol):
    """A delivery channel for guard messages. Returns True when delivered."""

    async def send_alert(self, message: str, subject: str = "") -> bool:
        """Deliver something the position owner must act on."""
        ...

    async def send_log(self, message: str, silent: bool = True) -> bool:
        """Deliver a routine cycle report."""
        ...
