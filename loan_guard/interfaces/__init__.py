"""Protocol interfaces for the loan guard's collaborators."""
from .chain import ChainClient
from .notifier import Notifier
from .price_oracle import PriceSource
from .protocol_adapter import LendingProtocol, ReserveProtocol

__all__ = [
    "ChainClient",
    "LendingProtocol",
    "Notifier",
    "PriceSource",
    "ReserveProtocol",
]
