"""Reference price sources."""
from ..config import PriceOracleConfig
from ..interfaces.price_oracle import PriceSource
from .etherscan import EtherscanOracle
from .pyth import PythOracle

__all__ = ["EtherscanOracle", "PythOracle", "build_price_source"]


def build_price_source(config: PriceOracleConfig) -> PriceSource:
    """Return the single provider named by ``config.provider``."""
    if config.provider == "pyth":
        return PythOracle(config.pyth)
    if config.provider == "etherscan":
        return EtherscanOracle(config.etherscan)
    raise ValueError(f"Unknown price oracle provider '{config.provider}'")
