"""Guard a lending position's health factor with a staked stable-pool reserve."""

__version__ = "0.1.0"
