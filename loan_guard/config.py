"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from eth_account import Account
from web3 import Web3

logger = logging.getLogger(__name__)

_DEFAULT_SAFETY_HEALTH_FACTOR = Web3.to_wei(Decimal("1.5"), "ether")
_DEFAULT_MIN_GAS_PRICE = Web3.to_wei(30, "gwei")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GuardConfig:
    safety_health_factor: int = _DEFAULT_SAFETY_HEALTH_FACTOR
    check_interval_minutes: int = 15


@dataclass(frozen=True)
class WalletConfig:
    label: str = ""
    address: str = ""
    private_key: str = field(default="", repr=False)


@dataclass(frozen=True)
class ChainConfig:
    name: str = "polygon"
    chain_id: int = 137
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30
    confirmation_timeout: int = 300
    min_gas_price: int = _DEFAULT_MIN_GAS_PRICE


@dataclass(frozen=True)
class LendingConfig:
    lending_pool: str = ""
    debt_asset: str = ""
    rate_mode: int = 2


@dataclass(frozen=True)
class ReserveConfig:
    gauge: str = ""
    pool: str = ""
    token: str = ""
    withdraw_coin: int = 1
    unstake_gas_limit: int = 294_771
    withdraw_gas_limit: int = 1_494_483


@dataclass(frozen=True)
class EtherscanConfig:
    api_url: str = "https://api.etherscan.io/v2/api"
    api_key: str = field(default="", repr=False)
    chain_id: int = 1


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feed_id: str = ""


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "etherscan"
    etherscan: EtherscanConfig = field(default_factory=EtherscanConfig)
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class StateConfig:
    path: str = "data/pending_unwind.json"


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = field(default="", repr=False)
    log_bot_token: str = field(default="", repr=False)
    chat_id: str = ""


@dataclass(frozen=True)
class EmailConfig:
    enabled: bool = False
    alert_email: str = ""
    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 587
    sender_email: str = ""
    sender_password: str = field(default="", repr=False)


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    email: EmailConfig = field(default_factory=EmailConfig)


@dataclass(frozen=True)
class AppConfig:
    guard: GuardConfig = field(default_factory=GuardConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    lending: LendingConfig = field(default_factory=LendingConfig)
    reserve: ReserveConfig = field(default_factory=ReserveConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)
    state: StateConfig = field(default_factory=StateConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _to_wei(raw: Any, unit: str, name: str) -> int:
    """Parse a human decimal ("1.5", 30) into an integer of ``unit``'s scale."""
    try:
        return int(Web3.to_wei(Decimal(str(raw)), unit))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from e


def _signer_address(private_key: str) -> str:
    key = private_key if private_key.startswith("0x") else f"0x{private_key}"
    try:
        return Account.from_key(key).address
    except Exception as e:
        raise ValueError("wallet.private_key is not a valid private key") from e


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_guard(raw: dict[str, Any]) -> GuardConfig:
    safety = raw.get("safety_health_factor")
    return GuardConfig(
        safety_health_factor=(
            _to_wei(safety, "ether", "guard.safety_health_factor")
            if safety is not None
            else _DEFAULT_SAFETY_HEALTH_FACTOR
        ),
        check_interval_minutes=int(raw.get("check_interval_minutes", 15)),
    )


def _build_wallet(raw: dict[str, Any]) -> WalletConfig:
    return WalletConfig(
        label=raw.get("label", ""),
        address=raw.get("address", ""),
        private_key=raw.get("private_key", ""),
    )


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    min_gas = raw.get("min_gas_price_gwei")
    return ChainConfig(
        name=raw.get("name", "polygon"),
        chain_id=int(raw.get("chain_id", 137)),
        rpc_endpoints=tuple(e for e in raw.get("rpc_endpoints", []) if e),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        confirmation_timeout=int(raw.get("confirmation_timeout", 300)),
        min_gas_price=(
            _to_wei(min_gas, "gwei", "chain.min_gas_price_gwei")
            if min_gas is not None
            else _DEFAULT_MIN_GAS_PRICE
        ),
    )


def _build_lending(raw: dict[str, Any]) -> LendingConfig:
    return LendingConfig(
        lending_pool=raw.get("lending_pool", ""),
        debt_asset=raw.get("debt_asset", ""),
        rate_mode=int(raw.get("rate_mode", 2)),
    )


def _build_reserve(raw: dict[str, Any]) -> ReserveConfig:
    return ReserveConfig(
        gauge=raw.get("gauge", ""),
        pool=raw.get("pool", ""),
        token=raw.get("token", ""),
        withdraw_coin=int(raw.get("withdraw_coin", 1)),
        unstake_gas_limit=int(raw.get("unstake_gas_limit", 294_771)),
        withdraw_gas_limit=int(raw.get("withdraw_gas_limit", 1_494_483)),
    )


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    es_raw = raw.get("etherscan", {})
    pyth_raw = raw.get("pyth", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "etherscan"),
        etherscan=EtherscanConfig(
            api_url=es_raw.get("api_url", EtherscanConfig.api_url),
            api_key=es_raw.get("api_key", ""),
            chain_id=int(es_raw.get("chain_id", 1)),
        ),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feed_id=pyth_raw.get("feed_id", ""),
        ),
    )


def _build_state(raw: dict[str, Any]) -> StateConfig:
    return StateConfig(path=raw.get("path", StateConfig.path))


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    em = raw.get("email", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
        email=EmailConfig(
            enabled=bool(em.get("enabled", False)),
            alert_email=em.get("alert_email", ""),
            smtp_server=em.get("smtp_server", "smtp.gmail.com"),
            smtp_port=int(em.get("smtp_port", 587)),
            sender_email=em.get("sender_email", ""),
            sender_password=em.get("sender_password", ""),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        guard=_build_guard(raw.get("guard", {})),
        wallet=_build_wallet(raw.get("wallet", {})),
        chain=_build_chain(raw.get("chain", {})),
        lending=_build_lending(raw.get("lending", {})),
        reserve=_build_reserve(raw.get("reserve", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
        state=_build_state(raw.get("state", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not Web3.is_address(cfg.wallet.address):
        raise ValueError(f"Wallet '{cfg.wallet.label}' has no valid address")
    if cfg.wallet.private_key:
        signer = _signer_address(cfg.wallet.private_key)
        # Reads use wallet.address; writes are signed by the key.
        if signer.lower() != cfg.wallet.address.lower():
            raise ValueError(
                f"wallet.private_key signs as {signer}, not wallet.address {cfg.wallet.address}"
            )

    if not cfg.chain.rpc_endpoints:
        raise ValueError(f"Chain '{cfg.chain.name}' has no rpc_endpoints")

    contracts = {
        "lending.lending_pool": cfg.lending.lending_pool,
        "lending.debt_asset": cfg.lending.debt_asset,
        "reserve.gauge": cfg.reserve.gauge,
        "reserve.pool": cfg.reserve.pool,
        "reserve.token": cfg.reserve.token,
    }
    for name, address in contracts.items():
        if not Web3.is_address(address):
            raise ValueError(f"Contract address {name} is missing or invalid")

    if cfg.guard.safety_health_factor <= 0:
        raise ValueError("guard.safety_health_factor must be positive")
    if cfg.guard.safety_health_factor <= Web3.to_wei(1, "ether"):
        logger.warning(
            "Safety health factor %s is at or below the liquidation line",
            Web3.from_wei(cfg.guard.safety_health_factor, "ether"),
        )

    if cfg.price_oracle.provider not in ("etherscan", "pyth"):
        raise ValueError(
            f"Unknown price oracle provider '{cfg.price_oracle.provider}'"
        )
    if cfg.price_oracle.provider == "pyth" and not cfg.price_oracle.pyth.feed_id:
        raise ValueError("price_oracle.pyth.feed_id is required for the pyth provider")
