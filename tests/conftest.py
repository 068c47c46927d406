"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from loan_guard.config import (
    AppConfig,
    ChainConfig,
    EmailConfig,
    GuardConfig,
    LendingConfig,
    NotificationsConfig,
    PriceOracleConfig,
    ReserveConfig,
    StateConfig,
    TelegramConfig,
    WalletConfig,
)
from loan_guard.models import (
    SCALE,
    ReservePosition,
    SolvencyMetrics,
    TransactionResult,
    TransactionStatus,
)

OWNER = "0x" + "a1" * 20
LENDING_POOL = "0x" + "b2" * 20
DEBT_ASSET = "0x" + "c3" * 20
GAUGE = "0x" + "d4" * 20
POOL = "0x" + "e5" * 20
LP_TOKEN = "0x" + "f6" * 20

# Well-known throwaway key from the web3.py docs.
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"

SAFETY = 3 * SCALE // 2


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        name="polygon",
        chain_id=137,
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
        confirmation_timeout=60,
        min_gas_price=30 * 10**9,
    )


@pytest.fixture()
def sample_lending_config() -> LendingConfig:
    return LendingConfig(lending_pool=LENDING_POOL, debt_asset=DEBT_ASSET, rate_mode=2)


@pytest.fixture()
def sample_reserve_config() -> ReserveConfig:
    return ReserveConfig(gauge=GAUGE, pool=POOL, token=LP_TOKEN, withdraw_coin=1)


@pytest.fixture()
def sample_app_config(
    tmp_path: Path,
    sample_chain_config: ChainConfig,
    sample_lending_config: LendingConfig,
    sample_reserve_config: ReserveConfig,
) -> AppConfig:
    return AppConfig(
        guard=GuardConfig(safety_health_factor=SAFETY, check_interval_minutes=5),
        wallet=WalletConfig(label="test-wallet", address=OWNER),
        chain=sample_chain_config,
        lending=sample_lending_config,
        reserve=sample_reserve_config,
        price_oracle=PriceOracleConfig(provider="etherscan"),
        state=StateConfig(path=str(tmp_path / "pending.json")),
        notifications=NotificationsConfig(
            telegram=TelegramConfig(
                enabled=True,
                alert_bot_token="fake-alert-token",
                log_bot_token="fake-log-token",
                chat_id="12345",
            ),
            email=EmailConfig(enabled=False),
        ),
    )


# ---------------------------------------------------------------------------
# Position fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def at_risk_metrics() -> SolvencyMetrics:
    """HF 1.2 against 10 ETH collateral, 6 ETH debt, 80% liquidation threshold."""
    return SolvencyMetrics(
        health_factor=12 * SCALE // 10,
        total_collateral_value=10 * SCALE,
        total_debt_value=6 * SCALE,
        liquidation_threshold=8000,
    )


@pytest.fixture()
def healthy_metrics() -> SolvencyMetrics:
    return SolvencyMetrics(
        health_factor=2 * SCALE,
        total_collateral_value=10 * SCALE,
        total_debt_value=4 * SCALE,
        liquidation_threshold=8000,
    )


@pytest.fixture()
def large_reserve() -> ReservePosition:
    """5 LP at virtual price 1.0, valued at a price of 1.0: worth 5 ETH."""
    return ReservePosition(staked_units=5 * SCALE, exchange_rate=SCALE, price=SCALE)


@pytest.fixture()
def small_reserve() -> ReservePosition:
    """1 LP worth 1 ETH; less than the 1.25 ETH fold shortfall."""
    return ReservePosition(staked_units=SCALE, exchange_rate=SCALE, price=SCALE)


def tx_ok(function_name: str = "withdraw") -> TransactionResult:
    return TransactionResult(
        function_name=function_name,
        status=TransactionStatus.SUCCESS,
        tx_hash="0x" + "ab" * 32,
        block_number=100,
        gas_used=21_000,
    )


def tx_failed(function_name: str = "withdraw", error: str = "Transaction reverted") -> TransactionResult:
    return TransactionResult(
        function_name=function_name,
        status=TransactionStatus.FAILED,
        tx_hash="0x" + "cd" * 32,
        error=error,
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent(f"""\
    guard:
      safety_health_factor: "1.5"
      check_interval_minutes: 5
    wallet:
      label: test-wallet
      address: "{OWNER}"
      private_key: "${{TEST_WALLET_KEY}}"
    chain:
      name: polygon
      chain_id: 137
      rpc_endpoints: ["https://rpc.example.com", ""]
      rpc_timeout: 10
      confirmation_timeout: 120
      min_gas_price_gwei: 30
    lending:
      lending_pool: "{LENDING_POOL}"
      debt_asset: "{DEBT_ASSET}"
    reserve:
      gauge: "{GAUGE}"
      pool: "{POOL}"
      token: "{LP_TOKEN}"
      withdraw_coin: 1
    price_oracle:
      provider: etherscan
      etherscan:
        api_key: "${{TEST_ETHERSCAN_KEY}}"
    state:
      path: data/pending.json
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: 999
      email:
        enabled: false
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
