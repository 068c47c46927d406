"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

from pathlib import Path

import pytest
from eth_account import Account

from conftest import DEBT_ASSET, OWNER, SAMPLE_YAML, TEST_PRIVATE_KEY
from loan_guard.config import (
    AppConfig,
    GuardConfig,
    _interpolate_env,
    _to_wei,
    load_config,
)
from loan_guard.models import SCALE

SIGNER = Account.from_key(TEST_PRIVATE_KEY).address


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested_structures(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOK", "secret")
        result = _interpolate_env({"key": "${TOK}", "items": ["${TOK}", "plain"]})
        assert result == {"key": "secret", "items": ["secret", "plain"]}

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(True) is True


class TestToWei:
    def test_decimal_string(self) -> None:
        assert _to_wei("1.5", "ether", "x") == 1_500_000_000_000_000_000

    def test_gwei_integer(self) -> None:
        assert _to_wei(30, "gwei", "x") == 30_000_000_000

    def test_garbage_raises_with_setting_name(self) -> None:
        with pytest.raises(ValueError, match="guard.safety_health_factor"):
            _to_wei("one and a half", "ether", "guard.safety_health_factor")


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert cfg.wallet.address == OWNER
        assert cfg.guard.safety_health_factor == 3 * SCALE // 2
        assert cfg.guard.check_interval_minutes == 5
        assert cfg.chain.min_gas_price == 30 * 10**9
        assert cfg.chain.confirmation_timeout == 120
        assert cfg.lending.debt_asset == DEBT_ASSET
        assert cfg.lending.rate_mode == 2
        assert cfg.reserve.withdraw_coin == 1
        assert cfg.notifications.telegram.chat_id == "999"

    def test_blank_rpc_endpoints_dropped(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert cfg.chain.rpc_endpoints == ("https://rpc.example.com",)

    def test_reserve_gas_limit_defaults(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert cfg.reserve.unstake_gas_limit == 294_771
        assert cfg.reserve.withdraw_gas_limit == 1_494_483

    def test_env_interpolation_in_yaml(
        self, sample_yaml_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_ETHERSCAN_KEY", "es-key")
        cfg = load_config(sample_yaml_path)
        assert cfg.price_oracle.etherscan.api_key == "es-key"

    def test_private_key_not_in_repr(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(SAMPLE_YAML.replace(OWNER, SIGNER))
        monkeypatch.setenv("TEST_WALLET_KEY", TEST_PRIVATE_KEY)
        cfg = load_config(path)
        assert cfg.wallet.private_key == TEST_PRIVATE_KEY
        assert TEST_PRIVATE_KEY[2:] not in repr(cfg)

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_defaults(self) -> None:
        assert GuardConfig().safety_health_factor == 3 * SCALE // 2
        assert GuardConfig().check_interval_minutes == 15


class TestValidation:
    def _write(self, tmp_path: Path, old: str, new: str) -> Path:
        path = tmp_path / "config.yaml"
        path.write_text(SAMPLE_YAML.replace(old, new))
        return path

    def test_invalid_wallet_address(self, tmp_path: Path) -> None:
        path = self._write(tmp_path, OWNER, "0xNOTANADDRESS")
        with pytest.raises(ValueError, match="no valid address"):
            load_config(path)

    def test_no_rpc_endpoints(self, tmp_path: Path) -> None:
        path = self._write(
            tmp_path, '["https://rpc.example.com", ""]', "[]"
        )
        with pytest.raises(ValueError, match="no rpc_endpoints"):
            load_config(path)

    def test_invalid_contract_address(self, tmp_path: Path) -> None:
        path = self._write(tmp_path, DEBT_ASSET, "usdc")
        with pytest.raises(ValueError, match="lending.debt_asset"):
            load_config(path)

    def test_non_positive_safety_threshold(self, tmp_path: Path) -> None:
        path = self._write(tmp_path, 'safety_health_factor: "1.5"', 'safety_health_factor: "0"')
        with pytest.raises(ValueError, match="must be positive"):
            load_config(path)

    def test_low_safety_threshold_only_warns(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = self._write(tmp_path, 'safety_health_factor: "1.5"', 'safety_health_factor: "0.9"')
        cfg = load_config(path)
        assert cfg.guard.safety_health_factor == 9 * SCALE // 10
        assert "liquidation line" in caplog.text

    def test_unknown_price_provider(self, tmp_path: Path) -> None:
        path = self._write(tmp_path, "provider: etherscan", "provider: chainlink")
        with pytest.raises(ValueError, match="Unknown price oracle provider"):
            load_config(path)

    def test_pyth_requires_feed_id(self, tmp_path: Path) -> None:
        path = self._write(tmp_path, "provider: etherscan", "provider: pyth")
        with pytest.raises(ValueError, match="feed_id is required"):
            load_config(path)

    def test_private_key_must_sign_for_wallet(
        self, sample_yaml_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_WALLET_KEY", TEST_PRIVATE_KEY)
        with pytest.raises(ValueError, match="not wallet.address"):
            load_config(sample_yaml_path)

    def test_private_key_matching_wallet_accepted(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = self._write(tmp_path, OWNER, SIGNER.lower())
        monkeypatch.setenv("TEST_WALLET_KEY", TEST_PRIVATE_KEY[2:])
        cfg = load_config(path)
        assert cfg.wallet.address == SIGNER.lower()

    def test_invalid_private_key(
        self, sample_yaml_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_WALLET_KEY", "0xdeadbeef")
        with pytest.raises(ValueError, match="not a valid private key"):
            load_config(sample_yaml_path)
