"""Tests for ConfigManager and CrossChainConfig."""

from pathlib import Path

import pytest
import yaml

from config.config_manager import ConfigManager
from config.models import CrossChainConfig
from yieldbridge.domain.exceptions import ValidationError


REPO_CONFIG = Path(__file__).resolve().parents[2] / "config"

BASE = {
    "mode": "live",
    "currency": "USDC",
    "cross_chain": {
        "custody_endpoint_id": "icp_yield_vault",
        "finance_contract_address": "",
        "bridge_relay_endpoint": "",
        "price_oracle_endpoint": "",
    },
    "custody": {"gateway_url": "http://127.0.0.1:4943"},
    "wallet": {"providers": ["keplr", "plug"]},
}


def write_yaml(path: Path, data) -> None:
    path.write_text(yaml.safe_dump(data))


@pytest.fixture
def config_dir(tmp_path):
    write_yaml(tmp_path / "base.yaml", BASE)
    return tmp_path


class TestConfigManager:

    def test_loads_base(self, config_dir):
        config = ConfigManager(config_dir, env="dev", environ={}).load()

        assert config.mode == "live"
        assert not config.is_simulated
        assert config.cross_chain == CrossChainConfig()
        assert config.custody.gateway_url == "http://127.0.0.1:4943"
        assert config.wallet.providers == ["keplr", "plug"]
        assert config.relay.chain_names["finance"] == "injective"
        assert config.logging.level == "INFO"

    def test_env_file_deep_merges(self, config_dir):
        write_yaml(config_dir / "prod.yaml", {
            "cross_chain": {"finance_contract_address": "inj1vault"},
            "custody": {"timeout_sec": 3},
        })

        config = ConfigManager(config_dir, env="prod", environ={}).load()

        assert config.cross_chain.finance_contract_address == "inj1vault"
        assert config.cross_chain.custody_endpoint_id == "icp_yield_vault"
        assert config.custody.timeout_sec == 3.0
        assert config.custody.gateway_url == "http://127.0.0.1:4943"

    def test_secrets_override_env_file(self, config_dir):
        write_yaml(config_dir / "prod.yaml", {"cross_chain": {"bridge_relay_endpoint": "http://a"}})
        write_yaml(config_dir / "secrets.yaml", {"cross_chain": {"bridge_relay_endpoint": "http://b"}})

        config = ConfigManager(config_dir, env="prod", environ={}).load()

        assert config.cross_chain.bridge_relay_endpoint == "http://b"

    def test_environment_variables_win(self, config_dir):
        environ = {
            "YIELDBRIDGE_CUSTODY_CANISTER_ID": "vault_v2",
            "YIELDBRIDGE_PRICE_ORACLE": "http://oracle",
            "YIELDBRIDGE_BRIDGE_GATEWAY": "",
        }

        config = ConfigManager(config_dir, env="dev", environ=environ).load()

        assert config.cross_chain.custody_endpoint_id == "vault_v2"
        assert config.cross_chain.price_oracle_endpoint == "http://oracle"
        assert config.cross_chain.bridge_relay_endpoint == ""

    def test_null_values_become_empty(self, config_dir):
        write_yaml(config_dir / "dev.yaml", {"cross_chain": {"price_oracle_endpoint": None}})

        config = ConfigManager(config_dir, env="dev", environ={}).load()

        assert config.cross_chain.price_oracle_endpoint == ""

    def test_missing_base(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager(tmp_path, env="dev", environ={}).load()

    def test_invalid_mode(self, config_dir):
        write_yaml(config_dir / "dev.yaml", {"mode": "paper"})

        with pytest.raises(ValueError, match="mode"):
            ConfigManager(config_dir, env="dev", environ={}).load()

    def test_unknown_cross_chain_key(self, config_dir):
        write_yaml(config_dir / "dev.yaml", {"cross_chain": {"oracle": "http://x"}})

        with pytest.raises(ValueError, match="oracle"):
            ConfigManager(config_dir, env="dev", environ={}).load()

    def test_invalid_yaml(self, config_dir):
        (config_dir / "dev.yaml").write_text("cross_chain: [broken\n")

        with pytest.raises(ValueError):
            ConfigManager(config_dir, env="dev", environ={}).load()

    def test_non_mapping_file(self, config_dir):
        (config_dir / "dev.yaml").write_text("- just\n- a list\n")

        with pytest.raises(ValueError, match="mapping"):
            ConfigManager(config_dir, env="dev", environ={}).load()

    def test_shipped_demo_config(self):
        config = ConfigManager(REPO_CONFIG, env="demo", environ={}).load()

        assert config.is_simulated
        assert config.simulation["finance"]["accrued_yield"] == "12.50"
        assert config.simulation["accounts"]["plug"] == ["rrkah-fqaaa-aaaaa-aaaaq-cai"]
        assert "plug" in config.wallet.providers


class TestCrossChainConfig:

    def test_merged_is_partial(self):
        base = CrossChainConfig(finance_contract_address="inj1vault")

        merged = base.merged(bridge_relay_endpoint="http://relay")

        assert merged.finance_contract_address == "inj1vault"
        assert merged.bridge_relay_endpoint == "http://relay"
        assert base.bridge_relay_endpoint == ""

    def test_unknown_key(self):
        with pytest.raises(ValidationError) as exc_info:
            CrossChainConfig().merged(relay="http://relay")
        assert exc_info.value.field == "relay"

    def test_non_string_value(self):
        with pytest.raises(ValidationError):
            CrossChainConfig().merged(custody_endpoint_id=42)

    def test_to_dict(self):
        assert CrossChainConfig().to_dict() == {
            "custody_endpoint_id": "icp_yield_vault",
            "finance_contract_address": "",
            "bridge_relay_endpoint": "",
            "price_oracle_endpoint": "",
        }
