"""
Configuration manager with environment-based loading.

Supports:
- Base configuration (base.yaml)
- Environment-specific overrides (dev.yaml, demo.yaml, prod.yaml)
- Secrets loading (secrets.yaml - gitignored)
- Environment variable overrides for the cross-chain routing keys
"""

from __future__ import annotations
from pathlib import Path
from typing import Dict, Any, Mapping, Optional
import os
import yaml
import logging

from .models import (
    AppConfig,
    CrossChainConfig,
    CustodyConfig,
    FinanceConfig,
    RelayConfig,
    WalletConfig,
    LoggingConfig,
)


logger = logging.getLogger(__name__)

# Environment variable -> cross_chain key
ENV_OVERRIDES = {
    "YIELDBRIDGE_CUSTODY_CANISTER_ID": "custody_endpoint_id",
    "YIELDBRIDGE_FINANCE_CONTRACT": "finance_contract_address",
    "YIELDBRIDGE_BRIDGE_GATEWAY": "bridge_relay_endpoint",
    "YIELDBRIDGE_PRICE_ORACLE": "price_oracle_endpoint",
}

VALID_MODES = ("simulated", "live")


class ConfigManager:
    """
    Configuration manager with environment support.

    Loads configuration in this order:
    1. base.yaml (default config)
    2. {env}.yaml (environment-specific, e.g., demo.yaml)
    3. secrets.yaml (if exists, gitignored)
    4. YIELDBRIDGE_* environment variables

    Later sources override earlier ones.
    """

    def __init__(
        self,
        config_dir: str | Path = "config",
        env: str = "dev",
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize config manager.

        Args:
            config_dir: Directory containing config files.
            env: Environment name (dev, demo, prod).
            environ: Environment variables (defaults to os.environ).
        """
        self.config_dir = Path(config_dir)
        self.env = env
        self.environ = os.environ if environ is None else environ
        self.config: Dict[str, Any] = {}

    def load(self) -> AppConfig:
        """
        Load configuration from YAML files.

        Returns:
            AppConfig object.

        Raises:
            FileNotFoundError: If base config not found.
            ValueError: If config is invalid.
        """
        base_path = self.config_dir / "base.yaml"
        if not base_path.exists():
            raise FileNotFoundError(f"Base config not found: {base_path}")

        self.config = self._load_yaml(base_path)
        logger.info(f"Loaded base config from {base_path}")

        env_path = self.config_dir / f"{self.env}.yaml"
        if env_path.exists():
            env_config = self._load_yaml(env_path)
            self.config = self._merge_dicts(self.config, env_config)
            logger.info(f"Loaded {self.env} config from {env_path}")

        secrets_path = self.config_dir / "secrets.yaml"
        if secrets_path.exists():
            secrets = self._load_yaml(secrets_path)
            self.config = self._merge_dicts(self.config, secrets)
            logger.info("Loaded secrets")

        self._apply_env_overrides()
        return self._parse_config()

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """Load YAML file."""
        with open(path, "r") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}")
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return data

    def _merge_dicts(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dicts (override wins)."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self) -> None:
        cross_chain = dict(self.config.get("cross_chain") or {})
        for var, key in ENV_OVERRIDES.items():
            value = self.environ.get(var)
            if value:
                cross_chain[key] = value
                logger.info(f"{key} overridden from {var}")
        self.config["cross_chain"] = cross_chain

    def _parse_config(self) -> AppConfig:
        """Parse raw dict into AppConfig."""
        try:
            mode = self.config.get("mode", "simulated")
            if mode not in VALID_MODES:
                raise ValueError(f"mode must be one of {VALID_MODES}, got {mode!r}")

            cross_chain_raw = {
                key: "" if value is None else value
                for key, value in (self.config.get("cross_chain") or {}).items()
            }
            cross_chain = CrossChainConfig().merged(**cross_chain_raw)

            custody_raw = self.config.get("custody", {})
            custody = CustodyConfig(
                gateway_url=custody_raw.get("gateway_url", "http://127.0.0.1:4943"),
                timeout_sec=float(custody_raw.get("timeout_sec", 10.0)),
            )

            finance_raw = self.config.get("finance", {})
            finance = FinanceConfig(
                lcd_url=finance_raw.get("lcd_url", "https://testnet.sentry.lcd.injective.network"),
                executor_url=finance_raw.get("executor_url", "http://127.0.0.1:8787"),
                chain_id=finance_raw.get("chain_id", "injective-888"),
                denom=finance_raw.get("denom", "usdc"),
                timeout_sec=float(finance_raw.get("timeout_sec", 10.0)),
            )

            relay_raw = self.config.get("relay", {})
            relay = RelayConfig(
                symbol=relay_raw.get("symbol", "USDC"),
                timeout_sec=float(relay_raw.get("timeout_sec", 30.0)),
                chain_names={
                    **RelayConfig().chain_names,
                    **relay_raw.get("chain_names", {}),
                },
            )

            wallet_raw = self.config.get("wallet", {})
            wallet_defaults = WalletConfig()
            wallet = WalletConfig(
                keystore_file=wallet_raw.get("keystore_file", wallet_defaults.keystore_file),
                selection_file=wallet_raw.get("selection_file", wallet_defaults.selection_file),
                providers=list(wallet_raw.get("providers", wallet_defaults.providers)),
                auto_reconnect=bool(wallet_raw.get("auto_reconnect", True)),
            )

            logging_raw = self.config.get("logging", {})
            logging_config = LoggingConfig(
                level=logging_raw.get("level", "INFO"),
                directory=logging_raw.get("directory", "./logs"),
                console=bool(logging_raw.get("console", False)),
                timezone=logging_raw.get("timezone", "UTC"),
            )

            return AppConfig(
                mode=mode,
                currency=self.config.get("currency", "USDC"),
                cross_chain=cross_chain,
                custody=custody,
                finance=finance,
                relay=relay,
                wallet=wallet,
                logging=logging_config,
                raw=self.config,
                simulation=self.config.get("simulation"),
            )

        except Exception as e:
            raise ValueError(f"Failed to parse config: {e}")
