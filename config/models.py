"""Configuration data models."""

from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
from typing import Dict, Any, List, Optional

from yieldbridge.domain.exceptions import ValidationError


@dataclass(frozen=True)
class CrossChainConfig:
    """
    Cross-chain routing configuration.

    Updated through partial merges; only supplied keys change.
    """
    custody_endpoint_id: str = "icp_yield_vault"  # Canister id on the custody chain
    finance_contract_address: str = ""
    bridge_relay_endpoint: str = ""
    price_oracle_endpoint: str = ""

    @classmethod
    def keys(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def merged(self, **changes: Any) -> "CrossChainConfig":
        """
        Return a copy with ``changes`` applied.

        Raises:
            ValidationError: For unknown keys or non-string values.
        """
        unknown = sorted(set(changes) - set(self.keys()))
        if unknown:
            raise ValidationError(
                f"Unknown cross-chain config keys: {', '.join(unknown)}", field=unknown[0]
            )
        for key, value in changes.items():
            if not isinstance(value, str):
                raise ValidationError(
                    f"{key} must be a string, got {type(value).__name__}", field=key
                )
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in self.keys()}


@dataclass
class CustodyConfig:
    """Custody chain canister gateway."""
    gateway_url: str
    timeout_sec: float = 10.0


@dataclass
class FinanceConfig:
    """Finance chain LCD (queries) and transaction executor (writes)."""
    lcd_url: str
    executor_url: str
    chain_id: str = "injective-888"
    denom: str = "usdc"
    timeout_sec: float = 10.0


@dataclass
class RelayConfig:
    """Bridge relay (GMP) settings."""
    symbol: str = "USDC"
    timeout_sec: float = 30.0
    chain_names: Dict[str, str] = field(default_factory=lambda: {
        "custody": "internet-computer",
        "finance": "injective",
    })


@dataclass
class WalletConfig:
    """Wallet providers and the persisted selection slot."""
    keystore_file: str = "./data/wallets/keystore.yaml"
    selection_file: str = "./data/wallets/selection.json"
    providers: List[str] = field(default_factory=lambda: ["keplr", "leap", "metamask", "plug"])
    auto_reconnect: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    directory: str = "./logs"
    console: bool = False
    timezone: str = "UTC"  # Timezone for log timestamps ("UTC", "Europe/Zurich" or "local")


@dataclass
class AppConfig:
    """Complete application configuration."""
    mode: str  # "simulated" or "live"
    currency: str
    cross_chain: CrossChainConfig
    custody: CustodyConfig
    finance: FinanceConfig
    relay: RelayConfig
    wallet: WalletConfig
    logging: LoggingConfig
    raw: Dict[str, Any]  # Merged YAML as loaded
    simulation: Optional[Dict[str, Any]] = None  # Seed balances for simulated mode

    @property
    def is_simulated(self) -> bool:
        return self.mode == "simulated"
