"""
Application Bootstrap - Composition Root for Service Wiring.

This module provides the AppContainer class that encapsulates all service
instantiation and dependency injection, making the initialization order
explicit and testable.

Usage:
    container = AppContainer(config, env="demo")
    await container.initialize()
    tx = await container.orchestrator.deposit(Chain.FINANCE, 500, identity)
    await container.cleanup()
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config.models import AppConfig

from ..domain.exceptions import ConfigurationError
from ..domain.interfaces.chain_client import BridgeRelay, CustodyChainClient, FinanceChainClient
from ..domain.interfaces.selection_store import ProviderSelectionStore
from ..domain.services.balance_aggregator import BalanceAggregator
from ..infrastructure.adapters.chains import (
    HttpBridgeRelay,
    HttpCustodyClient,
    HttpFinanceClient,
    SimulatedBridgeRelay,
    SimulatedChain,
    SimulatedCustodyClient,
    SimulatedFinanceClient,
)
from ..infrastructure.adapters.wallets import (
    FileSelectionStore,
    KeystoreIdentityProvider,
    KeystoreWalletProvider,
)
from ..models.chain import Chain
from ..models.wallet import ChainClass, ProviderKind
from ..utils.logging_setup import get_logger
from .orchestrator import CrossChainOrchestrator
from .simple_event_bus import SimpleEventBus
from .transaction_ledger import TransactionLedger
from .wallet_manager import IdentityBackend, StrategyBackend, WalletBackend, WalletConnectionManager


logger = get_logger(__name__)


@dataclass
class AppContainer:
    """
    Composition root for all application services.

    Manages service lifecycle: creation, wiring, and cleanup.

    Attributes:
        config: Application configuration.
        env: Environment name (dev, prod, demo).
        selection_store: Override for the persisted provider slot.
        restore_wallet: Whether to auto-reconnect the persisted provider.
    """
    config: AppConfig
    env: str
    selection_store: Optional[ProviderSelectionStore] = None
    restore_wallet: bool = True

    # Core
    event_bus: Optional[SimpleEventBus] = field(default=None, init=False)
    ledger: Optional[TransactionLedger] = field(default=None, init=False)
    aggregator: Optional[BalanceAggregator] = field(default=None, init=False)

    # Chains
    custody: Optional[CustodyChainClient] = field(default=None, init=False)
    finance: Optional[FinanceChainClient] = field(default=None, init=False)
    relay: Optional[BridgeRelay] = field(default=None, init=False)
    simulated_chains: Dict[Chain, SimulatedChain] = field(default_factory=dict, init=False)

    # Wallets
    wallet_provider: Optional[KeystoreWalletProvider] = field(default=None, init=False)
    identity_provider: Optional[KeystoreIdentityProvider] = field(default=None, init=False)
    wallet_manager: Optional[WalletConnectionManager] = field(default=None, init=False)

    # Application layer
    orchestrator: Optional[CrossChainOrchestrator] = field(default=None, init=False)

    _initialized: bool = field(default=False, init=False)

    async def initialize(self) -> None:
        """
        Initialize all services in correct order.

        Raises:
            RuntimeError: If called twice.
            ConfigurationError: For unknown wallet providers.
            ChainOperationError: If a chain endpoint cannot be reached.
        """
        if self._initialized:
            raise RuntimeError("AppContainer already initialized")

        # Phase 1: Core
        self.event_bus = SimpleEventBus()
        self.ledger = TransactionLedger()
        self.aggregator = BalanceAggregator()

        # Phase 2: Chain adapters
        if self.config.is_simulated:
            self._create_simulated_chains()
        else:
            self._create_http_chains()

        # Phase 3: Wallets
        self._create_wallet_manager()

        # Phase 4: Orchestrator (depends on all above)
        self.orchestrator = CrossChainOrchestrator(
            custody=self.custody,
            finance=self.finance,
            relay=self.relay,
            config=self.config.cross_chain,
            ledger=self.ledger,
            event_bus=self.event_bus,
            currency=self.config.currency,
        )
        await self.orchestrator.initialize()

        # Phase 5: Restore the last wallet session (best-effort)
        if self.restore_wallet and self.config.wallet.auto_reconnect:
            await self.wallet_manager.restore_session()

        self._initialized = True
        logger.info(f"AppContainer initialized (env={self.env}, mode={self.config.mode})")

    def _create_simulated_chains(self) -> None:
        """Phase 2 (demo): in-memory ledgers seeded from ``simulation``."""
        settings: Dict[str, Any] = self.config.simulation or {}
        custody_state = SimulatedChain.from_settings(Chain.CUSTODY, settings.get("custody"))
        finance_state = SimulatedChain.from_settings(Chain.FINANCE, settings.get("finance"))
        self.simulated_chains = {Chain.CUSTODY: custody_state, Chain.FINANCE: finance_state}

        self.custody = SimulatedCustodyClient(custody_state)
        self.finance = SimulatedFinanceClient(finance_state, yield_destination=custody_state)
        self.relay = SimulatedBridgeRelay(self.simulated_chains)
        logger.info("Simulated chains created")

    def _create_http_chains(self) -> None:
        """Phase 2 (live): HTTP adapters."""
        cross_chain = self.config.cross_chain
        self.custody = HttpCustodyClient(
            gateway_url=self.config.custody.gateway_url,
            canister_id=cross_chain.custody_endpoint_id,
            timeout_sec=self.config.custody.timeout_sec,
        )
        self.finance = HttpFinanceClient(
            lcd_url=self.config.finance.lcd_url,
            executor_url=self.config.finance.executor_url,
            contract_address=cross_chain.finance_contract_address,
            timeout_sec=self.config.finance.timeout_sec,
        )
        self.relay = HttpBridgeRelay(
            endpoint=cross_chain.bridge_relay_endpoint,
            symbol=self.config.relay.symbol,
            chain_names=self.config.relay.chain_names,
            destination_addresses={
                Chain.CUSTODY: cross_chain.custody_endpoint_id,
                Chain.FINANCE: cross_chain.finance_contract_address,
            },
            timeout_sec=self.config.relay.timeout_sec,
        )
        logger.info("HTTP chain adapters created")

    def _create_wallet_manager(self) -> None:
        """Phase 3: keystore providers, selection slot and state machine."""
        wallet_config = self.config.wallet
        accounts = (self.config.simulation or {}).get("accounts")
        keystore_kwargs: Dict[str, Any]
        if self.config.is_simulated and accounts:
            keystore_kwargs = {"entries": accounts}
        else:
            keystore_kwargs = {"keystore_file": wallet_config.keystore_file}

        backends: List[WalletBackend] = []
        for name in wallet_config.providers:
            try:
                kind = ProviderKind.parse(name)
            except ValueError:
                raise ConfigurationError(f"Unknown wallet provider in config: {name!r}")
            backends.append(self._backend_for(kind, keystore_kwargs))

        if self.selection_store is None:
            self.selection_store = FileSelectionStore(wallet_config.selection_file)

        self.wallet_manager = WalletConnectionManager(
            backends=backends,
            selection_store=self.selection_store,
            event_bus=self.event_bus,
        )

    def _backend_for(self, kind: ProviderKind, keystore_kwargs: Dict[str, Any]) -> WalletBackend:
        if kind.chain_class is ChainClass.CUSTODY:
            if self.identity_provider is None:
                self.identity_provider = KeystoreIdentityProvider(kind=kind, **keystore_kwargs)
            return IdentityBackend(kind=kind, provider=self.identity_provider)
        if self.wallet_provider is None:
            self.wallet_provider = KeystoreWalletProvider(**keystore_kwargs)
        return StrategyBackend(kind=kind, provider=self.wallet_provider)

    async def cleanup(self) -> None:
        """Shut down the orchestrator and its chain connections."""
        if self.orchestrator is not None:
            await self.orchestrator.shutdown()
        self._initialized = False
        logger.info("AppContainer cleanup complete")
