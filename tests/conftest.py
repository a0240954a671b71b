"""Pytest configuration and fixtures."""

from decimal import Decimal
from typing import Any, List, Tuple

import pytest

from config.models import CrossChainConfig
from yieldbridge.application.orchestrator import CrossChainOrchestrator
from yieldbridge.application.transaction_ledger import TransactionLedger
from yieldbridge.domain.events.event_types import EventType
from yieldbridge.infrastructure.adapters.chains import (
    SimulatedAccount,
    SimulatedBridgeRelay,
    SimulatedChain,
    SimulatedCustodyClient,
    SimulatedFinanceClient,
)
from yieldbridge.models.chain import Chain
from yieldbridge.models.wallet import ProviderKind, WalletIdentity


FINANCE_ADDRESS = "inj1qy9yf0ssd0xqk6flxmd5y2q4n6tmw0ck8x4c"
CUSTODY_PRINCIPAL = "rrkah-fqaaa-aaaaa-aaaaq-cai"


class RecordingEventBus:
    """Event bus that records every publish."""

    def __init__(self):
        self.published_events: List[Tuple[EventType, Any]] = []

    def publish(self, event_type: EventType, payload: Any) -> None:
        self.published_events.append((event_type, payload))

    def subscribe(self, event_type, callback) -> None:
        pass

    def unsubscribe(self, event_type, callback) -> None:
        pass

    def get_events_of_type(self, event_type: EventType) -> List[Any]:
        return [p for et, p in self.published_events if et == event_type]

    def event_types(self) -> List[EventType]:
        return [et for et, _ in self.published_events]


@pytest.fixture
def recording_bus() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def custody_state() -> SimulatedChain:
    """Custody ledger seeded like the demo: 1000 USDC, 0.01 BTC per account."""
    return SimulatedChain(
        Chain.CUSTODY,
        template=SimulatedAccount(
            stablecoin=Decimal("1000"),
            bitcoin=Decimal("0.01"),
            cumulative_yield=Decimal("150.50"),
        ),
    )


@pytest.fixture
def finance_state() -> SimulatedChain:
    """Finance ledger seeded like the demo: 500 USDC, 12.50 accrued."""
    return SimulatedChain(
        Chain.FINANCE,
        template=SimulatedAccount(stablecoin=Decimal("500"), cumulative_yield=Decimal("75.25")),
        pending_yield=Decimal("12.50"),
    )


@pytest.fixture
def custody_client(custody_state) -> SimulatedCustodyClient:
    return SimulatedCustodyClient(custody_state)


@pytest.fixture
def finance_client(finance_state, custody_state) -> SimulatedFinanceClient:
    return SimulatedFinanceClient(finance_state, yield_destination=custody_state)


@pytest.fixture
def bridge_relay(custody_state, finance_state) -> SimulatedBridgeRelay:
    return SimulatedBridgeRelay({Chain.CUSTODY: custody_state, Chain.FINANCE: finance_state})


@pytest.fixture
def cross_chain_config() -> CrossChainConfig:
    return CrossChainConfig(
        custody_endpoint_id="icp_yield_vault",
        finance_contract_address="inj1vaultcontract",
        bridge_relay_endpoint="http://relay.local",
        price_oracle_endpoint="http://oracle.local",
    )


@pytest.fixture
def ledger() -> TransactionLedger:
    return TransactionLedger()


@pytest.fixture
def orchestrator(
    custody_client, finance_client, bridge_relay, cross_chain_config, ledger, recording_bus
) -> CrossChainOrchestrator:
    """Uninitialized orchestrator over simulated chains."""
    return CrossChainOrchestrator(
        custody=custody_client,
        finance=finance_client,
        relay=bridge_relay,
        config=cross_chain_config,
        ledger=ledger,
        event_bus=recording_bus,
    )


@pytest.fixture
def finance_identity() -> WalletIdentity:
    return WalletIdentity(provider_kind=ProviderKind.KEPLR, address=FINANCE_ADDRESS)


@pytest.fixture
def custody_identity() -> WalletIdentity:
    return WalletIdentity(provider_kind=ProviderKind.PLUG, address=CUSTODY_PRINCIPAL)
