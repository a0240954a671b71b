"""Tests for AppContainer wiring in simulated mode."""

from decimal import Decimal
from pathlib import Path

import pytest

from config.config_manager import ConfigManager
from yieldbridge.application.bootstrap import AppContainer
from yieldbridge.domain.events import EventType
from yieldbridge.domain.exceptions import ConfigurationError
from yieldbridge.infrastructure.adapters.chains import SimulatedCustodyClient
from yieldbridge.infrastructure.adapters.wallets import MemorySelectionStore
from yieldbridge.models.chain import Chain
from yieldbridge.models.transaction import TransactionStatus
from yieldbridge.models.wallet import ProviderKind


REPO_CONFIG = Path(__file__).resolve().parents[2] / "config"


@pytest.fixture
def demo_config():
    return ConfigManager(REPO_CONFIG, env="demo", environ={}).load()


class TestAppContainer:

    @pytest.mark.asyncio
    async def test_initialize_demo(self, demo_config):
        container = AppContainer(demo_config, env="demo", selection_store=MemorySelectionStore())

        await container.initialize()

        assert container.orchestrator.is_initialized
        assert isinstance(container.custody, SimulatedCustodyClient)
        assert set(container.wallet_manager.registered_kinds()) == set(ProviderKind)
        assert container.wallet_manager.identity is None

        await container.cleanup()
        assert not container.orchestrator.is_initialized

    @pytest.mark.asyncio
    async def test_restores_persisted_wallet(self, demo_config):
        container = AppContainer(demo_config, env="demo", selection_store=MemorySelectionStore("plug"))

        await container.initialize()

        identity = container.wallet_manager.identity
        assert identity.provider_kind == ProviderKind.PLUG
        assert identity.address == "rrkah-fqaaa-aaaaa-aaaaq-cai"
        await container.cleanup()

    @pytest.mark.asyncio
    async def test_restore_can_be_disabled(self, demo_config):
        container = AppContainer(
            demo_config, env="demo", selection_store=MemorySelectionStore("plug"), restore_wallet=False
        )

        await container.initialize()

        assert container.wallet_manager.identity is None
        await container.cleanup()

    @pytest.mark.asyncio
    async def test_demo_flow_with_seeded_balances(self, demo_config):
        container = AppContainer(demo_config, env="demo", selection_store=MemorySelectionStore())
        await container.initialize()
        orchestrator = container.orchestrator

        keplr = await container.wallet_manager.connect("keplr")
        deposit = await orchestrator.deposit(Chain.FINANCE, 500, keplr)
        skim = await orchestrator.trigger_yield_skim(keplr)
        plug = await container.wallet_manager.connect("plug")
        convert = await orchestrator.convert_yield_to_bitcoin(plug, "45.67")

        assert [tx.status for tx in (deposit, skim, convert)] == [TransactionStatus.COMPLETED] * 3
        assert deposit.identity == keplr
        assert container.simulated_chains[Chain.CUSTODY].pending_yield == Decimal("12.50")

        balances = await orchestrator.get_balances([keplr, plug])
        aggregated = container.aggregator.aggregate(balances)
        assert aggregated.total_stablecoin == Decimal("1954.33")
        assert aggregated.total_bitcoin == Decimal("0.01101488")
        assert not aggregated.has_anomalies

        await container.cleanup()

    @pytest.mark.asyncio
    async def test_events_reach_the_bus(self, demo_config):
        container = AppContainer(demo_config, env="demo", selection_store=MemorySelectionStore())
        await container.initialize()
        seen = []
        container.event_bus.subscribe(EventType.TRANSACTION_COMPLETED, seen.append)

        await container.orchestrator.deposit(Chain.CUSTODY, 1)

        assert [e.status for e in seen] == ["completed"]
        await container.cleanup()

    @pytest.mark.asyncio
    async def test_unknown_provider_in_config(self, demo_config):
        demo_config.wallet.providers.append("phantom")
        container = AppContainer(demo_config, env="demo", selection_store=MemorySelectionStore())

        with pytest.raises(ConfigurationError):
            await container.initialize()

    @pytest.mark.asyncio
    async def test_initialize_twice(self, demo_config):
        container = AppContainer(demo_config, env="demo", selection_store=MemorySelectionStore())
        await container.initialize()

        with pytest.raises(RuntimeError):
            await container.initialize()
        await container.cleanup()
