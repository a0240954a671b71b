"""
Tests for WalletConnectionManager.

Covers the connection state machine, provider replacement, the persisted
selection slot, session restore and keystore-change reconnects.
"""

import asyncio
from typing import Optional

import pytest

from yieldbridge.application.wallet_manager import (
    IdentityBackend,
    StrategyBackend,
    WalletConnectionManager,
)
from yieldbridge.domain.events.event_types import EventType
from yieldbridge.domain.exceptions import WalletConnectionError
from yieldbridge.domain.interfaces.selection_store import ProviderSelectionStore
from yieldbridge.domain.interfaces.wallet_provider import IdentityProvider
from yieldbridge.infrastructure.adapters.wallets import (
    KeystoreIdentityProvider,
    KeystoreWalletProvider,
    MemorySelectionStore,
)
from yieldbridge.models.wallet import ChainClass, ConnectionState, ProviderKind


PRINCIPAL = "rrkah-fqaaa-aaaaa-aaaaq-cai"

ENTRIES = {
    "keplr": {"accounts": ["inj1keplrprimary", "inj1keplrsecond"]},
    "leap": ["inj1leap"],
    "metamask": {"accounts": ["inj1metamask"], "reject": True},
    "cosmostation": {"accounts": []},
    "plug": [PRINCIPAL],
}


class BrokenIdentityProvider(IdentityProvider):
    async def request_connect(self) -> str:
        raise RuntimeError("extension crashed")

    async def disconnect(self) -> None:
        pass


class SlowReleaseWalletProvider(KeystoreWalletProvider):
    """Holds `disconnect` open until the test lets it finish."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.releasing = asyncio.Event()
        self.may_release = asyncio.Event()

    async def disconnect(self) -> None:
        self.releasing.set()
        await self.may_release.wait()
        await super().disconnect()


class StuckIdentityProvider(KeystoreIdentityProvider):
    async def disconnect(self) -> None:
        raise RuntimeError("extension not responding")


class ReadOnlyStore(ProviderSelectionStore):
    """Slot whose writes always fail."""

    def load(self) -> Optional[str]:
        return None

    def save(self, provider_kind: str) -> None:
        raise PermissionError("read-only")

    def clear(self) -> None:
        raise PermissionError("read-only")


@pytest.fixture
def wallet_provider():
    return KeystoreWalletProvider(entries=ENTRIES)


@pytest.fixture
def identity_provider():
    return KeystoreIdentityProvider(entries=ENTRIES)


@pytest.fixture
def store():
    return MemorySelectionStore()


@pytest.fixture
def manager(wallet_provider, identity_provider, store, recording_bus):
    backends = [
        StrategyBackend(ProviderKind.KEPLR, wallet_provider),
        StrategyBackend(ProviderKind.LEAP, wallet_provider),
        StrategyBackend(ProviderKind.METAMASK, wallet_provider),
        IdentityBackend(ProviderKind.PLUG, identity_provider),
    ]
    return WalletConnectionManager(backends, store, event_bus=recording_bus)


class TestConnect:
    """DISCONNECTED -> CONNECTING -> CONNECTED."""

    def test_starts_disconnected(self, manager):
        status = manager.snapshot()

        assert status.state == ConnectionState.DISCONNECTED
        assert status.identity is None
        assert status.chain_class == ChainClass.NONE
        assert not manager.is_connected

    @pytest.mark.asyncio
    async def test_connect_uses_primary_address(self, manager, store, recording_bus):
        identity = await manager.connect(ProviderKind.KEPLR)

        assert identity.address == "inj1keplrprimary"
        assert identity.provider_kind == ProviderKind.KEPLR
        assert manager.state == ConnectionState.CONNECTED
        assert manager.identity == identity
        assert manager.chain_class == ChainClass.FINANCE
        assert store.value == "keplr"

        assert recording_bus.event_types() == [
            EventType.WALLET_CONNECTING,
            EventType.WALLET_CONNECTED,
        ]
        connected = recording_bus.get_events_of_type(EventType.WALLET_CONNECTED)[0]
        assert connected.address == "inj1keplrprimary"
        assert connected.chain_class == "finance"
        assert connected.state == "connected"

    @pytest.mark.asyncio
    async def test_connect_by_name(self, manager):
        identity = await manager.connect(" Leap ")

        assert identity.provider_kind == ProviderKind.LEAP

    @pytest.mark.asyncio
    async def test_identity_flow(self, manager, store):
        identity = await manager.connect(ProviderKind.PLUG)

        assert identity.address == PRINCIPAL
        assert manager.chain_class == ChainClass.CUSTODY
        assert store.value == "plug"

    @pytest.mark.asyncio
    async def test_rejected_ends_disconnected(self, manager, store, recording_bus):
        with pytest.raises(WalletConnectionError) as exc_info:
            await manager.connect(ProviderKind.METAMASK)

        assert "rejected" in str(exc_info.value)
        assert exc_info.value.provider_kind == "metamask"
        assert manager.state == ConnectionState.DISCONNECTED
        assert manager.provider_kind is None
        assert manager.identity is None
        assert manager.snapshot().last_error is not None
        assert store.value is None

        failed = recording_bus.get_events_of_type(EventType.WALLET_CONNECTION_FAILED)
        assert len(failed) == 1
        assert failed[0].provider_kind == "metamask"
        assert failed[0].state == "disconnected"

    @pytest.mark.asyncio
    async def test_empty_address_list_is_a_failure(self, manager, wallet_provider):
        manager.register_backend(StrategyBackend(ProviderKind.COSMOSTATION, wallet_provider))

        with pytest.raises(WalletConnectionError) as exc_info:
            await manager.connect(ProviderKind.COSMOSTATION)

        assert "no addresses" in str(exc_info.value)
        assert manager.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_unexpected_provider_error_is_wrapped(self, store):
        manager = WalletConnectionManager(
            [IdentityBackend(ProviderKind.PLUG, BrokenIdentityProvider())], store
        )

        with pytest.raises(WalletConnectionError) as exc_info:
            await manager.connect(ProviderKind.PLUG)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert manager.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_unknown_provider_name(self, manager, recording_bus):
        with pytest.raises(WalletConnectionError):
            await manager.connect("phantom")

        assert recording_bus.published_events == []

    @pytest.mark.asyncio
    async def test_unregistered_kind_leaves_state_untouched(self, manager):
        await manager.connect(ProviderKind.KEPLR)

        with pytest.raises(WalletConnectionError):
            await manager.connect(ProviderKind.COSMOSTATION)

        assert manager.state == ConnectionState.CONNECTED
        assert manager.provider_kind == ProviderKind.KEPLR

    @pytest.mark.asyncio
    async def test_persist_failure_does_not_fail_connect(self, wallet_provider):
        manager = WalletConnectionManager(
            [StrategyBackend(ProviderKind.KEPLR, wallet_provider)], ReadOnlyStore()
        )

        identity = await manager.connect(ProviderKind.KEPLR)

        assert identity.address == "inj1keplrprimary"
        assert manager.is_connected


class TestProviderReplacement:
    """Exactly one identity is active."""

    @pytest.mark.asyncio
    async def test_switching_releases_previous_session(self, manager, wallet_provider, store):
        await manager.connect(ProviderKind.KEPLR)
        assert wallet_provider.selected == ProviderKind.KEPLR

        identity = await manager.connect(ProviderKind.PLUG)

        assert wallet_provider.selected is None
        assert manager.identity == identity
        assert identity.address == PRINCIPAL
        assert store.value == "plug"

    @pytest.mark.asyncio
    async def test_switch_between_strategy_providers(self, manager, wallet_provider):
        await manager.connect(ProviderKind.KEPLR)
        identity = await manager.connect(ProviderKind.LEAP)

        assert identity.address == "inj1leap"
        assert wallet_provider.selected == ProviderKind.LEAP

    @pytest.mark.asyncio
    async def test_failed_switch_drops_previous_identity(self, manager):
        await manager.connect(ProviderKind.KEPLR)

        with pytest.raises(WalletConnectionError):
            await manager.connect(ProviderKind.METAMASK)

        assert manager.identity is None
        assert manager.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_reconnect_after_disconnect_uses_new_provider(self, manager):
        await manager.connect(ProviderKind.KEPLR)
        await manager.disconnect()

        identity = await manager.connect(ProviderKind.LEAP)

        assert identity.address == "inj1leap"
        assert manager.identity.provider_kind == ProviderKind.LEAP


    @pytest.mark.asyncio
    async def test_switch_survives_failing_release(self, wallet_provider, store):
        manager = WalletConnectionManager(
            [
                IdentityBackend(ProviderKind.PLUG, StuckIdentityProvider(entries=ENTRIES)),
                StrategyBackend(ProviderKind.KEPLR, wallet_provider),
            ],
            store,
        )
        await manager.connect(ProviderKind.PLUG)

        identity = await manager.connect(ProviderKind.KEPLR)

        assert identity.address == "inj1keplrprimary"
        assert manager.state == ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_state_during_switch_is_connecting(self, identity_provider, store):
        slow = SlowReleaseWalletProvider(entries=ENTRIES)
        manager = WalletConnectionManager(
            [StrategyBackend(ProviderKind.KEPLR, slow), IdentityBackend(ProviderKind.PLUG, identity_provider)],
            store,
        )
        await manager.connect(ProviderKind.KEPLR)

        switch = asyncio.create_task(manager.connect(ProviderKind.PLUG))
        await slow.releasing.wait()

        assert manager.state == ConnectionState.CONNECTING
        assert manager.provider_kind == ProviderKind.PLUG
        assert manager.identity is None

        slow.may_release.set()
        identity = await switch
        assert manager.identity == identity


class TestDisconnect:

    @pytest.mark.asyncio
    async def test_release_failure_is_reported(self, store, recording_bus):
        manager = WalletConnectionManager(
            [IdentityBackend(ProviderKind.PLUG, StuckIdentityProvider(entries=ENTRIES))],
            store,
            event_bus=recording_bus,
        )
        await manager.connect(ProviderKind.PLUG)

        with pytest.raises(WalletConnectionError) as exc_info:
            await manager.disconnect()

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert manager.state == ConnectionState.DISCONNECTED
        assert manager.identity is None
        assert store.value is None
        assert EventType.WALLET_DISCONNECTED in recording_bus.event_types()

    @pytest.mark.asyncio
    async def test_disconnect_clears_everything(self, manager, wallet_provider, store, recording_bus):
        await manager.connect(ProviderKind.KEPLR)

        await manager.disconnect()

        assert manager.state == ConnectionState.DISCONNECTED
        assert manager.identity is None
        assert manager.provider_kind is None
        assert store.value is None
        assert wallet_provider.selected is None
        disconnected = recording_bus.get_events_of_type(EventType.WALLET_DISCONNECTED)
        assert [e.provider_kind for e in disconnected] == ["keplr"]

    @pytest.mark.asyncio
    async def test_disconnect_is_idempotent(self, manager, recording_bus):
        await manager.disconnect()
        await manager.disconnect()

        assert recording_bus.published_events == []

    @pytest.mark.asyncio
    async def test_disconnect_clears_stale_slot(self, manager, store):
        store.value = "leap"

        await manager.disconnect()

        assert store.value is None


class TestRestoreSession:

    @pytest.mark.asyncio
    async def test_restores_persisted_provider(self, manager, store):
        store.value = "leap"

        identity = await manager.restore_session()

        assert identity.address == "inj1leap"
        assert manager.is_connected

    @pytest.mark.asyncio
    async def test_empty_slot(self, manager):
        assert await manager.restore_session() is None
        assert manager.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stored", ["bogus", "cosmostation"])
    async def test_unknown_or_unregistered_value_is_cleared(self, manager, store, stored):
        store.value = stored

        assert await manager.restore_session() is None
        assert store.value is None

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self, manager, store):
        store.value = "metamask"

        assert await manager.restore_session() is None
        assert manager.state == ConnectionState.DISCONNECTED


class TestKeystoreChange:

    @pytest.mark.asyncio
    async def test_keystore_edit_reconnects_with_new_primary(self, manager, wallet_provider, recording_bus):
        await manager.connect(ProviderKind.KEPLR)
        tasks = []
        wallet_provider.set_keystore_callback(
            lambda kind: tasks.append(manager.notify_keystore_change(kind))
        )

        changed = wallet_provider.update_entries({**ENTRIES, "keplr": ["inj1keplrrotated"]})
        await asyncio.gather(*tasks)

        assert changed
        assert len(tasks) == 1
        assert manager.identity.address == "inj1keplrrotated"
        assert EventType.KEYSTORE_CHANGED in recording_bus.event_types()

    @pytest.mark.asyncio
    async def test_unrelated_keystore_edit_is_ignored(self, manager, wallet_provider):
        await manager.connect(ProviderKind.KEPLR)

        changed = wallet_provider.update_entries({**ENTRIES, "leap": ["inj1leaprotated"]})

        assert not changed
        assert manager.identity.address == "inj1keplrprimary"

    @pytest.mark.asyncio
    async def test_change_for_other_provider_is_ignored(self, manager):
        await manager.connect(ProviderKind.KEPLR)

        assert await manager.on_keystore_change(ProviderKind.LEAP) is None
        assert manager.provider_kind == ProviderKind.KEPLR

    @pytest.mark.asyncio
    async def test_change_while_disconnected_is_ignored(self, manager):
        assert await manager.on_keystore_change(ProviderKind.KEPLR) is None
        assert manager.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_change_queued_behind_switch_is_ignored(self, identity_provider, store):
        slow = SlowReleaseWalletProvider(entries=ENTRIES)
        manager = WalletConnectionManager(
            [StrategyBackend(ProviderKind.KEPLR, slow), IdentityBackend(ProviderKind.PLUG, identity_provider)],
            store,
        )
        await manager.connect(ProviderKind.KEPLR)

        switch = asyncio.create_task(manager.connect(ProviderKind.PLUG))
        await slow.releasing.wait()
        stale = asyncio.create_task(manager.on_keystore_change(ProviderKind.KEPLR))
        await asyncio.sleep(0)
        slow.may_release.set()

        identity = await switch
        assert await stale is None
        assert manager.provider_kind == ProviderKind.PLUG
        assert manager.identity == identity
        assert identity.address == PRINCIPAL

    @pytest.mark.asyncio
    async def test_failed_reconnect_is_swallowed(self, manager, wallet_provider):
        await manager.connect(ProviderKind.KEPLR)
        wallet_provider.set_keystore_callback(None)
        wallet_provider.update_entries({**ENTRIES, "keplr": {"accounts": ["inj1x"], "reject": True}})

        assert await manager.on_keystore_change(ProviderKind.KEPLR) is None
        assert manager.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_notify_returns_task(self, manager):
        await manager.connect(ProviderKind.PLUG)

        task = manager.notify_keystore_change(ProviderKind.PLUG)
        identity = await task

        assert identity.address == PRINCIPAL

    def test_notify_outside_event_loop(self, manager):
        assert manager.notify_keystore_change(ProviderKind.KEPLR) is None
