"""
Wallet connection state machine.

    DISCONNECTED --connect(kind)--> CONNECTING(kind) --ok--> CONNECTED(kind)
                                          |
                                          +--rejected/unreachable--> DISCONNECTED

Exactly one identity is active at a time. Connecting to another provider
releases the previous session first. The last selected provider kind is
persisted in a single slot so the next start can reconnect silently.
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Union

from ..domain.events.domain_events import WalletEvent
from ..domain.events.event_types import EventType
from ..domain.exceptions import WalletConnectionError
from ..domain.interfaces.event_bus import EventBus
from ..domain.interfaces.selection_store import ProviderSelectionStore
from ..domain.interfaces.wallet_provider import IdentityProvider, WalletProvider
from ..models.wallet import (
    ChainClass,
    ConnectionState,
    ProviderKind,
    WalletIdentity,
    WalletStatus,
)
from ..utils.logging_setup import get_logger
from .side_effects import SideEffectPolicy, run_side_effect


logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Backends (tagged by provider kind)
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class StrategyBackend:
    """Provider-based ecosystem: select the provider, then list its addresses."""
    kind: ProviderKind
    provider: WalletProvider

    async def resolve_address(self) -> str:
        await self.provider.select_provider(self.kind)
        addresses = await self.provider.list_addresses()
        if not addresses:
            raise WalletConnectionError(
                f"{self.kind.value} returned no addresses", provider_kind=self.kind.value
            )
        return addresses[0]

    async def release(self) -> None:
        await self.provider.disconnect()


@dataclass(frozen=True)
class IdentityBackend:
    """Identity flow: request a connection and receive a principal."""
    kind: ProviderKind
    provider: IdentityProvider

    async def resolve_address(self) -> str:
        principal = await self.provider.request_connect()
        if not principal:
            raise WalletConnectionError(
                f"{self.kind.value} granted no principal", provider_kind=self.kind.value
            )
        return principal

    async def release(self) -> None:
        await self.provider.disconnect()


WalletBackend = Union[StrategyBackend, IdentityBackend]


# -----------------------------------------------------------------------------
# Manager
# -----------------------------------------------------------------------------

class WalletConnectionManager:
    """
    Owns the active wallet identity.

    ``chain_class`` is exposed for UI gating only; the chains authorize
    every call themselves.
    """

    def __init__(
        self,
        backends: Iterable[WalletBackend],
        selection_store: ProviderSelectionStore,
        event_bus: Optional[EventBus] = None,
    ):
        self._backends: Dict[ProviderKind, WalletBackend] = {}
        self._store = selection_store
        self._event_bus = event_bus

        self._state = ConnectionState.DISCONNECTED
        self._provider_kind: Optional[ProviderKind] = None
        self._identity: Optional[WalletIdentity] = None
        self._last_error: Optional[str] = None

        # Serializes connect / disconnect / reconnect
        self._lock = asyncio.Lock()
        self._background: Set[asyncio.Task] = set()

        for backend in backends:
            self.register_backend(backend)

    def register_backend(self, backend: WalletBackend) -> None:
        """Register (or replace) the backend for ``backend.kind``."""
        self._backends[backend.kind] = backend
        backend.provider.set_keystore_callback(self.notify_keystore_change)
        logger.info(f"Registered wallet backend: {backend.kind.value} ({type(backend).__name__})")

    def registered_kinds(self) -> List[ProviderKind]:
        return list(self._backends)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def provider_kind(self) -> Optional[ProviderKind]:
        return self._provider_kind

    @property
    def identity(self) -> Optional[WalletIdentity]:
        return self._identity

    @property
    def chain_class(self) -> ChainClass:
        if self._identity is None:
            return ChainClass.NONE
        return self._identity.chain_class

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    def snapshot(self) -> WalletStatus:
        """Immutable view of the current connection for UI consumers."""
        return WalletStatus(
            state=self._state,
            provider_kind=self._provider_kind,
            identity=self._identity,
            last_error=self._last_error,
        )

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    async def connect(self, kind: Union[ProviderKind, str]) -> WalletIdentity:
        """
        Connect to ``kind`` and make its primary address the active identity.

        Raises:
            WalletConnectionError: Unknown/unregistered kind (state untouched),
                or the provider rejected, was unreachable, or returned no
                address (state ends DISCONNECTED).
        """
        kind = self._resolve_kind(kind)
        async with self._lock:
            return await self._connect_locked(kind)

    async def _connect_locked(self, kind: ProviderKind) -> WalletIdentity:
        backend = self._backends.get(kind)
        if backend is None:
            raise WalletConnectionError(
                f"No wallet backend registered for {kind.value}", provider_kind=kind.value
            )

        previous_kind = self._provider_kind
        self._state = ConnectionState.CONNECTING
        self._provider_kind = kind
        self._identity = None
        self._publish(EventType.WALLET_CONNECTING)

        if previous_kind is not None and previous_kind != kind:
            logger.info(f"Replacing {previous_kind.value} session with {kind.value}")
            await run_side_effect(
                f"release {previous_kind.value} session",
                SideEffectPolicy.BEST_EFFORT,
                self._backends[previous_kind].release,
            )

        logger.info(f"Connecting wallet: {kind.value}")

        try:
            address = await backend.resolve_address()
        except Exception as e:
            error = e if isinstance(e, WalletConnectionError) else WalletConnectionError(
                f"{kind.value} connection failed: {e}", provider_kind=kind.value
            )
            self._state = ConnectionState.DISCONNECTED
            self._provider_kind = None
            self._last_error = str(error)
            logger.warning(f"Wallet connection failed: {kind.value}: {error}")
            self._publish(EventType.WALLET_CONNECTION_FAILED, error_message=str(error), kind=kind)
            if error is e:
                raise
            raise error from e

        self._identity = WalletIdentity(provider_kind=kind, address=address)
        self._state = ConnectionState.CONNECTED
        self._last_error = None
        self._persist_selection(kind)

        logger.info(f"Wallet connected: {kind.value} {self._identity.short_address()}")
        self._publish(EventType.WALLET_CONNECTED)
        return self._identity

    async def disconnect(self) -> None:
        """
        Drop the active identity, clear the persisted selection and release
        the provider session. Idempotent.

        Raises:
            WalletConnectionError: The provider failed to release its session.
                The local state is already DISCONNECTED.
        """
        async with self._lock:
            kind = self._provider_kind
            self._clear_selection()
            if kind is None:
                logger.debug("Disconnect requested while already disconnected")
                return

            backend = self._backends[kind]
            self._state = ConnectionState.DISCONNECTED
            self._provider_kind = None
            self._identity = None
            self._last_error = None
            logger.info(f"Wallet disconnected: {kind.value}")
            self._publish(EventType.WALLET_DISCONNECTED, kind=kind)

            try:
                await run_side_effect(
                    f"release {kind.value} session",
                    SideEffectPolicy.MUST_REPORT,
                    backend.release,
                )
            except Exception as e:
                if isinstance(e, WalletConnectionError):
                    raise
                raise WalletConnectionError(
                    f"{kind.value} did not release its session: {e}", provider_kind=kind.value
                ) from e

    async def restore_session(self) -> Optional[WalletIdentity]:
        """
        Reconnect to the persisted provider, if any.

        Failures are logged and swallowed; an unknown persisted value is
        cleared.
        """
        stored = self._store.load()
        if not stored:
            return None

        try:
            kind = ProviderKind.parse(stored)
        except ValueError:
            kind = None
        if kind is None or kind not in self._backends:
            logger.warning(f"Clearing unknown persisted wallet selection: {stored!r}")
            self._clear_selection()
            return None

        logger.info(f"Restoring wallet session: {kind.value}")
        return await run_side_effect(
            f"restore {kind.value} session",
            SideEffectPolicy.BEST_EFFORT,
            lambda: self.connect(kind),
        )

    async def on_keystore_change(self, kind: ProviderKind) -> Optional[WalletIdentity]:
        """
        Reconnect after the connected provider reported a keystore change.

        Notifications for other providers, or while not connected, are ignored.
        The check runs under the connection lock, so a notification that was
        queued behind a provider switch sees the new provider.
        """
        return await run_side_effect(
            f"keystore reconnect {kind.value}",
            SideEffectPolicy.BEST_EFFORT,
            lambda: self._reconnect(kind),
        )

    async def _reconnect(self, kind: ProviderKind) -> Optional[WalletIdentity]:
        async with self._lock:
            if self._state != ConnectionState.CONNECTED or self._provider_kind != kind:
                logger.debug(f"Ignoring keystore change for {kind.value}")
                return None

            logger.info(f"Keystore changed for {kind.value}; reconnecting")
            self._publish(EventType.KEYSTORE_CHANGED)
            return await self._connect_locked(kind)

    def notify_keystore_change(self, kind: ProviderKind) -> Optional[asyncio.Task]:
        """
        Synchronous entry point for provider callbacks.

        Schedules ``on_keystore_change`` on the running loop.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"Keystore change for {kind.value} outside an event loop; ignored")
            return None

        task = loop.create_task(self.on_keystore_change(kind))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _resolve_kind(self, kind: Union[ProviderKind, str]) -> ProviderKind:
        if isinstance(kind, ProviderKind):
            return kind
        try:
            return ProviderKind.parse(kind)
        except ValueError:
            raise WalletConnectionError(f"Unknown wallet provider: {kind!r}", provider_kind=kind)

    def _persist_selection(self, kind: ProviderKind) -> None:
        try:
            self._store.save(kind.value)
        except OSError as e:
            logger.warning(f"Could not persist wallet selection {kind.value}: {e}")

    def _clear_selection(self) -> None:
        try:
            self._store.clear()
        except OSError as e:
            logger.warning(f"Could not clear persisted wallet selection: {e}")

    def _publish(
        self,
        event_type: EventType,
        error_message: Optional[str] = None,
        kind: Optional[ProviderKind] = None,
    ) -> None:
        if self._event_bus is None:
            return
        kind = kind or self._provider_kind
        self._event_bus.publish(event_type, WalletEvent(
            provider_kind=kind.value if kind else "",
            state=self._state.value,
            address=self._identity.address if self._identity else None,
            chain_class=self.chain_class.value,
            error_message=error_message,
        ))
