"""Wallet provider interfaces.

Two shapes of backend exist:

- Provider-based ecosystems (Keplr, Leap, MetaMask, ...) expose a capability
  interface: pick the provider, list its addresses, release the session.
- The custody-chain identity flow has no address list; it asks the identity
  provider for a connection and receives a principal.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from ...models.wallet import ProviderKind


# Called with the provider kind whose keystore (account set) changed
KeystoreChangeCallback = Callable[[ProviderKind], None]


class WalletProvider(ABC):
    """
    Capability interface for provider-based wallet ecosystems.

    One instance may serve several provider kinds (like a wallet strategy
    that can switch between extensions).
    """

    @abstractmethod
    async def select_provider(self, kind: ProviderKind) -> None:
        """
        Make ``kind`` the active provider.

        Raises:
            WalletConnectionError: If the provider is unavailable or the user
                rejected the request.
        """
        pass

    @abstractmethod
    async def list_addresses(self) -> List[str]:
        """
        List addresses exposed by the selected provider, primary first.

        Raises:
            WalletConnectionError: If the provider cannot be reached.
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the provider session."""
        pass

    def set_keystore_callback(self, callback: Optional[KeystoreChangeCallback]) -> None:
        """
        Register a callback for keystore-change notifications.

        Providers without change notifications can keep this no-op.
        """
        pass


class IdentityProvider(ABC):
    """Identity integration for the custody chain (no provider selection)."""

    @abstractmethod
    async def request_connect(self) -> str:
        """
        Request a connection and return the granted principal.

        Raises:
            WalletConnectionError: If the request was rejected or timed out.
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the identity session."""
        pass

    def set_keystore_callback(self, callback: Optional[KeystoreChangeCallback]) -> None:
        """Register a callback for identity-change notifications (optional)."""
        pass
