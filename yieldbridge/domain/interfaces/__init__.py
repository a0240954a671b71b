"""Domain interfaces for dependency injection."""

from .wallet_provider import WalletProvider, IdentityProvider, KeystoreChangeCallback
from .chain_client import ChainClient, CustodyChainClient, FinanceChainClient, BridgeRelay
from .selection_store import ProviderSelectionStore
from .event_bus import EventBus, EventType

__all__ = [
    "WalletProvider",
    "IdentityProvider",
    "KeystoreChangeCallback",
    "ChainClient",
    "CustodyChainClient",
    "FinanceChainClient",
    "BridgeRelay",
    "ProviderSelectionStore",
    "EventBus",
    "EventType",
]
