"""Infrastructure adapters for external systems."""

from .chains import (
    HttpCustodyClient,
    HttpFinanceClient,
    HttpBridgeRelay,
    SimulatedChain,
    SimulatedCustodyClient,
    SimulatedFinanceClient,
    SimulatedBridgeRelay,
)
from .wallets import (
    KeystoreWalletProvider,
    KeystoreIdentityProvider,
    FileSelectionStore,
    MemorySelectionStore,
)

__all__ = [
    "HttpCustodyClient",
    "HttpFinanceClient",
    "HttpBridgeRelay",
    "SimulatedChain",
    "SimulatedCustodyClient",
    "SimulatedFinanceClient",
    "SimulatedBridgeRelay",
    "KeystoreWalletProvider",
    "KeystoreIdentityProvider",
    "FileSelectionStore",
    "MemorySelectionStore",
]
