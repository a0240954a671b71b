"""Wallet provider and selection-store adapters."""

from .keystore_provider import KeystoreWalletProvider, KeystoreIdentityProvider, normalize_entries
from .selection_store import FileSelectionStore, MemorySelectionStore

__all__ = [
    "KeystoreWalletProvider",
    "KeystoreIdentityProvider",
    "normalize_entries",
    "FileSelectionStore",
    "MemorySelectionStore",
]
