"""Persistence of the last selected wallet provider (one overwritable slot)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class ProviderSelectionStore(ABC):
    """Client-local single-slot storage for the provider selection."""

    @abstractmethod
    def load(self) -> Optional[str]:
        """Return the stored provider kind value, or None if the slot is empty."""
        pass

    @abstractmethod
    def save(self, provider_kind: str) -> None:
        """Overwrite the slot."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Empty the slot. No-op when already empty."""
        pass
