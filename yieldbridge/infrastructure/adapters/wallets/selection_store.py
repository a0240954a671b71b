"""Provider selection slot storage (JSON file or memory)."""

from __future__ import annotations
from pathlib import Path
from typing import Optional
import json
import os

from ....domain.interfaces.selection_store import ProviderSelectionStore
from ....utils.logging_setup import get_logger
from ....utils.timezone import now_utc


logger = get_logger(__name__)


class FileSelectionStore(ProviderSelectionStore):
    """
    Single-slot JSON file: ``{"provider": "keplr", "saved_at": "..."}``.

    A corrupt or unreadable file reads as an empty slot.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Optional[str]:
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable wallet selection {self.path}: {e}")
            return None
        provider = data.get("provider") if isinstance(data, dict) else None
        return provider if isinstance(provider, str) and provider else None

    def save(self, provider_kind: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump({"provider": provider_kind, "saved_at": now_utc().isoformat()}, f)
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class MemorySelectionStore(ProviderSelectionStore):
    """In-process slot (tests, demo mode)."""

    def __init__(self, initial: Optional[str] = None):
        self.value = initial

    def load(self) -> Optional[str]:
        return self.value

    def save(self, provider_kind: str) -> None:
        self.value = provider_kind

    def clear(self) -> None:
        self.value = None
