"""
Keystore-file wallet providers.

Accounts come from a YAML keystore, one entry per provider kind:

```yaml
keplr:
  accounts: [inj1qy9yf0ssd0xqk6flxmd5y2q4n6tmw0ck8x4c]
leap: [inj1leap7kz9m2qv0d3x5r8w6t4y2u0p9s7f3h5j]   # shorthand
metamask:
  accounts: [inj1mm3f8a0d2c4e6g8j0l2n4p6r8t0v2x4z6b8d]
  reject: true        # user declines the connection request
plug:
  accounts: [rrkah-fqaaa-aaaaa-aaaaq-cai]
```

A top-level ``providers:`` key wrapping the same mapping is also accepted.
``poll_keystore()`` re-reads the file and fires the keystore-change callback
when the account list of the active provider changed.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple
import yaml

from ....domain.exceptions import WalletConnectionError
from ....domain.interfaces.wallet_provider import (
    IdentityProvider,
    KeystoreChangeCallback,
    WalletProvider,
)
from ....models.wallet import ProviderKind
from ....utils.logging_setup import get_logger


logger = get_logger(__name__)

Entries = Dict[str, Dict[str, Any]]


def normalize_entries(data: Any) -> Entries:
    """Normalize raw keystore YAML into ``{kind: {"accounts": [...], "reject": bool}}``."""
    if not data:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError("keystore must be a mapping of provider kind to accounts")
    if "providers" in data and isinstance(data["providers"], Mapping):
        data = data["providers"]

    entries: Entries = {}
    for kind, raw in data.items():
        if isinstance(raw, (list, tuple)):
            raw = {"accounts": list(raw)}
        elif raw is None:
            raw = {}
        elif not isinstance(raw, Mapping):
            raise ValueError(f"keystore entry for {kind!r} must be a list or mapping")
        entries[str(kind).strip().lower()] = {
            "accounts": [str(a) for a in raw.get("accounts") or []],
            "reject": bool(raw.get("reject", False)),
        }
    return entries


def _fingerprint(entries: Entries) -> Dict[str, Tuple[str, ...]]:
    return {kind: tuple(entry["accounts"]) for kind, entry in entries.items()}


class _KeystoreBackedProvider(ABC):
    """File (or in-memory) keystore access shared by both provider shapes."""

    def __init__(
        self,
        keystore_file: Optional[str | Path] = None,
        entries: Optional[Mapping[str, Any]] = None,
    ):
        if keystore_file is None and entries is None:
            raise ValueError("keystore_file or entries is required")
        self._path = Path(keystore_file) if keystore_file is not None else None
        self._entries: Entries = normalize_entries(entries) if entries is not None else {}
        self._callback: Optional[KeystoreChangeCallback] = None
        self._seen: Dict[str, Tuple[str, ...]] = {}

    def set_keystore_callback(self, callback: Optional[KeystoreChangeCallback]) -> None:
        self._callback = callback

    @abstractmethod
    def _active_kind(self) -> Optional[ProviderKind]:
        """Provider kind whose keystore entry is currently in use."""

    def _read(self) -> Entries:
        if self._path is None:
            return self._entries
        try:
            with open(self._path, "r") as f:
                return normalize_entries(yaml.safe_load(f))
        except FileNotFoundError:
            raise WalletConnectionError(f"Keystore not found: {self._path}")
        except (yaml.YAMLError, ValueError) as e:
            raise WalletConnectionError(f"Invalid keystore {self._path}: {e}")

    def _entry(self, kind: ProviderKind) -> Dict[str, Any]:
        entries = self._read()
        self._seen = _fingerprint(entries)
        entry = entries.get(kind.value)
        if entry is None:
            raise WalletConnectionError(f"{kind.value} is not available", provider_kind=kind.value)
        if entry["reject"]:
            raise WalletConnectionError(
                f"{kind.value} connection rejected by user", provider_kind=kind.value
            )
        return entry

    def update_entries(self, entries: Mapping[str, Any]) -> bool:
        """Replace an in-memory keystore and report changes like a file edit."""
        self._entries = normalize_entries(entries)
        return self.poll_keystore()

    def poll_keystore(self) -> bool:
        """
        Re-read the keystore; notify if the active provider's accounts changed.

        Returns:
            True if the keystore-change callback fired.
        """
        try:
            current = _fingerprint(self._read())
        except WalletConnectionError as e:
            logger.debug(f"Keystore poll: {e}")
            current = {}

        previous, self._seen = self._seen, current
        active = self._active_kind()
        if active is None or previous.get(active.value) == current.get(active.value):
            return False

        logger.info(f"Keystore change detected for {active.value}")
        if self._callback is not None:
            self._callback(active)
            return True
        return False


class KeystoreWalletProvider(_KeystoreBackedProvider, WalletProvider):
    """Provider-based wallets (one instance serves every finance-chain kind)."""

    def __init__(
        self,
        keystore_file: Optional[str | Path] = None,
        entries: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(keystore_file, entries)
        self._selected: Optional[ProviderKind] = None

    @property
    def selected(self) -> Optional[ProviderKind]:
        return self._selected

    def _active_kind(self) -> Optional[ProviderKind]:
        return self._selected

    async def select_provider(self, kind: ProviderKind) -> None:
        self._entry(kind)
        self._selected = kind
        logger.debug(f"Selected wallet provider {kind.value}")

    async def list_addresses(self) -> List[str]:
        if self._selected is None:
            raise WalletConnectionError("No wallet provider selected")
        return list(self._entry(self._selected)["accounts"])

    async def disconnect(self) -> None:
        if self._selected is not None:
            logger.debug(f"Released wallet provider {self._selected.value}")
        self._selected = None


class KeystoreIdentityProvider(_KeystoreBackedProvider, IdentityProvider):
    """Identity flow: the first account of the entry is the granted principal."""

    def __init__(
        self,
        keystore_file: Optional[str | Path] = None,
        entries: Optional[Mapping[str, Any]] = None,
        kind: ProviderKind = ProviderKind.PLUG,
    ):
        super().__init__(keystore_file, entries)
        self.kind = kind
        self._principal: Optional[str] = None

    def _active_kind(self) -> Optional[ProviderKind]:
        return self.kind if self._principal is not None else None

    async def request_connect(self) -> str:
        accounts = self._entry(self.kind)["accounts"]
        if not accounts:
            raise WalletConnectionError(
                f"{self.kind.value} granted no principal", provider_kind=self.kind.value
            )
        self._principal = accounts[0]
        return self._principal

    async def disconnect(self) -> None:
        self._principal = None
