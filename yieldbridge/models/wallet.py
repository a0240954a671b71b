"""Wallet identity and connection models."""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .chain import Chain
from ..utils.timezone import now_utc


class ProviderKind(Enum):
    """Supported wallet providers."""
    KEPLR = "keplr"
    LEAP = "leap"
    METAMASK = "metamask"
    COSMOSTATION = "cosmostation"
    PLUG = "plug"  # Custody-chain identity flow (principal, no address list)

    @property
    def chain_class(self) -> "ChainClass":
        """Ledger an identity from this provider belongs to."""
        if self is ProviderKind.PLUG:
            return ChainClass.CUSTODY
        return ChainClass.FINANCE

    @classmethod
    def parse(cls, value: str) -> "ProviderKind":
        """Parse a provider kind from its string value (case-insensitive)."""
        return cls(value.strip().lower())


class ChainClass(Enum):
    """
    Coarse connection classification for UI gating.

    Never used for authorization; the chains authorize every call.
    """
    NONE = "none"
    CUSTODY = "custody"
    FINANCE = "finance"

    @property
    def chain(self) -> Optional[Chain]:
        """The ledger this class maps to, if any."""
        if self is ChainClass.CUSTODY:
            return Chain.CUSTODY
        if self is ChainClass.FINANCE:
            return Chain.FINANCE
        return None


class ConnectionState(Enum):
    """Wallet connection state machine states."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class WalletIdentity:
    """
    Signing identity resolved from a wallet provider.

    ``address`` is a bech32/hex address for finance-chain providers and a
    principal for the custody-chain identity flow.
    """
    provider_kind: ProviderKind
    address: str
    status: ConnectionState = ConnectionState.CONNECTED
    connected_at: datetime = field(default_factory=now_utc)

    @property
    def chain_class(self) -> ChainClass:
        return self.provider_kind.chain_class

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionState.CONNECTED

    def is_valid_for(self, chain: Chain) -> bool:
        """Whether this identity can query/sign on ``chain``."""
        return self.is_connected and self.chain_class.chain == chain

    def short_address(self) -> str:
        """Abbreviated address for display (e.g. ``inj1qy…8x4c``)."""
        if len(self.address) <= 14:
            return self.address
        return f"{self.address[:6]}…{self.address[-4:]}"


@dataclass(frozen=True)
class WalletStatus:
    """Snapshot of the connection manager for UI consumers."""
    state: ConnectionState
    provider_kind: Optional[ProviderKind] = None
    identity: Optional[WalletIdentity] = None
    last_error: Optional[str] = None

    @property
    def chain_class(self) -> ChainClass:
        if self.identity is None:
            return ChainClass.NONE
        return self.identity.chain_class

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED
