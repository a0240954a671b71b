"""Chain client interfaces for the custody chain, finance chain and relay."""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from ...models.balance import YieldBalance
from ...models.chain import Chain

if TYPE_CHECKING:
    from config.models import CrossChainConfig


class ChainClient(ABC):
    """
    Interface shared by both ledgers.

    Mutating calls return the chain-side reference (tx hash, message id) of
    the submitted call, or None if the chain does not report one.

    All calls raise ChainOperationError when the underlying call fails.
    """

    # Ledger this client talks to - set in subclasses
    chain: Chain

    # -------------------------------------------------------------------------
    # Connection Management
    # -------------------------------------------------------------------------

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connectivity to the chain endpoint.

        Raises:
            ChainOperationError: If the endpoint is unreachable or unhealthy.
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection and release transport resources."""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the client is connected and ready."""
        pass

    @abstractmethod
    async def check_health(self) -> bool:
        """Probe the endpoint. Never raises."""
        pass

    def apply_config(self, config: "CrossChainConfig") -> None:
        """Pick up updated cross-chain routing (endpoint ids, addresses)."""
        pass

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @abstractmethod
    async def fetch_balance(self, account: str) -> YieldBalance:
        """Fetch the yield balance of ``account`` on this chain."""
        pass

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @abstractmethod
    async def deposit(self, amount: Decimal, account: Optional[str] = None) -> Optional[str]:
        """Move ``amount`` stablecoin into yield-bearing custody on this chain."""
        pass


class CustodyChainClient(ChainClient):
    """Custody chain: holds bitcoin and converts stablecoin yield into it."""

    chain = Chain.CUSTODY

    @abstractmethod
    async def convert_yield_to_bitcoin(self, principal: str, amount: Decimal) -> Optional[str]:
        """Convert ``amount`` of stablecoin yield held for ``principal`` into bitcoin."""
        pass


class FinanceChainClient(ChainClient):
    """Finance chain: holds stablecoin principal and accrues APY."""

    chain = Chain.FINANCE

    @abstractmethod
    async def skim_yield(self) -> Optional[str]:
        """Sweep accrued interest (balance above principal) toward the custody chain."""
        pass


class BridgeRelay(ABC):
    """Cross-chain message passing between the two ledgers."""

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connectivity to the relay.

        Raises:
            ChainOperationError: If the relay is unreachable.
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection."""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the relay is connected and ready."""
        pass

    @abstractmethod
    async def check_health(self) -> bool:
        """Probe the relay. Never raises."""
        pass

    def apply_config(self, config: "CrossChainConfig") -> None:
        """Pick up updated cross-chain routing (relay endpoint)."""
        pass

    @abstractmethod
    async def relay(
        self,
        source: Chain,
        destination: Chain,
        amount: Decimal,
        recipient: str,
    ) -> Optional[str]:
        """
        Relay ``amount`` from ``source`` to ``recipient`` on ``destination``.

        Returns:
            Relay message id / source-chain tx hash.
        """
        pass
