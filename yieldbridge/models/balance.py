"""Per-chain yield balances and their aggregate."""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from .chain import Chain


ZERO = Decimal("0")


@dataclass(frozen=True)
class YieldBalance:
    """
    Balance snapshot reported by one chain for one account.

    ``bitcoin_balance`` is only meaningful on the custody chain; the
    aggregator flags any nonzero value reported elsewhere.
    """
    chain: Chain
    stablecoin_balance: Decimal = ZERO
    bitcoin_balance: Decimal = ZERO
    cumulative_yield: Decimal = ZERO
    last_conversion_at: Optional[datetime] = None
    account: Optional[str] = None
    source: Optional[str] = None  # Provider kind / client that reported it


@dataclass(frozen=True)
class BalanceAnomaly:
    """Something the aggregator refused to sum."""
    chain: Chain
    kind: str  # "bitcoin_outside_custody" | "duplicate_chain"
    detail: str


@dataclass(frozen=True)
class AggregatedBalance:
    """Unified totals across chains."""
    total_stablecoin: Decimal
    total_bitcoin: Decimal
    total_yield: Decimal
    chains: Tuple[YieldBalance, ...] = field(default_factory=tuple)
    anomalies: Tuple[BalanceAnomaly, ...] = field(default_factory=tuple)

    @property
    def has_anomalies(self) -> bool:
        return bool(self.anomalies)

    def for_chain(self, chain: Chain) -> Optional[YieldBalance]:
        """Per-chain balance that contributed to the totals."""
        for balance in self.chains:
            if balance.chain == chain:
                return balance
        return None
