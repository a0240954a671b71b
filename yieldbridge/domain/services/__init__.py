"""Domain services."""

from .balance_aggregator import BalanceAggregator, DUPLICATE_CHAIN, BITCOIN_OUTSIDE_CUSTODY

__all__ = ["BalanceAggregator", "DUPLICATE_CHAIN", "BITCOIN_OUTSIDE_CUSTODY"]
