"""Data models for cross-chain yield management."""

from .chain import (
    Chain,
    AmountLike,
    to_amount,
    require_positive,
    require_places,
    to_micro_units,
    from_micro_units,
    to_satoshis,
    from_satoshis,
)
from .wallet import ProviderKind, ChainClass, ConnectionState, WalletIdentity, WalletStatus
from .transaction import (
    CrossChainTransaction,
    OperationKind,
    TransactionStatus,
    new_transaction_id,
)
from .balance import YieldBalance, BalanceAnomaly, AggregatedBalance

__all__ = [
    "Chain",
    "AmountLike",
    "to_amount",
    "require_positive",
    "require_places",
    "to_micro_units",
    "from_micro_units",
    "to_satoshis",
    "from_satoshis",
    "ProviderKind",
    "ChainClass",
    "ConnectionState",
    "WalletIdentity",
    "WalletStatus",
    "CrossChainTransaction",
    "OperationKind",
    "TransactionStatus",
    "new_transaction_id",
    "YieldBalance",
    "BalanceAnomaly",
    "AggregatedBalance",
]
