"""Application layer: orchestration, wallet state machine and wiring."""

from .side_effects import SideEffectPolicy, run_side_effect
from .simple_event_bus import SimpleEventBus
from .transaction_ledger import TransactionLedger
from .wallet_manager import (
    IdentityBackend,
    StrategyBackend,
    WalletBackend,
    WalletConnectionManager,
)
from .orchestrator import CrossChainOrchestrator
from .bootstrap import AppContainer

__all__ = [
    "SideEffectPolicy",
    "run_side_effect",
    "SimpleEventBus",
    "TransactionLedger",
    "IdentityBackend",
    "StrategyBackend",
    "WalletBackend",
    "WalletConnectionManager",
    "CrossChainOrchestrator",
    "AppContainer",
]
