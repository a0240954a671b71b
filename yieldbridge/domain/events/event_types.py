"""Event types published on the event bus."""

from __future__ import annotations
from enum import Enum


class EventType(Enum):
    """System event types."""
    # Wallet connection state machine
    WALLET_CONNECTING = "wallet_connecting"
    WALLET_CONNECTED = "wallet_connected"
    WALLET_CONNECTION_FAILED = "wallet_connection_failed"
    WALLET_DISCONNECTED = "wallet_disconnected"
    KEYSTORE_CHANGED = "keystore_changed"

    # Orchestrator lifecycle
    ORCHESTRATOR_READY = "orchestrator_ready"
    ORCHESTRATOR_INIT_FAILED = "orchestrator_init_failed"
    CONFIG_UPDATED = "config_updated"

    # Transaction lifecycle
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_COMPLETED = "transaction_completed"
    TRANSACTION_FAILED = "transaction_failed"

    # Balances
    BALANCES_UPDATED = "balances_updated"
