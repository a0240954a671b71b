"""Domain events module."""

from .event_types import EventType
from .domain_events import DomainEvent, WalletEvent, TransactionEvent, OrchestratorEvent

__all__ = [
    "EventType",
    "DomainEvent",
    "WalletEvent",
    "TransactionEvent",
    "OrchestratorEvent",
]
