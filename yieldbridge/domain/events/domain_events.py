"""
Typed domain events for the YieldBridge event bus.

These typed events replace dict payloads and provide:
- Type safety with dataclasses
- Serialization for logging and UI transport
- Clear contracts between the core and its consumers

Usage:
    from yieldbridge.domain.events.domain_events import TransactionEvent

    event_bus.publish(EventType.TRANSACTION_COMPLETED, TransactionEvent.from_record(record))
    payload = event.to_dict()
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Optional, Dict, Any, Type, TypeVar
from enum import Enum
import json

from ...models.transaction import CrossChainTransaction
from ...utils.timezone import now_utc


T = TypeVar('T', bound='DomainEvent')


@dataclass(frozen=True, slots=True)
class DomainEvent:
    """
    Base class for all domain events.

    All domain events are immutable (frozen) and use slots.
    """
    timestamp: datetime = field(default_factory=now_utc)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize event to a JSON-safe dictionary."""
        result: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                result[f.name] = value.isoformat()
            elif isinstance(value, Enum):
                result[f.name] = value.value
            else:
                result[f.name] = value
        result['_event_type'] = self.__class__.__name__
        return result

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """Deserialize event from dictionary."""
        data = data.copy()
        data.pop('_event_type', None)
        if 'timestamp' in data and isinstance(data['timestamp'], str):
            data['timestamp'] = datetime.fromisoformat(data['timestamp'])
        return cls(**data)

    def to_json(self) -> str:
        """Serialize event to JSON string."""
        return json.dumps(self.to_dict())


@dataclass(frozen=True, slots=True)
class WalletEvent(DomainEvent):
    """
    Wallet connection state change.

    Published on WALLET_CONNECTING, WALLET_CONNECTED,
    WALLET_CONNECTION_FAILED, WALLET_DISCONNECTED and KEYSTORE_CHANGED.
    """
    provider_kind: str = ""
    state: str = ""
    address: Optional[str] = None
    chain_class: str = "none"
    error_message: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TransactionEvent(DomainEvent):
    """
    Transaction created or resolved.

    Amount is carried as a string so Decimal precision survives JSON.
    """
    transaction_id: str = ""
    operation: str = ""
    status: str = ""
    source_chain: str = ""
    destination_chain: str = ""
    amount: str = "0"
    currency: str = ""
    external_reference: Optional[str] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def from_record(cls, record: CrossChainTransaction) -> "TransactionEvent":
        return cls(
            transaction_id=record.id,
            operation=record.operation.value,
            status=record.status.value,
            source_chain=record.source_chain.value,
            destination_chain=record.destination_chain.value,
            amount=str(record.amount),
            currency=record.currency,
            external_reference=record.external_reference,
            error_kind=record.error_kind,
            error_message=record.error_message,
        )


@dataclass(frozen=True, slots=True)
class OrchestratorEvent(DomainEvent):
    """Orchestrator readiness or configuration change."""
    component: str = ""
    ready: bool = False
    error_message: Optional[str] = None
    changed_keys: tuple = ()
