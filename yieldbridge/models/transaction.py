"""Cross-chain transaction model.

Lifecycle: a record is created ``PENDING`` when an operation is dispatched and
is resolved exactly once, to ``COMPLETED`` or ``FAILED``, by that operation.
Records are frozen; a transition returns a new record, and terminal records
refuse any further transition.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional
import uuid

from .chain import Chain
from .wallet import WalletIdentity
from ..domain.exceptions import TransactionStateError
from ..utils.timezone import now_utc


class OperationKind(Enum):
    """Kinds of operations the orchestrator dispatches."""
    DEPOSIT = "deposit"
    YIELD_SKIM = "yield_skim"
    BITCOIN_CONVERSION = "bitcoin_conversion"
    BRIDGE = "bridge"


class TransactionStatus(Enum):
    """Transaction status."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not TransactionStatus.PENDING


def new_transaction_id() -> str:
    """Generate a globally unique transaction id (``tx_<32 hex>``)."""
    return f"tx_{uuid.uuid4().hex}"


@dataclass(frozen=True)
class CrossChainTransaction:
    """
    Tracked record of one dispatched cross-chain operation.

    ``identity`` is the wallet identity active when the operation was
    dispatched; it is kept even if the user later switches wallets.
    """

    # Identity
    id: str
    operation: OperationKind

    # Routing
    source_chain: Chain
    destination_chain: Chain

    # Value
    amount: Decimal
    currency: str

    # Lifecycle
    status: TransactionStatus = TransactionStatus.PENDING
    created_at: datetime = field(default_factory=now_utc)
    completed_at: Optional[datetime] = None

    # Context
    identity: Optional[WalletIdentity] = None
    recipient: Optional[str] = None
    external_reference: Optional[str] = None  # Chain tx hash / relay message id

    # Failure details (kind + message for UI rendering)
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    @property
    def is_cross_chain(self) -> bool:
        return self.source_chain != self.destination_chain

    def completed(
        self, external_reference: Optional[str] = None, at: Optional[datetime] = None
    ) -> "CrossChainTransaction":
        """
        Return the completed version of this pending record.

        Raises:
            TransactionStateError: If the record is already terminal.
        """
        self._require_pending(TransactionStatus.COMPLETED)
        return replace(
            self,
            status=TransactionStatus.COMPLETED,
            completed_at=at or now_utc(),
            external_reference=external_reference or self.external_reference,
        )

    def failed(self, error: BaseException, at: Optional[datetime] = None) -> "CrossChainTransaction":
        """
        Return the failed version of this pending record.

        Raises:
            TransactionStateError: If the record is already terminal.
        """
        self._require_pending(TransactionStatus.FAILED)
        return replace(
            self,
            status=TransactionStatus.FAILED,
            completed_at=at or now_utc(),
            error_kind=type(error).__name__,
            error_message=str(error),
        )

    def _require_pending(self, target: TransactionStatus) -> None:
        if self.status.is_terminal:
            raise TransactionStateError(
                f"Transaction {self.id} is {self.status.value}; "
                f"cannot transition to {target.value}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON output (amount as string to keep precision)."""
        return {
            "id": self.id,
            "operation": self.operation.value,
            "source_chain": self.source_chain.value,
            "destination_chain": self.destination_chain.value,
            "amount": str(self.amount),
            "currency": self.currency,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "provider": self.identity.provider_kind.value if self.identity else None,
            "address": self.identity.address if self.identity else None,
            "recipient": self.recipient,
            "external_reference": self.external_reference,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
        }
