"""
Transaction Ledger - in-memory history of cross-chain transactions.

Records are kept in creation order. A pending record is replaced by its
terminal version exactly once; any later transition attempt raises
TransactionStateError and leaves the stored record untouched.
"""

from __future__ import annotations
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from ..domain.exceptions import TransactionStateError
from ..models.chain import Chain
from ..models.transaction import (
    CrossChainTransaction,
    OperationKind,
    TransactionStatus,
    new_transaction_id,
)
from ..models.wallet import WalletIdentity
from ..utils.logging_setup import get_logger


logger = get_logger(__name__)

TransactionCallback = Callable[[CrossChainTransaction], None]


class TransactionLedger:
    """
    Ordered, append-only store of transaction records.

    Observation is either by polling (``history``/``get``) or by subscribing:
    subscribers receive every new record version (pending, then terminal).
    """

    def __init__(self, id_factory: Callable[[], str] = new_transaction_id):
        self._records: Dict[str, CrossChainTransaction] = {}
        self._order: List[str] = []
        self._subscribers: List[TransactionCallback] = []
        self._id_factory = id_factory

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, transaction_id: str) -> bool:
        return transaction_id in self._records

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def open(
        self,
        operation: OperationKind,
        source_chain: Chain,
        destination_chain: Chain,
        amount: Decimal,
        currency: str,
        identity: Optional[WalletIdentity] = None,
        recipient: Optional[str] = None,
    ) -> CrossChainTransaction:
        """Create and register a pending record."""
        record = CrossChainTransaction(
            id=self._id_factory(),
            operation=operation,
            source_chain=source_chain,
            destination_chain=destination_chain,
            amount=amount,
            currency=currency,
            identity=identity,
            recipient=recipient,
        )
        self.register(record)
        return record

    def register(self, record: CrossChainTransaction) -> None:
        """
        Register a new pending record.

        Raises:
            TransactionStateError: If the id is already taken or the record
                is not pending.
        """
        if record.id in self._records:
            raise TransactionStateError(f"Duplicate transaction id: {record.id}")
        if not record.is_pending:
            raise TransactionStateError(
                f"Only pending transactions can be registered, got {record.status.value}"
            )
        self._records[record.id] = record
        self._order.append(record.id)
        logger.debug(
            f"Transaction opened: {record.id} {record.operation.value} "
            f"{record.amount} {record.currency} "
            f"{record.source_chain.value}->{record.destination_chain.value}"
        )
        self._notify(record)

    def complete(
        self, transaction_id: str, external_reference: Optional[str] = None
    ) -> CrossChainTransaction:
        """Mark a pending record completed."""
        record = self._require(transaction_id).completed(external_reference)
        self._records[transaction_id] = record
        logger.info(
            f"Transaction completed: {transaction_id} ref={external_reference or '-'}"
        )
        self._notify(record)
        return record

    def fail(self, transaction_id: str, error: BaseException) -> CrossChainTransaction:
        """Mark a pending record failed with the error's kind and message."""
        record = self._require(transaction_id).failed(error)
        self._records[transaction_id] = record
        logger.warning(
            f"Transaction failed: {transaction_id} {record.error_kind}: {record.error_message}"
        )
        self._notify(record)
        return record

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, transaction_id: str) -> Optional[CrossChainTransaction]:
        return self._records.get(transaction_id)

    def history(self) -> List[CrossChainTransaction]:
        """All records, oldest first."""
        return [self._records[tx_id] for tx_id in self._order]

    def pending(self) -> List[CrossChainTransaction]:
        return self.by_status(TransactionStatus.PENDING)

    def by_status(self, status: TransactionStatus) -> List[CrossChainTransaction]:
        return [r for r in self.history() if r.status == status]

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    def subscribe(self, callback: TransactionCallback) -> Callable[[], None]:
        """
        Receive every new record version.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, record: CrossChainTransaction) -> None:
        for callback in list(self._subscribers):
            try:
                callback(record)
            except Exception as e:
                logger.error(f"Error in ledger subscriber: {e}", exc_info=True)

    def _require(self, transaction_id: str) -> CrossChainTransaction:
        record = self._records.get(transaction_id)
        if record is None:
            raise TransactionStateError(f"Unknown transaction id: {transaction_id}")
        return record
