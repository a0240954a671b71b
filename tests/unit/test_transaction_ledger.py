"""Tests for TransactionLedger."""

from decimal import Decimal
from itertools import count

import pytest

from yieldbridge.application.transaction_ledger import TransactionLedger
from yieldbridge.domain.exceptions import TransactionStateError
from yieldbridge.models.chain import Chain
from yieldbridge.models.transaction import (
    CrossChainTransaction,
    OperationKind,
    TransactionStatus,
)


def open_deposit(ledger: TransactionLedger, amount: str = "100") -> CrossChainTransaction:
    return ledger.open(
        operation=OperationKind.DEPOSIT,
        source_chain=Chain.FINANCE,
        destination_chain=Chain.FINANCE,
        amount=Decimal(amount),
        currency="USDC",
    )


class TestLifecycle:
    """Open, complete and fail."""

    def test_open_registers_pending_record(self):
        ledger = TransactionLedger()
        record = open_deposit(ledger)

        assert record.id in ledger
        assert ledger.get(record.id) is record
        assert ledger.pending() == [record]
        assert len(ledger) == 1

    def test_complete_replaces_record(self):
        ledger = TransactionLedger()
        record = open_deposit(ledger)

        done = ledger.complete(record.id, "0xfeed")

        assert ledger.get(record.id) == done
        assert done.status == TransactionStatus.COMPLETED
        assert ledger.pending() == []

    def test_fail_records_error(self):
        ledger = TransactionLedger()
        record = open_deposit(ledger)

        failed = ledger.fail(record.id, RuntimeError("relay timeout"))

        assert failed.error_kind == "RuntimeError"
        assert failed.error_message == "relay timeout"
        assert ledger.by_status(TransactionStatus.FAILED) == [failed]

    def test_second_resolution_raises_and_keeps_first(self):
        """A record is resolved exactly once."""
        ledger = TransactionLedger()
        record = open_deposit(ledger)
        done = ledger.complete(record.id, "0x1")

        with pytest.raises(TransactionStateError):
            ledger.fail(record.id, RuntimeError("late"))
        with pytest.raises(TransactionStateError):
            ledger.complete(record.id, "0x2")

        assert ledger.get(record.id) == done

    def test_unknown_id_raises(self):
        ledger = TransactionLedger()
        with pytest.raises(TransactionStateError):
            ledger.complete("tx_missing")

    def test_duplicate_id_rejected(self):
        ledger = TransactionLedger(id_factory=lambda: "tx_fixed")
        open_deposit(ledger)

        with pytest.raises(TransactionStateError):
            open_deposit(ledger)
        assert len(ledger) == 1

    def test_register_rejects_terminal_record(self):
        ledger = TransactionLedger()
        other = TransactionLedger()
        done = other.complete(open_deposit(other).id)

        with pytest.raises(TransactionStateError):
            ledger.register(done)


class TestQueries:
    def test_history_in_creation_order(self):
        ids = count(1)
        ledger = TransactionLedger(id_factory=lambda: f"tx_{next(ids)}")
        first = open_deposit(ledger, "1")
        second = open_deposit(ledger, "2")
        third = open_deposit(ledger, "3")
        ledger.complete(second.id)

        assert [r.id for r in ledger.history()] == [first.id, second.id, third.id]
        assert [r.id for r in ledger.pending()] == [first.id, third.id]


class TestSubscription:
    """Subscribers see every record version."""

    def test_receives_pending_then_terminal(self):
        ledger = TransactionLedger()
        seen = []
        ledger.subscribe(seen.append)

        record = open_deposit(ledger)
        ledger.complete(record.id)

        assert [r.status for r in seen] == [TransactionStatus.PENDING, TransactionStatus.COMPLETED]

    def test_unsubscribe(self):
        ledger = TransactionLedger()
        seen = []
        unsubscribe = ledger.subscribe(seen.append)
        unsubscribe()
        unsubscribe()

        open_deposit(ledger)
        assert seen == []

    def test_failing_subscriber_does_not_break_ledger(self):
        ledger = TransactionLedger()
        seen = []

        def broken(_record):
            raise RuntimeError("subscriber bug")

        ledger.subscribe(broken)
        ledger.subscribe(seen.append)

        record = open_deposit(ledger)
        ledger.complete(record.id)

        assert len(seen) == 2
        assert ledger.get(record.id).status == TransactionStatus.COMPLETED
