"""
Trace context for correlating logs across a single cross-chain operation.

Provides:
- An operation ID (the transaction id, or a short hex id for reads)
- Context propagation via contextvars (async-safe)
- Easy access to the current operation ID from any module

Usage:
    # In the orchestrator (start of an operation)
    with operation_scope(record.id):
        await client.deposit(amount)

    # In any module
    from yieldbridge.utils.trace_context import get_operation_id
    logger.info(f"[{get_operation_id()}] Submitting...")
"""

from __future__ import annotations

import secrets
from contextvars import ContextVar
from contextlib import contextmanager
from typing import Optional, Generator

# Context variable for the current operation ID (async-safe)
_operation_id: ContextVar[Optional[str]] = ContextVar("operation_id", default=None)


def generate_operation_id() -> str:
    """
    Generate a short operation ID for operations that create no transaction.

    Returns:
        8-character hex string (e.g., "a7f3b2c1").
    """
    return secrets.token_hex(4)


def get_operation_id() -> str:
    """
    Get the current operation ID.

    Returns:
        Current operation ID, or "--------" if no operation is active.
    """
    operation_id = _operation_id.get()
    return operation_id if operation_id else "--------"


def set_operation_id(operation_id: str) -> None:
    """Set the current operation ID."""
    _operation_id.set(operation_id)


def clear_operation_id() -> None:
    """Clear the current operation ID."""
    _operation_id.set(None)


@contextmanager
def operation_scope(operation_id: Optional[str] = None) -> Generator[str, None, None]:
    """
    Context manager binding an operation ID for the duration of the block.

    The previous value is restored on exit, so scopes nest and concurrent
    tasks never see each other's IDs.

    Args:
        operation_id: ID to bind. A fresh one is generated when omitted.

    Yields:
        The bound operation ID.
    """
    bound = operation_id or generate_operation_id()
    token = _operation_id.set(bound)
    try:
        yield bound
    finally:
        _operation_id.reset(token)
