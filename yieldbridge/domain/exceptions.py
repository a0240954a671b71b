"""
Domain exceptions for YieldBridge.

Implements a hierarchy distinguishing between recoverable runtime errors
(a wallet popup rejected, a chain endpoint briefly unreachable, a bad amount)
and fatal errors (misconfiguration, programming bugs such as calling the
orchestrator before initialization).
"""

from __future__ import annotations
from typing import Optional


class YieldBridgeError(Exception):
    """Base class for all YieldBridge domain exceptions."""
    pass


class RecoverableError(YieldBridgeError):
    """
    Errors the caller can recover from without restarting.

    Examples:
    - Wallet provider unreachable or the user rejected the connection
    - Chain endpoint timed out
    - Operation parameters rejected by validation
    """
    pass


class FatalError(YieldBridgeError):
    """
    Errors that indicate a broken setup or a programming bug.

    Examples:
    - Invalid configuration
    - Operation issued before the orchestrator was initialized
    - Illegal transaction lifecycle transition
    """
    pass


class WalletConnectionError(RecoverableError):
    """Wallet provider unreachable, or the connection request was rejected."""

    def __init__(self, message: str, provider_kind: Optional[str] = None):
        super().__init__(message)
        self.provider_kind = provider_kind


class ChainOperationError(RecoverableError):
    """
    An underlying chain or relay call failed.

    The orchestrator attaches the id of the transaction that was marked
    failed, so a UI layer can render the error next to the history entry.
    """

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        operation: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.chain = chain
        self.operation = operation
        self.transaction_id = transaction_id


class ValidationError(RecoverableError, ValueError):
    """Malformed operation parameters (e.g. a non-positive amount)."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotInitializedError(FatalError):
    """Operation attempted before a successful ``initialize()``."""
    pass


class TransactionStateError(FatalError):
    """Illegal transaction lifecycle transition (e.g. completing a failed tx)."""
    pass


class ConfigurationError(FatalError):
    """Invalid system configuration."""
    pass
