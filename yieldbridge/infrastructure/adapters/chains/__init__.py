"""Chain client and bridge relay adapters."""

from .custody_client import HttpCustodyClient
from .finance_client import HttpFinanceClient, encode_smart_query
from .bridge_relay import HttpBridgeRelay
from .simulated_chain import (
    FailureInjector,
    SimulatedAccount,
    SimulatedChain,
    SimulatedCustodyClient,
    SimulatedFinanceClient,
    SimulatedBridgeRelay,
)

__all__ = [
    "HttpCustodyClient",
    "HttpFinanceClient",
    "encode_smart_query",
    "HttpBridgeRelay",
    "FailureInjector",
    "SimulatedAccount",
    "SimulatedChain",
    "SimulatedCustodyClient",
    "SimulatedFinanceClient",
    "SimulatedBridgeRelay",
]
