"""
In-memory chains for demo mode and tests.

Each SimulatedChain keeps per-account balances seeded from a template
account, records every call, and can be told to fail specific operations.
The clients honor the same contracts as the HTTP adapters: they return
chain references and raise ChainOperationError.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, ROUND_DOWN
from typing import Any, Dict, List, Mapping, Optional

from ....domain.exceptions import ChainOperationError
from ....domain.interfaces.chain_client import (
    BridgeRelay,
    CustodyChainClient,
    FinanceChainClient,
)
from ....models.balance import YieldBalance, ZERO
from ....models.chain import Chain, to_amount
from ....utils.logging_setup import get_logger
from ....utils.timezone import now_utc


logger = get_logger(__name__)

# Fixed conversion price used by the custody canister until an oracle exists
DEFAULT_BITCOIN_PRICE = Decimal("45000")
SATOSHI = Decimal("0.00000001")


@dataclass
class SimulatedAccount:
    stablecoin: Decimal = ZERO
    bitcoin: Decimal = ZERO
    cumulative_yield: Decimal = ZERO
    last_conversion_at: Optional[datetime] = None


@dataclass
class _Failure:
    error: Exception
    remaining: Optional[int]  # None = every call


class FailureInjector:
    """Call log plus armed failures, keyed by operation name."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.calls: List[str] = []
        self._failures: Dict[str, _Failure] = {}

    def fail(
        self,
        operation: str,
        error: Optional[Exception] = None,
        times: Optional[int] = 1,
    ) -> None:
        """
        Make ``operation`` raise.

        Args:
            operation: "connect", "health", "balance", "deposit", "skim",
                "convert" or "relay".
            error: Exception to raise (a ChainOperationError by default).
            times: Number of calls to fail, or None for every call.
        """
        if error is None:
            error = ChainOperationError(
                f"simulated {self.name} {operation} failure",
                chain=self.name,
                operation=operation,
            )
        self._failures[operation] = _Failure(error=error, remaining=times)

    def clear_failures(self) -> None:
        self._failures.clear()

    def check(self, operation: str) -> None:
        """Record the call and raise if a failure is armed for it."""
        self.calls.append(operation)
        failure = self._failures.get(operation)
        if failure is None:
            return
        if failure.remaining is not None:
            failure.remaining -= 1
            if failure.remaining <= 0:
                del self._failures[operation]
        raise failure.error


class SimulatedChain(FailureInjector):
    """One in-memory ledger with failure injection."""

    def __init__(
        self,
        chain: Chain,
        template: Optional[SimulatedAccount] = None,
        pending_yield: Decimal = ZERO,
    ) -> None:
        """
        Args:
            chain: Which ledger this simulates.
            template: Starting balances for any account seen for the first time.
            pending_yield: Interest accrued above principal, available to skim.
        """
        super().__init__(chain.value)
        self.chain = chain
        self.template = template or SimulatedAccount()
        self.pending_yield = pending_yield
        self.accounts: Dict[str, SimulatedAccount] = {}

    @classmethod
    def from_settings(cls, chain: Chain, settings: Optional[Mapping[str, Any]]) -> "SimulatedChain":
        """Build from a ``simulation.<chain>`` config mapping."""
        settings = settings or {}
        template = SimulatedAccount(
            stablecoin=to_amount(settings.get("stablecoin_balance", 0), "stablecoin_balance"),
            bitcoin=to_amount(settings.get("bitcoin_balance", 0), "bitcoin_balance"),
            cumulative_yield=to_amount(settings.get("cumulative_yield", 0), "cumulative_yield"),
        )
        pending = to_amount(settings.get("accrued_yield", 0), "accrued_yield")
        return cls(chain, template=template, pending_yield=pending)

    def account(self, address: str) -> SimulatedAccount:
        if address not in self.accounts:
            self.accounts[address] = replace(self.template)
        return self.accounts[address]

    def next_reference(self) -> str:
        return _new_reference()


class _SimulatedClientBase:
    """Connection handling shared by the simulated clients."""

    def __init__(self, state: SimulatedChain) -> None:
        self.state = state
        self._connected = False

    async def connect(self) -> None:
        self.state.check("connect")
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected

    async def check_health(self) -> bool:
        try:
            self.state.check("health")
        except Exception:
            return False
        return self._connected

    def _require_connected(self, operation: str) -> None:
        if not self._connected:
            raise ChainOperationError(
                f"{self.state.chain.value} client not connected",
                chain=self.state.chain.value,
                operation=operation,
            )


class SimulatedCustodyClient(_SimulatedClientBase, CustodyChainClient):
    """Custody chain: stablecoin yield converts to bitcoin at a fixed price."""

    def __init__(
        self,
        state: Optional[SimulatedChain] = None,
        bitcoin_price: Decimal = DEFAULT_BITCOIN_PRICE,
    ) -> None:
        super().__init__(state or SimulatedChain(Chain.CUSTODY))
        self.bitcoin_price = bitcoin_price

    async def fetch_balance(self, account: str) -> YieldBalance:
        self._require_connected("balance")
        self.state.check("balance")
        acct = self.state.account(account)
        return YieldBalance(
            chain=Chain.CUSTODY,
            stablecoin_balance=acct.stablecoin,
            bitcoin_balance=acct.bitcoin,
            cumulative_yield=acct.cumulative_yield,
            last_conversion_at=acct.last_conversion_at,
            account=account,
        )

    async def deposit(self, amount: Decimal, account: Optional[str] = None) -> Optional[str]:
        self._require_connected("deposit")
        self.state.check("deposit")
        acct = self.state.account(account or "anonymous")
        acct.stablecoin += amount
        acct.cumulative_yield += amount
        return self.state.next_reference()

    async def convert_yield_to_bitcoin(self, principal: str, amount: Decimal) -> Optional[str]:
        self._require_connected("convert")
        self.state.check("convert")
        acct = self.state.account(principal)
        if acct.stablecoin < amount:
            raise ChainOperationError(
                f"insufficient yield balance: {acct.stablecoin} < {amount}",
                chain=Chain.CUSTODY.value,
                operation="convert",
            )
        bitcoin = (amount / self.bitcoin_price).quantize(SATOSHI, rounding=ROUND_DOWN)
        acct.stablecoin -= amount
        acct.bitcoin += bitcoin
        acct.last_conversion_at = now_utc()
        logger.debug(f"Simulated conversion {amount} -> {bitcoin} BTC for {principal}")
        return self.state.next_reference()


class SimulatedFinanceClient(_SimulatedClientBase, FinanceChainClient):
    """Finance chain: principal deposits and an accrued-yield pool."""

    def __init__(
        self,
        state: Optional[SimulatedChain] = None,
        yield_destination: Optional[SimulatedChain] = None,
    ) -> None:
        """
        Args:
            state: Finance ledger.
            yield_destination: Custody ledger credited by skims (optional).
        """
        super().__init__(state or SimulatedChain(Chain.FINANCE))
        self.yield_destination = yield_destination

    async def fetch_balance(self, account: str) -> YieldBalance:
        self._require_connected("balance")
        self.state.check("balance")
        acct = self.state.account(account)
        return YieldBalance(
            chain=Chain.FINANCE,
            stablecoin_balance=acct.stablecoin,
            bitcoin_balance=acct.bitcoin,
            cumulative_yield=acct.cumulative_yield,
            account=account,
        )

    async def deposit(self, amount: Decimal, account: Optional[str] = None) -> Optional[str]:
        self._require_connected("deposit")
        self.state.check("deposit")
        self.state.account(account or "anonymous").stablecoin += amount
        return self.state.next_reference()

    async def skim_yield(self) -> Optional[str]:
        self._require_connected("skim")
        self.state.check("skim")
        if self.state.pending_yield <= ZERO:
            raise ChainOperationError(
                "No yield available", chain=Chain.FINANCE.value, operation="skim"
            )
        swept = self.state.pending_yield
        self.state.pending_yield = ZERO
        if self.yield_destination is not None:
            self.yield_destination.pending_yield += swept
        logger.debug(f"Simulated skim swept {swept}")
        return self.state.next_reference()


class SimulatedBridgeRelay(BridgeRelay):
    """Relay that credits the recipient on the destination ledger."""

    def __init__(self, chains: Optional[Mapping[Chain, SimulatedChain]] = None) -> None:
        self.chains = dict(chains or {})
        self.state = FailureInjector("relay")
        self._connected = False

    async def connect(self) -> None:
        self.state.check("connect")
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected

    async def check_health(self) -> bool:
        try:
            self.state.check("health")
        except Exception:
            return False
        return self._connected

    async def relay(
        self,
        source: Chain,
        destination: Chain,
        amount: Decimal,
        recipient: str,
    ) -> Optional[str]:
        if not self._connected:
            raise ChainOperationError("relay not connected", chain="relay", operation="relay")
        self.state.check("relay")
        source_ledger = self.chains.get(source)
        if source_ledger is not None:
            source_ledger.pending_yield = max(ZERO, source_ledger.pending_yield - amount)
        destination_ledger = self.chains.get(destination)
        if destination_ledger is not None:
            destination_ledger.account(recipient).stablecoin += amount
        return _new_reference()


def _new_reference() -> str:
    return f"0x{uuid.uuid4().hex}"
