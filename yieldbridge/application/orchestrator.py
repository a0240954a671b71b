"""
CrossChainOrchestrator - dispatches yield operations across both ledgers.

Operations:
- deposit: stablecoin enters yield-bearing custody on one chain
- trigger_yield_skim: accrued interest swept finance -> custody
- convert_yield_to_bitcoin: custody-side stablecoin yield becomes bitcoin
- bridge_yield_to_other_chain: value relayed to the other ledger

Every mutating operation follows the same protocol: open a pending record,
perform the chain call, then mark the record completed (returning it) or
failed (re-raising the original error). Nothing is retried; a retry by the
caller creates a new transaction id.
"""

from __future__ import annotations
import asyncio
from dataclasses import replace
from decimal import Decimal
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union

from config.models import CrossChainConfig

from ..domain.events.domain_events import OrchestratorEvent, TransactionEvent
from ..domain.events.event_types import EventType
from ..domain.exceptions import NotInitializedError, ValidationError
from ..domain.interfaces.chain_client import (
    BridgeRelay,
    ChainClient,
    CustodyChainClient,
    FinanceChainClient,
)
from ..domain.interfaces.event_bus import EventBus
from ..models.balance import YieldBalance, ZERO
from ..models.chain import AmountLike, Chain, STABLECOIN_PLACES, require_places, require_positive
from ..models.transaction import CrossChainTransaction, OperationKind
from ..models.wallet import ChainClass, WalletIdentity
from ..utils.logging_setup import get_logger
from ..utils.trace_context import operation_scope
from .side_effects import SideEffectPolicy, run_side_effect
from .transaction_ledger import TransactionLedger


logger = get_logger(__name__)

ChainCall = Callable[[], Awaitable[Optional[str]]]


class CrossChainOrchestrator:
    """
    Coordinates the custody chain, the finance chain and the bridge relay.

    Constructed once by the composition root and passed by reference.
    Operations are independent coroutines; only initialization is serialized.
    """

    def __init__(
        self,
        custody: CustodyChainClient,
        finance: FinanceChainClient,
        relay: BridgeRelay,
        config: CrossChainConfig,
        ledger: Optional[TransactionLedger] = None,
        event_bus: Optional[EventBus] = None,
        currency: str = "USDC",
    ):
        """
        Args:
            custody: Custody chain client (bitcoin side).
            finance: Finance chain client (stablecoin / APY side).
            relay: Bridge relay between the two.
            config: Cross-chain routing configuration.
            ledger: Transaction history (a fresh one if omitted).
            event_bus: Optional bus for TRANSACTION_* / ORCHESTRATOR_* events.
            currency: Stablecoin symbol recorded on transactions.
        """
        self._custody = custody
        self._finance = finance
        self._relay = relay
        self._config = config
        self._ledger = ledger if ledger is not None else TransactionLedger()
        self._event_bus = event_bus
        self._currency = currency

        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def ledger(self) -> TransactionLedger:
        return self._ledger

    @property
    def currency(self) -> str:
        return self._currency

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _components(self) -> List[Tuple[str, Union[ChainClient, BridgeRelay]]]:
        # Connection order: custody, finance, relay
        return [
            ("custody", self._custody),
            ("finance", self._finance),
            ("relay", self._relay),
        ]

    async def initialize(self) -> None:
        """
        Connect custody chain, finance chain and bridge relay, in order.

        Idempotent once successful. On failure the components already
        connected are disconnected (best-effort) and the first error is
        re-raised; the orchestrator stays uninitialized.
        """
        async with self._init_lock:
            if self._initialized:
                logger.debug("Orchestrator already initialized")
                return

            connected: List[Tuple[str, Union[ChainClient, BridgeRelay]]] = []
            try:
                for name, component in self._components():
                    logger.info(f"Connecting {name}...")
                    await component.connect()
                    connected.append((name, component))
                    logger.info(f"✓ Connected to {name}")
            except Exception as e:
                logger.error(f"Orchestrator initialization failed: {type(e).__name__}: {e}")
                for name, component in reversed(connected):
                    await run_side_effect(
                        f"rollback {name} connection",
                        SideEffectPolicy.BEST_EFFORT,
                        component.disconnect,
                    )
                self._publish(EventType.ORCHESTRATOR_INIT_FAILED, OrchestratorEvent(
                    component=self._components()[len(connected)][0],
                    ready=False,
                    error_message=str(e),
                ))
                raise

            self._initialized = True
            logger.info("Orchestrator initialized")
            self._publish(EventType.ORCHESTRATOR_READY, OrchestratorEvent(ready=True))

    async def shutdown(self) -> None:
        """Disconnect all components (best-effort). Safe to call repeatedly."""
        self._initialized = False
        for name, component in reversed(self._components()):
            await run_side_effect(
                f"disconnect {name}", SideEffectPolicy.BEST_EFFORT, component.disconnect
            )
        logger.info("Orchestrator shut down")

    def _require_initialized(self, operation: str) -> None:
        if not self._initialized:
            raise NotInitializedError(f"Cannot {operation}: orchestrator not initialized")

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _client_for(self, chain: Chain) -> ChainClient:
        return self._custody if chain == Chain.CUSTODY else self._finance

    async def get_balance(
        self, chain: Union[Chain, str], identity: WalletIdentity
    ) -> YieldBalance:
        """
        Query the balance of ``identity`` on ``chain``. Never creates a record.

        Raises:
            ValidationError: If the identity is disconnected or belongs to the
                other chain.
        """
        self._require_initialized("get balance")
        chain = _to_chain(chain)
        if identity is None or not identity.is_valid_for(chain):
            owner = identity.chain_class.value if identity else ChainClass.NONE.value
            raise ValidationError(
                f"Identity ({owner}) is not valid on the {chain.value} chain",
                field="identity",
            )

        balance = await self._client_for(chain).fetch_balance(identity.address)
        logger.debug(
            f"Balance {chain.value} {identity.short_address()}: "
            f"{balance.stablecoin_balance} {self._currency} / {balance.bitcoin_balance} BTC"
        )
        if balance.source is None:
            balance = replace(balance, source=identity.provider_kind.value)
        return balance

    async def get_balances(self, identities: Iterable[WalletIdentity]) -> List[YieldBalance]:
        """
        Query each chain once, using the first identity valid for it.

        Chains with no valid identity are skipped.
        """
        self._require_initialized("get balances")
        identities = list(identities)
        balances: List[YieldBalance] = []
        for chain in Chain:
            identity = next((i for i in identities if i.is_valid_for(chain)), None)
            if identity is None:
                logger.debug(f"No identity for {chain.value}; skipping balance query")
                continue
            balances.append(await self.get_balance(chain, identity))
        return balances

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def deposit(
        self,
        chain: Union[Chain, str],
        amount: AmountLike,
        identity: Optional[WalletIdentity] = None,
    ) -> CrossChainTransaction:
        """
        Deposit ``amount`` stablecoin into yield-bearing custody on ``chain``.

        Raises:
            ValidationError: If amount <= 0 or finer than one micro-unit
                (no record is created).
        """
        self._require_initialized("deposit")
        chain = _to_chain(chain)
        value = _stablecoin_amount(amount)
        account = identity.address if identity else None

        client = self._client_for(chain)
        return await self._dispatch(
            OperationKind.DEPOSIT, chain, chain, value, identity,
            lambda: client.deposit(value, account),
        )

    async def trigger_yield_skim(
        self, identity: Optional[WalletIdentity] = None
    ) -> CrossChainTransaction:
        """
        Sweep accrued interest from the finance chain toward custody.

        The swept amount is not computed here; the record carries 0.
        """
        self._require_initialized("trigger yield skim")
        return await self._dispatch(
            OperationKind.YIELD_SKIM, Chain.FINANCE, Chain.CUSTODY, ZERO, identity,
            self._finance.skim_yield,
        )

    async def convert_yield_to_bitcoin(
        self, identity: WalletIdentity, amount: AmountLike
    ) -> CrossChainTransaction:
        """
        Convert stablecoin yield resident on the custody chain into bitcoin.

        Raises:
            ValidationError: If amount <= 0 or the identity is not a connected
                custody-chain identity.
        """
        self._require_initialized("convert yield to bitcoin")
        value = _stablecoin_amount(amount)
        if identity is None or not identity.is_valid_for(Chain.CUSTODY):
            raise ValidationError(
                "Bitcoin conversion requires a connected custody-chain identity",
                field="identity",
            )

        return await self._dispatch(
            OperationKind.BITCOIN_CONVERSION, Chain.CUSTODY, Chain.CUSTODY, value, identity,
            lambda: self._custody.convert_yield_to_bitcoin(identity.address, value),
        )

    async def bridge_yield_to_other_chain(
        self,
        amount: AmountLike,
        recipient: str,
        source: Union[Chain, str] = Chain.FINANCE,
        identity: Optional[WalletIdentity] = None,
    ) -> CrossChainTransaction:
        """
        Relay ``amount`` from ``source`` to ``recipient`` on the other chain.

        Usually the slowest operation by far; no timeout is applied here.
        """
        self._require_initialized("bridge yield")
        value = _stablecoin_amount(amount)
        source = _to_chain(source)
        if not isinstance(recipient, str) or not recipient.strip():
            raise ValidationError("recipient must be a non-empty string", field="recipient")
        recipient = recipient.strip()
        destination = source.other

        return await self._dispatch(
            OperationKind.BRIDGE, source, destination, value, identity,
            lambda: self._relay.relay(source, destination, value, recipient),
            recipient=recipient,
        )

    async def _dispatch(
        self,
        operation: OperationKind,
        source: Chain,
        destination: Chain,
        amount: Decimal,
        identity: Optional[WalletIdentity],
        call: ChainCall,
        recipient: Optional[str] = None,
    ) -> CrossChainTransaction:
        record = self._ledger.open(
            operation=operation,
            source_chain=source,
            destination_chain=destination,
            amount=amount,
            currency=self._currency,
            identity=identity,
            recipient=recipient,
        )

        with operation_scope(record.id):
            logger.info(
                f"{operation.value}: {amount} {self._currency} "
                f"{source.value}->{destination.value}"
            )
            self._publish(EventType.TRANSACTION_CREATED, TransactionEvent.from_record(record))

            try:
                reference = await call()
            except (Exception, asyncio.CancelledError) as e:
                # The failed record is reachable from the raised error
                e.transaction_id = record.id
                failed = self._ledger.fail(record.id, e)
                self._publish(EventType.TRANSACTION_FAILED, TransactionEvent.from_record(failed))
                raise

            completed = self._ledger.complete(record.id, reference)
            self._publish(EventType.TRANSACTION_COMPLETED, TransactionEvent.from_record(completed))
            return completed

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def get_config(self) -> CrossChainConfig:
        return self._config

    def update_config(self, **changes: str) -> CrossChainConfig:
        """
        Merge ``changes`` into the configuration; other keys keep their values.

        Raises:
            ValidationError: For unknown keys.
        """
        self._config = self._config.merged(**changes)
        for _, component in self._components():
            component.apply_config(self._config)

        logger.info(f"Cross-chain config updated: {', '.join(sorted(changes)) or 'no changes'}")
        self._publish(EventType.CONFIG_UPDATED, OrchestratorEvent(
            component="config", ready=self._initialized, changed_keys=tuple(sorted(changes)),
        ))
        return self._config

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    async def check_custody_connection(self) -> bool:
        return await _probe("custody", self._custody)

    async def check_finance_connection(self) -> bool:
        return await _probe("finance", self._finance)

    async def check_health(self) -> Dict[str, bool]:
        """Probe every component. Never raises."""
        results = await asyncio.gather(
            *(_probe(name, component) for name, component in self._components())
        )
        return {name: ok for (name, _), ok in zip(self._components(), results)}

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def _publish(self, event_type: EventType, payload) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event_type, payload)


async def _probe(name: str, component: Union[ChainClient, BridgeRelay]) -> bool:
    try:
        return bool(await component.check_health())
    except Exception as e:
        logger.warning(f"Health check for {name} raised {type(e).__name__}: {e}")
        return False


def _stablecoin_amount(amount: AmountLike) -> Decimal:
    return require_places(require_positive(amount), STABLECOIN_PLACES)


def _to_chain(chain: Union[Chain, str]) -> Chain:
    if isinstance(chain, Chain):
        return chain
    try:
        return Chain(str(chain).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown chain: {chain!r}", field="chain")
