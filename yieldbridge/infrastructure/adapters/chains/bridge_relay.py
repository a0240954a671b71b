"""
GMP-style bridge relay over HTTP.

``POST /gmp/send`` carries the destination chain, destination address,
token symbol, amount (micro-units) and a payload naming the recipient; the
relay answers with the source-chain ``tx_hash``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Optional, TYPE_CHECKING

import httpx

from ....domain.exceptions import ChainOperationError
from ....domain.interfaces.chain_client import BridgeRelay
from ....models.chain import Chain, to_micro_units
from ....utils.logging_setup import get_logger
from .http_transport import JsonHttpTransport

if TYPE_CHECKING:
    from config.models import CrossChainConfig


logger = get_logger(__name__)

RELAY = "relay"

DEFAULT_CHAIN_NAMES = {
    Chain.CUSTODY: "internet-computer",
    Chain.FINANCE: "injective",
}


class HttpBridgeRelay(BridgeRelay):
    """Bridge relay adapter."""

    def __init__(
        self,
        endpoint: str,
        symbol: str = "USDC",
        chain_names: Optional[Dict[str, str]] = None,
        destination_addresses: Optional[Dict[Chain, str]] = None,
        timeout_sec: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Args:
            endpoint: Relay base URL.
            symbol: Token symbol sent across.
            chain_names: Relay-side chain names keyed by Chain value.
            destination_addresses: Contract/canister receiving the message
                on each chain (the recipient travels in the payload).
            timeout_sec: HTTP timeout.
            client: Optional httpx client.
        """
        self._transport = JsonHttpTransport(endpoint, RELAY, timeout=timeout_sec, client=client)
        self._symbol = symbol
        self._chain_names = dict(DEFAULT_CHAIN_NAMES)
        for key, name in (chain_names or {}).items():
            self._chain_names[Chain(key)] = name
        self._destinations = dict(destination_addresses or {})
        self._connected = False

    def apply_config(self, config: "CrossChainConfig") -> None:
        if config.bridge_relay_endpoint != self._transport.base_url:
            logger.info(f"Bridge relay endpoint changed to {config.bridge_relay_endpoint or '(none)'}")
            self._transport.base_url = config.bridge_relay_endpoint
        self._destinations[Chain.CUSTODY] = config.custody_endpoint_id
        self._destinations[Chain.FINANCE] = config.finance_contract_address

    async def connect(self) -> None:
        await self._transport.request("GET", "/health", "health")
        self._connected = True
        logger.info(f"Bridge relay reachable ({self._transport.base_url})")

    async def disconnect(self) -> None:
        self._connected = False
        await self._transport.close()

    def is_connected(self) -> bool:
        return self._connected

    async def check_health(self) -> bool:
        try:
            await self._transport.request("GET", "/health", "health")
            return True
        except ChainOperationError as e:
            logger.warning(f"Bridge relay health check failed: {e}")
            return False

    async def relay(
        self,
        source: Chain,
        destination: Chain,
        amount: Decimal,
        recipient: str,
    ) -> Optional[str]:
        units = str(to_micro_units(amount))
        body = await self._transport.request("POST", "/gmp/send", "gmp_send", json={
            "source_chain": self._chain_names[source],
            "destination_chain": self._chain_names[destination],
            "destination_address": self._destinations.get(destination) or recipient,
            "symbol": self._symbol,
            "amount": units,
            "payload": {"principal": recipient, "amount": units},
        })
        tx_hash = body.get("tx_hash") if isinstance(body, dict) else None
        if not tx_hash:
            raise ChainOperationError(
                "relay reply has no tx_hash", chain=RELAY, operation="gmp_send"
            )
        logger.info(f"Relayed {amount} {self._symbol} {source.value}->{destination.value}: {tx_hash}")
        return str(tx_hash)
