"""
Finance chain client: CosmWasm LCD queries plus a transaction executor.

Queries go to ``GET /cosmwasm/wasm/v1/contract/{address}/smart/{base64(json)}``
and return ``{"data": ...}``. Execute messages are posted to an executor
service that signs and broadcasts them and replies with ``{"txhash": ...}``.
"""

from __future__ import annotations

import base64
import json
from decimal import Decimal
from typing import Any, Dict, Optional, TYPE_CHECKING

import httpx

from ....domain.exceptions import ChainOperationError
from ....domain.interfaces.chain_client import FinanceChainClient
from ....models.balance import YieldBalance
from ....models.chain import Chain, from_micro_units, to_micro_units
from ....utils.logging_setup import get_logger
from .http_transport import JsonHttpTransport

if TYPE_CHECKING:
    from config.models import CrossChainConfig


logger = get_logger(__name__)


def encode_smart_query(msg: Dict[str, Any]) -> str:
    """Base64 of the compact JSON query message (URL path segment)."""
    raw = json.dumps(msg, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).decode()


class HttpFinanceClient(FinanceChainClient):
    """Finance chain adapter (vault contract)."""

    def __init__(
        self,
        lcd_url: str,
        executor_url: str,
        contract_address: str,
        sender: Optional[str] = None,
        timeout_sec: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Args:
            lcd_url: LCD REST endpoint for smart queries.
            executor_url: Signing/broadcast service for execute messages.
            contract_address: Vault contract address.
            sender: Default signer (e.g. the yield collector for skims).
            timeout_sec: HTTP timeout.
            client: Optional shared httpx client (tests inject a MockTransport).
        """
        chain = Chain.FINANCE.value
        self._lcd = JsonHttpTransport(lcd_url, chain, timeout=timeout_sec, client=client)
        self._executor = JsonHttpTransport(executor_url, chain, timeout=timeout_sec, client=client)
        self._contract = contract_address
        self._sender = sender
        self._connected = False

    @property
    def contract_address(self) -> str:
        return self._contract

    def apply_config(self, config: "CrossChainConfig") -> None:
        if config.finance_contract_address != self._contract:
            logger.info(f"Finance contract changed: {self._contract} -> {config.finance_contract_address}")
            self._contract = config.finance_contract_address

    def _require_contract(self, operation: str) -> None:
        if not self._contract:
            raise ChainOperationError(
                "finance contract address is not configured",
                chain=Chain.FINANCE.value,
                operation=operation,
            )

    async def _query(self, msg: Dict[str, Any], operation: str) -> Any:
        self._require_contract(operation)
        body = await self._lcd.request(
            "GET",
            f"/cosmwasm/wasm/v1/contract/{self._contract}/smart/{encode_smart_query(msg)}",
            operation,
        )
        if not isinstance(body, dict) or "data" not in body:
            raise ChainOperationError(
                f"finance {operation} returned a malformed reply",
                chain=Chain.FINANCE.value,
                operation=operation,
            )
        return body["data"]

    async def _execute(self, msg: Dict[str, Any], operation: str, sender: Optional[str]) -> str:
        self._require_contract(operation)
        payload: Dict[str, Any] = {"contract": self._contract, "msg": msg}
        if sender or self._sender:
            payload["sender"] = sender or self._sender
        body = await self._executor.request("POST", "/execute", operation, json=payload)

        if not isinstance(body, dict):
            raise ChainOperationError(
                f"finance {operation} returned a malformed reply",
                chain=Chain.FINANCE.value,
                operation=operation,
            )
        code = body.get("code", 0)
        if code:
            raise ChainOperationError(
                f"finance {operation} failed with code {code}: {body.get('raw_log', '')}",
                chain=Chain.FINANCE.value,
                operation=operation,
            )
        txhash = body.get("txhash")
        if not txhash:
            raise ChainOperationError(
                f"finance {operation} reply has no txhash",
                chain=Chain.FINANCE.value,
                operation=operation,
            )
        return str(txhash)

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        await self._query({"config": {}}, "config")
        self._connected = True
        logger.info(f"Finance contract reachable ({self._contract})")

    async def disconnect(self) -> None:
        self._connected = False
        await self._lcd.close()
        await self._executor.close()

    def is_connected(self) -> bool:
        return self._connected

    async def check_health(self) -> bool:
        try:
            await self._query({"config": {}}, "config")
            return True
        except ChainOperationError as e:
            logger.warning(f"Finance health check failed: {e}")
            return False

    # -------------------------------------------------------------------------
    # Reads / writes
    # -------------------------------------------------------------------------

    async def fetch_balance(self, account: str) -> YieldBalance:
        # Principal is a Uint128 string; per-account yield is not exposed
        data = await self._query({"principal": {"address": account}}, "principal")
        try:
            principal = from_micro_units(data)
        except (TypeError, ValueError) as e:
            raise ChainOperationError(
                f"finance principal returned unparseable data: {data!r}",
                chain=Chain.FINANCE.value,
                operation="principal",
            ) from e
        return YieldBalance(chain=Chain.FINANCE, stablecoin_balance=principal, account=account)

    async def deposit(self, amount: Decimal, account: Optional[str] = None) -> Optional[str]:
        msg = {"Deposit": {"amount": str(to_micro_units(amount))}}
        return await self._execute(msg, "deposit", account)

    async def skim_yield(self) -> Optional[str]:
        return await self._execute({"SkimYield": {}}, "skim_yield", None)
