"""
Custody chain client over the canister HTTP gateway.

Calls are ``POST /api/canisters/{canister_id}/{method}`` with a JSON
argument object; replies use the envelope
``{"ok": true, "result": ...}`` / ``{"ok": false, "error": "..."}``.
Stablecoin amounts travel as micro-units, bitcoin as satoshis.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional, TYPE_CHECKING

import httpx

from ....domain.exceptions import ChainOperationError
from ....domain.interfaces.chain_client import CustodyChainClient
from ....models.balance import YieldBalance
from ....models.chain import Chain, from_micro_units, from_satoshis, to_micro_units
from ....utils.logging_setup import get_logger
from ....utils.timezone import parse_chain_timestamp
from .http_transport import JsonHttpTransport

if TYPE_CHECKING:
    from config.models import CrossChainConfig


logger = get_logger(__name__)


class HttpCustodyClient(CustodyChainClient):
    """Custody chain adapter (canister methods over HTTP)."""

    def __init__(
        self,
        gateway_url: str,
        canister_id: str,
        timeout_sec: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._transport = JsonHttpTransport(
            gateway_url, Chain.CUSTODY.value, timeout=timeout_sec, client=client
        )
        self._canister_id = canister_id
        self._connected = False

    @property
    def canister_id(self) -> str:
        return self._canister_id

    def apply_config(self, config: "CrossChainConfig") -> None:
        if config.custody_endpoint_id != self._canister_id:
            logger.info(f"Custody canister changed: {self._canister_id} -> {config.custody_endpoint_id}")
            self._canister_id = config.custody_endpoint_id

    async def _call(self, method: str, args: Optional[Dict[str, Any]] = None) -> Any:
        if not self._canister_id:
            raise ChainOperationError(
                "custody canister id is not configured", chain=Chain.CUSTODY.value, operation=method
            )
        body = await self._transport.request(
            "POST", f"/api/canisters/{self._canister_id}/{method}", method, json=args or {}
        )
        if not isinstance(body, dict) or "ok" not in body:
            raise ChainOperationError(
                f"custody {method} returned a malformed reply",
                chain=Chain.CUSTODY.value,
                operation=method,
            )
        if not body["ok"]:
            raise ChainOperationError(
                f"custody {method} rejected: {body.get('error', 'unknown error')}",
                chain=Chain.CUSTODY.value,
                operation=method,
            )
        return body.get("result")

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        await self._call("status")
        self._connected = True
        logger.info(f"Custody gateway reachable (canister {self._canister_id})")

    async def disconnect(self) -> None:
        self._connected = False
        await self._transport.close()

    def is_connected(self) -> bool:
        return self._connected

    async def check_health(self) -> bool:
        try:
            await self._call("status")
            return True
        except ChainOperationError as e:
            logger.warning(f"Custody health check failed: {e}")
            return False

    # -------------------------------------------------------------------------
    # Reads / writes
    # -------------------------------------------------------------------------

    async def fetch_balance(self, account: str) -> YieldBalance:
        result = await self._call("get_balance", {"principal": account}) or {}
        try:
            last_conversion = result.get("last_conversion")
            return YieldBalance(
                chain=Chain.CUSTODY,
                stablecoin_balance=from_micro_units(result.get("balance", 0)),
                bitcoin_balance=from_satoshis(result.get("bitcoin_balance", 0)),
                cumulative_yield=from_micro_units(result.get("total_yield", 0)),
                last_conversion_at=(
                    parse_chain_timestamp(last_conversion) if last_conversion is not None else None
                ),
                account=result.get("principal", account),
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise ChainOperationError(
                f"custody get_balance returned unparseable data: {e}",
                chain=Chain.CUSTODY.value,
                operation="get_balance",
            ) from e

    async def deposit(self, amount: Decimal, account: Optional[str] = None) -> Optional[str]:
        result = await self._call("deposit_yield", {"amount": to_micro_units(amount)})
        return _reference(result)

    async def convert_yield_to_bitcoin(self, principal: str, amount: Decimal) -> Optional[str]:
        result = await self._call(
            "manual_bitcoin_conversion",
            {"principal": principal, "usdc_amount": to_micro_units(amount)},
        )
        return _reference(result)


def _reference(result: Any) -> Optional[str]:
    """Canister update calls may reply with a tx id, a bare string or nothing."""
    if isinstance(result, dict):
        ref = result.get("tx_id") or result.get("block_index")
        return str(ref) if ref is not None else None
    if isinstance(result, (str, int)) and not isinstance(result, bool):
        return str(result)
    return None
