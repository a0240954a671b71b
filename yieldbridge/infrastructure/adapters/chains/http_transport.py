"""Shared JSON-over-HTTP plumbing for the chain adapters."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from ....domain.exceptions import ChainOperationError
from ....utils.logging_setup import get_logger


logger = get_logger(__name__)


class JsonHttpTransport:
    """
    Thin async JSON client bound to one base URL.

    Transport failures, non-2xx statuses and non-JSON bodies all surface as
    ChainOperationError tagged with the chain and operation. An injected
    ``httpx.AsyncClient`` is used as-is and never closed here.
    """

    def __init__(
        self,
        base_url: str,
        chain: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url
        self._chain = chain
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def base_url(self) -> str:
        return self._base_url.rstrip("/")

    @base_url.setter
    def base_url(self, value: str) -> None:
        self._base_url = value

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        json: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        if not self._base_url:
            raise ChainOperationError(
                f"{self._chain} endpoint is not configured", chain=self._chain, operation=operation
            )

        url = f"{self.base_url}{path}"
        logger.debug(f"{self._chain} {method} {url}")
        try:
            response = await self._ensure_client().request(method, url, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ChainOperationError(
                f"{self._chain} {operation} failed: HTTP {e.response.status_code}",
                chain=self._chain,
                operation=operation,
            ) from e
        except httpx.HTTPError as e:
            raise ChainOperationError(
                f"{self._chain} {operation} failed: {type(e).__name__}: {e}",
                chain=self._chain,
                operation=operation,
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise ChainOperationError(
                f"{self._chain} {operation} returned a non-JSON body",
                chain=self._chain,
                operation=operation,
            ) from e
