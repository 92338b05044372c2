"""
JSON-RPC chain clients.

A client is bound to exactly one endpoint. It retries transport failures a
small, fixed number of times, but never rotates endpoints; failover belongs to
the balance fetchers that own the endpoint pool.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Dict, List, Optional

import httpx
from eth_utils import encode_hex, function_signature_to_4byte_selector, is_address, remove_0x_prefix

from ..config import Settings, settings as default_settings
from ..services.endpoints import get_endpoint_pool
from ..types import ChainId

logger = logging.getLogger(__name__)

BALANCE_OF_SELECTOR = encode_hex(function_signature_to_4byte_selector("balanceOf(address)"))
SPL_TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

_RETRYABLE_STATUS = {429, 502, 503, 504}


class RpcError(Exception):
    """JSON-RPC error reply or a payload we cannot interpret."""

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class RpcTransportError(RpcError):
    """Endpoint unreachable after the client's transport retries."""


class JsonRpcClient:
    """Minimal async JSON-RPC 2.0 client bound to a single endpoint."""

    def __init__(
        self,
        url: str,
        *,
        chain: ChainId,
        timeout_s: float,
        retries: int = 2,
        backoff_s: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.chain = chain
        self.timeout_s = timeout_s
        self.retries = max(0, retries)
        self.backoff_s = backoff_s
        self._ids = itertools.count(1)
        self._client = httpx.AsyncClient(timeout=timeout_s, transport=transport)

    async def __aenter__(self) -> "JsonRpcClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        attempt = 0
        while True:
            try:
                response = await self._client.post(
                    self.url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                if response.status_code in _RETRYABLE_STATUS:
                    raise httpx.HTTPStatusError(
                        f"retryable status {response.status_code}",
                        request=response.request,
                        response=response,
                    )
                response.raise_for_status()
                break
            except (httpx.TransportError, httpx.HTTPStatusError) as exc:
                retryable = isinstance(exc, httpx.TransportError) or (
                    exc.response.status_code in _RETRYABLE_STATUS
                )
                if not retryable:
                    raise RpcError(f"{method} failed: HTTP {exc.response.status_code}", url=self.url) from exc
                if attempt >= self.retries:
                    raise RpcTransportError(f"{method} failed after {attempt + 1} attempts: {exc}", url=self.url) from exc
                attempt += 1
                logger.debug("Retrying %s on %s (attempt %d): %s", method, self.url, attempt, exc)
                await asyncio.sleep(self.backoff_s)

        try:
            data = response.json()
        except ValueError as exc:
            raise RpcError(f"{method} returned malformed JSON", url=self.url) from exc

        if not isinstance(data, dict):
            raise RpcError(f"{method} returned unexpected payload", url=self.url)
        if data.get("error"):
            raise RpcError(f"{method} error: {data['error']}", url=self.url)
        if "result" not in data:
            raise RpcError(f"{method} response missing result", url=self.url)
        return data["result"]


def _parse_hex_quantity(value: Any, *, method: str, url: str) -> int:
    if not isinstance(value, str) or not value.startswith("0x") or value == "0x":
        raise RpcError(f"{method} returned non-quantity {value!r}", url=url)
    try:
        return int(value, 16)
    except ValueError as exc:
        raise RpcError(f"{method} returned non-quantity {value!r}", url=url) from exc


class EvmRpcClient(JsonRpcClient):
    async def get_balance(self, address: str) -> int:
        """Native balance in wei."""
        result = await self.request("eth_getBalance", [address, "latest"])
        return _parse_hex_quantity(result, method="eth_getBalance", url=self.url)

    async def get_token_balance(self, token_address: str, owner: str) -> int:
        """ERC-20 ``balanceOf(owner)`` in base units."""
        if not is_address(owner):
            raise RpcError(f"invalid owner address {owner!r}", url=self.url)
        data = BALANCE_OF_SELECTOR + remove_0x_prefix(owner).lower().rjust(64, "0")
        result = await self.request("eth_call", [{"to": token_address, "data": data}, "latest"])
        return _parse_hex_quantity(result, method="eth_call", url=self.url)


class SolanaRpcClient(JsonRpcClient):
    async def get_slot(self) -> int:
        result = await self.request("getSlot", [])
        if not isinstance(result, int):
            raise RpcError("getSlot returned unexpected payload", url=self.url)
        return result

    async def get_balance(self, address: str) -> int:
        """Native balance in lamports."""
        result = await self.request("getBalance", [address, {"commitment": "confirmed"}])
        value = result.get("value") if isinstance(result, dict) else None
        if not isinstance(value, int):
            raise RpcError("getBalance returned unexpected payload", url=self.url)
        return value

    async def get_parsed_token_accounts(self, owner: str) -> List[Dict[str, Any]]:
        result = await self.request(
            "getParsedTokenAccountsByOwner",
            [owner, {"programId": SPL_TOKEN_PROGRAM_ID}, {"encoding": "jsonParsed"}],
        )
        value = result.get("value") if isinstance(result, dict) else None
        if not isinstance(value, list):
            raise RpcError("getParsedTokenAccountsByOwner returned unexpected payload", url=self.url)
        return value


def build_client_for_url(
    chain: ChainId,
    url: str,
    *,
    config: Optional[Settings] = None,
    timeout_s: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> JsonRpcClient:
    cfg = config or default_settings
    common = dict(
        chain=chain,
        retries=cfg.rpc_transport_retries,
        backoff_s=cfg.rpc_retry_backoff_seconds,
        transport=transport,
    )
    if chain is ChainId.SOLANA:
        return SolanaRpcClient(url, timeout_s=timeout_s or cfg.solana_request_timeout_seconds, **common)
    return EvmRpcClient(url, timeout_s=timeout_s or cfg.evm_request_timeout_seconds, **common)


def build_client(
    chain: ChainId,
    endpoint_index: int,
    *,
    config: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> JsonRpcClient:
    """Build a short-lived client for the ``endpoint_index``-th candidate of ``chain``'s pool."""

    pool = get_endpoint_pool(chain, config)
    if not 0 <= endpoint_index < len(pool):
        raise IndexError(f"{chain.value} has no endpoint #{endpoint_index} (pool size {len(pool)})")
    return build_client_for_url(chain, pool[endpoint_index], config=config, transport=transport)


__all__ = [
    "RpcError",
    "RpcTransportError",
    "JsonRpcClient",
    "EvmRpcClient",
    "SolanaRpcClient",
    "build_client",
    "build_client_for_url",
    "BALANCE_OF_SELECTOR",
    "SPL_TOKEN_PROGRAM_ID",
]
