"""Solana balances over JSON-RPC through a validated, short-lived connection cache."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Collection, Dict, List, Optional, Set, Tuple

from ..config import Settings, settings as default_settings
from ..services.endpoints import get_endpoint_pool
from ..services.token_lists import find_token, get_native_token
from ..types import ChainId, TokenBalance, TokenInfo
from .base import IndexerProvider, format_units, make_balance
from .rpc import RpcError, SolanaRpcClient, build_client_for_url

logger = logging.getLogger(__name__)

UNKNOWN_TOKEN_NAME = "Unknown Token"


class SolanaUnavailableError(Exception):
    """No Solana endpoint passed the liveness probe."""


@dataclass
class SolanaConnection:
    client: SolanaRpcClient
    created_at: float
    source_url: str


class SolanaConnectionCache:
    """Holds one probed Solana connection for a short TTL.

    ``get`` reuses the cached connection while it is fresh, otherwise probes
    every configured URL in priority order with ``getSlot``. ``invalidate``
    drops it so the next ``get`` re-validates from the first URL.
    """

    def __init__(
        self,
        urls: Optional[List[str]] = None,
        *,
        config: Optional[Settings] = None,
        ttl_s: Optional[float] = None,
        probe_timeout_s: Optional[float] = None,
        client_factory: Optional[Callable[[str], SolanaRpcClient]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or default_settings
        self._urls = list(urls) if urls is not None else None
        self.ttl_s = ttl_s if ttl_s is not None else self.config.solana_connection_ttl_seconds
        self.probe_timeout_s = (
            probe_timeout_s if probe_timeout_s is not None else self.config.solana_probe_timeout_seconds
        )
        self._client_factory = client_factory or self._default_factory
        self._clock = clock
        self._connection: Optional[SolanaConnection] = None
        # Replaced clients may still serve an in-flight call; closed once past the grace period
        self._retired: List[Tuple[float, SolanaRpcClient]] = []
        self._lock = asyncio.Lock()

    def _default_factory(self, url: str) -> SolanaRpcClient:
        return build_client_for_url(ChainId.SOLANA, url, config=self.config)  # type: ignore[return-value]

    @property
    def urls(self) -> List[str]:
        if self._urls is not None:
            return list(self._urls)
        return get_endpoint_pool(ChainId.SOLANA, self.config)

    @property
    def current(self) -> Optional[SolanaConnection]:
        return self._connection

    def _is_fresh(self, connection: SolanaConnection) -> bool:
        return (self._clock() - connection.created_at) < self.ttl_s

    async def get(self, force_new: bool = False, skip: Collection[str] = ()) -> SolanaConnection:
        """Fresh cached connection, or the first URL in priority order that passes the probe.

        URLs in ``skip`` are never reused or reconnected; callers pass the
        endpoints that already failed a real call so a retry moves down the pool.
        """
        async with self._lock:
            connection = self._connection
            if (
                connection is not None
                and not force_new
                and connection.source_url not in skip
                and self._is_fresh(connection)
            ):
                return connection

            self._retire_locked()
            await self._close_expired_locked()

            last_error: Optional[BaseException] = None
            for url in self.urls:
                if url in skip:
                    continue
                client = self._client_factory(url)
                try:
                    await asyncio.wait_for(client.get_slot(), timeout=self.probe_timeout_s)
                except (RpcError, asyncio.TimeoutError) as exc:
                    last_error = exc
                    logger.warning("Solana endpoint %s failed liveness probe: %s", url, str(exc) or type(exc).__name__)
                    await client.aclose()
                    continue

                self._connection = SolanaConnection(client=client, created_at=self._clock(), source_url=url)
                logger.debug("Solana connection established via %s", url)
                return self._connection

            raise SolanaUnavailableError(
                f"No usable Solana RPC endpoint ({len(skip)} skipped after failed calls, the rest unreachable)"
            ) from last_error

    async def invalidate(self) -> None:
        async with self._lock:
            self._retire_locked()

    async def aclose(self) -> None:
        async with self._lock:
            self._retire_locked()
            retired, self._retired = self._retired, []
        for _, client in retired:
            await client.aclose()

    def _retire_locked(self) -> None:
        if self._connection is not None:
            self._retired.append((self._clock(), self._connection.client))
            self._connection = None

    async def _close_expired_locked(self) -> None:
        grace = self.config.solana_request_timeout_seconds * 2
        now = self._clock()
        keep: List[Tuple[float, SolanaRpcClient]] = []
        for retired_at, client in self._retired:
            if now - retired_at >= grace:
                await client.aclose()
            else:
                keep.append((retired_at, client))
        self._retired = keep


def _parse_token_account(account: Dict[str, Any]) -> Optional[TokenBalance]:
    info = account["account"]["data"]["parsed"]["info"]
    mint = info["mint"]
    token_amount = info["tokenAmount"]
    decimals = int(token_amount["decimals"])

    ui_amount = token_amount.get("uiAmountString")
    if ui_amount is not None:
        amount = Decimal(str(ui_amount))
        balance = str(ui_amount)
    else:
        balance = format_units(int(token_amount["amount"]), decimals)
        amount = Decimal(balance)

    if not amount.is_finite():
        raise ValueError(f"non-finite amount for mint {mint}")
    if amount <= 0:
        return None

    known: Optional[TokenInfo] = find_token(ChainId.SOLANA, mint)
    return TokenBalance(
        symbol=known.symbol if known else mint[:4].upper(),
        name=known.name if known else UNKNOWN_TOKEN_NAME,
        balance=balance,
        decimals=decimals,
        chain=ChainId.SOLANA,
        contract_address=mint,
    )


class SolanaBalanceProvider(IndexerProvider):
    """SOL and SPL balances. The connection cache is injected so callers control its lifetime."""

    name = "solana-rpc"

    def __init__(self, connections: SolanaConnectionCache, *, config: Optional[Settings] = None) -> None:
        self.connections = connections
        self.config = config or default_settings
        self.timeout_s = self.config.solana_attempt_timeout_seconds

    async def ready(self) -> bool:
        return bool(self.connections.urls)

    async def health_check(self) -> Dict[str, Any]:
        try:
            connection = await self.connections.get()
        except SolanaUnavailableError as exc:
            return {"status": "error", "reason": str(exc)}
        return {"status": "healthy", "endpoint_index": self.connections.urls.index(connection.source_url)}

    async def get_native_balance(self, chain: ChainId, address: str) -> int:
        """Lamports held by ``address``.

        A failed read moves to the next endpoint in the pool. A zero on the
        first read is re-checked once on a fresh connection; cold RPC
        nodes occasionally report 0 for funded accounts. Failures and that
        re-check share one bounded budget, widened to cover every endpoint.
        """

        attempts = max(self.config.solana_native_max_retries + 1, len(self.connections.urls))
        failed: Set[str] = set()
        force_new = False

        for attempt in range(attempts):
            try:
                connection = await self.connections.get(force_new=force_new, skip=failed)
            except SolanaUnavailableError as exc:
                logger.warning("Solana unavailable for native balance of %s: %s", address, exc)
                return 0

            try:
                lamports = await asyncio.wait_for(connection.client.get_balance(address), timeout=self.timeout_s)
            except (RpcError, asyncio.TimeoutError) as exc:
                logger.warning(
                    "Solana native balance failed via %s (attempt %d/%d): %s",
                    connection.source_url,
                    attempt + 1,
                    attempts,
                    str(exc) or type(exc).__name__,
                )
                failed.add(connection.source_url)
                await self.connections.invalidate()
                force_new = True
                continue

            if lamports == 0 and attempt == 0 and attempts > 1:
                logger.info("Solana reported zero balance for %s, re-checking on a fresh connection", address)
                await self.connections.invalidate()
                force_new = True
                continue

            return lamports

        logger.warning("Solana native balance retries exhausted for %s", address)
        return 0

    async def get_token_balances(
        self, chain: ChainId, address: str, tokens: Optional[List[TokenInfo]] = None
    ) -> List[TokenBalance]:
        """All SPL holdings from one token-account scan. ``tokens`` is unused: the scan is authoritative."""

        attempts = max(1, len(self.connections.urls))
        failed: Set[str] = set()
        force_new = False
        accounts: Optional[List[Dict[str, Any]]] = None

        for attempt in range(attempts):
            try:
                connection = await self.connections.get(force_new=force_new, skip=failed)
            except SolanaUnavailableError as exc:
                logger.warning("Solana unavailable for token accounts of %s: %s", address, exc)
                return []
            try:
                accounts = await asyncio.wait_for(
                    connection.client.get_parsed_token_accounts(address), timeout=self.timeout_s
                )
                break
            except (RpcError, asyncio.TimeoutError) as exc:
                logger.warning(
                    "Solana token account scan failed via %s (attempt %d/%d): %s",
                    connection.source_url,
                    attempt + 1,
                    attempts,
                    str(exc) or type(exc).__name__,
                )
                failed.add(connection.source_url)
                await self.connections.invalidate()
                force_new = True

        if accounts is None:
            return []

        balances: List[TokenBalance] = []
        parse_failed = False
        for account in accounts:
            try:
                balance = _parse_token_account(account)
            except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
                parse_failed = True
                logger.warning("Skipping unparseable Solana token account: %s", exc)
                continue
            if balance is not None:
                balances.append(balance)

        if parse_failed:
            await self.connections.invalidate()
        return balances

    async def get_balances(self, address: str) -> List[TokenBalance]:
        """SOL first (when held), then SPL holdings, fetched sequentially."""

        balances: List[TokenBalance] = []
        lamports = await self.get_native_balance(ChainId.SOLANA, address)
        if lamports > 0:
            balances.append(make_balance(ChainId.SOLANA, get_native_token(ChainId.SOLANA), lamports))
        balances.extend(await self.get_token_balances(ChainId.SOLANA, address))
        return balances


__all__ = [
    "SolanaBalanceProvider",
    "SolanaConnection",
    "SolanaConnectionCache",
    "SolanaUnavailableError",
]
