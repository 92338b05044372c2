"""EVM balances over public JSON-RPC endpoints with ordered failover."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from ..config import Settings, settings as default_settings
from ..services.endpoints import get_endpoint_pool
from ..services.token_lists import get_native_token, get_tokens_for_chain
from ..types import ChainId, TokenBalance, TokenInfo
from .base import IndexerProvider, make_balance
from .rpc import EvmRpcClient, RpcError, RpcTransportError, build_client

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ChainId, int], EvmRpcClient]


class EvmBalanceProvider(IndexerProvider):
    """Native and curated ERC-20 balances for any configured EVM chain."""

    name = "evm-rpc"

    def __init__(
        self,
        *,
        config: Optional[Settings] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.config = config or default_settings
        self.timeout_s = self.config.evm_attempt_timeout_seconds
        self._client_factory = client_factory or self._default_factory

    def _default_factory(self, chain: ChainId, index: int) -> EvmRpcClient:
        return build_client(chain, index, config=self.config)  # type: ignore[return-value]

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        pools = {chain.value: len(get_endpoint_pool(chain, self.config)) for chain in ChainId if chain.is_evm}
        return {"status": "configured", "endpoints": pools}

    async def get_native_balance(self, chain: ChainId, address: str) -> int:
        pool = get_endpoint_pool(chain, self.config)
        for index in range(len(pool)):
            client = self._client_factory(chain, index)
            try:
                async with client:
                    return await asyncio.wait_for(client.get_balance(address), timeout=self.timeout_s)
            except (RpcError, asyncio.TimeoutError) as exc:
                logger.warning(
                    "Native balance on %s failed via %s (%d/%d): %s",
                    chain.value,
                    client.url,
                    index + 1,
                    len(pool),
                    str(exc) or type(exc).__name__,
                )

        logger.warning("All %d %s endpoints failed for native balance of %s", len(pool), chain.value, address)
        return 0

    async def get_token_balances(
        self, chain: ChainId, address: str, tokens: Optional[List[TokenInfo]] = None
    ) -> List[TokenBalance]:
        tokens = get_tokens_for_chain(chain) if tokens is None else tokens
        if not tokens:
            return []

        pool = get_endpoint_pool(chain, self.config)
        for index in range(len(pool)):
            client = self._client_factory(chain, index)
            async with client:
                results = await asyncio.gather(
                    *(self._query_token(client, token, address) for token in tokens),
                    return_exceptions=True,
                )

            if all(isinstance(r, (RpcTransportError, asyncio.TimeoutError)) for r in results):
                logger.warning(
                    "Token batch on %s failed via %s (%d/%d)", chain.value, client.url, index + 1, len(pool)
                )
                continue

            balances: List[TokenBalance] = []
            for token, result in zip(tokens, results):
                if isinstance(result, BaseException):
                    # A single broken contract must not hide the rest of the batch
                    logger.debug("Skipping %s on %s: %s", token.symbol, chain.value, result)
                    continue
                if result > 0:
                    balances.append(make_balance(chain, token, result))
            return balances

        logger.warning("All %d %s endpoints failed for token balances of %s", len(pool), chain.value, address)
        return []

    async def _query_token(self, client: EvmRpcClient, token: TokenInfo, address: str) -> int:
        return await asyncio.wait_for(
            client.get_token_balance(token.contract_address, address),
            timeout=self.timeout_s,
        )

    async def get_chain_balances(self, chain: ChainId, address: str) -> List[TokenBalance]:
        """Native coin first (when held), then curated tokens. Never raises for endpoint failures."""

        native_raw, tokens = await asyncio.gather(
            self.get_native_balance(chain, address),
            self.get_token_balances(chain, address),
        )
        balances: List[TokenBalance] = []
        if native_raw > 0:
            balances.append(make_balance(chain, get_native_token(chain), native_raw))
        balances.extend(tokens)
        return balances


__all__ = ["EvmBalanceProvider"]
