"""
Price resolution for balance lists.

Each balance is mapped to a price feed id (native coin by chain, then the
curated catalog by contract, then the symbol table), ids are de-duplicated,
and one batched spot request values the whole list. Solana mints resolve
through the catalog only.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import httpx

from ..cache import TTLCache
from ..config import Settings, settings as default_settings
from ..providers.base import PriceProvider
from ..providers.coingecko import PriceFeedError
from ..types import ChainId, TokenBalance
from .token_lists import NATIVE_TOKENS, find_token, price_id_for_symbol

logger = logging.getLogger(__name__)


def resolve_price_id(balance: TokenBalance) -> Optional[str]:
    if not balance.contract_address:
        native = NATIVE_TOKENS.get(balance.chain)
        if native is not None:
            return native.price_feed_id
    else:
        known = find_token(balance.chain, balance.contract_address)
        if known is not None:
            return known.price_feed_id
        if balance.chain is ChainId.SOLANA:
            # Uncataloged mints carry a symbol derived from the mint itself
            return None
    return price_id_for_symbol(balance.symbol)


class SpotPriceService:
    """Spot prices with a short TTL and de-duplication of identical in-flight requests."""

    def __init__(
        self,
        provider: PriceProvider,
        *,
        config: Optional[Settings] = None,
        cache: Optional[TTLCache] = None,
    ) -> None:
        self.provider = provider
        self.config = config or default_settings
        self.ttl_s = self.config.spot_price_ttl_seconds
        self._cache = cache or TTLCache(default_ttl=self.ttl_s, max_size=5000)
        self._pending: Dict[str, "asyncio.Task[Dict[str, Decimal]]"] = {}

    async def get_prices(self, price_ids: Iterable[str]) -> Dict[str, Decimal]:
        unique = sorted({pid for pid in price_ids if pid})
        prices: Dict[str, Decimal] = {}
        uncached: List[str] = []

        for pid in unique:
            cached = await self._cache.get(pid)
            if cached is not None:
                prices[pid] = cached
            else:
                uncached.append(pid)

        if not uncached:
            return prices

        request_key = ",".join(uncached)
        task = self._pending.get(request_key)
        if task is None:
            task = asyncio.create_task(self._fetch(uncached))
            self._pending[request_key] = task
            task.add_done_callback(lambda _t, key=request_key: self._pending.pop(key, None))
        else:
            logger.debug("Joining in-flight price request for %s", request_key)

        fetched = await asyncio.shield(task)
        prices.update(fetched)
        return prices

    async def _fetch(self, price_ids: List[str]) -> Dict[str, Decimal]:
        try:
            fetched = await self.provider.get_prices_by_ids(price_ids)
        except (httpx.HTTPError, PriceFeedError) as exc:
            logger.warning("Price feed request failed for %d ids: %s", len(price_ids), exc)
            return {}

        for pid, price in fetched.items():
            await self._cache.set(pid, price, ttl=self.ttl_s)
        logger.debug("Fetched %d/%d prices", len(fetched), len(price_ids))
        return fetched


def apply_prices(balances: Iterable[TokenBalance], prices: Dict[str, Decimal]) -> List[TokenBalance]:
    """Value every balance; unresolved ids keep a zero price but stay in the list."""

    priced: List[TokenBalance] = []
    for balance in balances:
        price_id = resolve_price_id(balance)
        price = prices.get(price_id, Decimal("0")) if price_id else Decimal("0")
        priced.append(balance.with_price(price))
    return priced


async def price_balances(balances: List[TokenBalance], price_service: SpotPriceService) -> List[TokenBalance]:
    if not balances:
        return []
    price_ids = {pid for pid in (resolve_price_id(b) for b in balances) if pid}
    prices = await price_service.get_prices(price_ids) if price_ids else {}
    return apply_prices(balances, prices)


__all__ = ["resolve_price_id", "SpotPriceService", "apply_prices", "price_balances"]
