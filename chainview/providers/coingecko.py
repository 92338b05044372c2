import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx

from ..config import Settings, settings as default_settings
from .base import PriceProvider

logger = logging.getLogger(__name__)


class PriceFeedError(Exception):
    """Price feed answered with a payload we cannot use."""


class CoingeckoProvider(PriceProvider):
    """Coingecko API provider for spot and historical prices"""

    name = "coingecko"

    def __init__(self, config: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or default_settings
        self.api_key = self.config.coingecko_api_key
        self.base_url = self.config.coingecko_base_url.rstrip("/")
        self.timeout_s = self.config.price_request_timeout_seconds
        self.history_timeout_s = self.config.history_request_timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-CG-Demo-API-Key"] = self.api_key
        return headers

    async def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Single GET against the API; status handling is left to the caller."""
        async with httpx.AsyncClient(transport=self._transport, headers=self._headers()) as client:
            return await client.get(
                f"{self.base_url}{path}",
                params=params,
                timeout=timeout or self.timeout_s,
            )

    async def ready(self) -> bool:
        return True  # the keyless tier serves every endpoint used here

    async def health_check(self) -> Dict[str, Any]:
        try:
            response = await self._get("/ping")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            return {"status": "error", "reason": str(exc) or type(exc).__name__}
        return {
            "status": "healthy",
            "has_api_key": self.config.has_coingecko_key,
            "latency_ms": int(response.elapsed.total_seconds() * 1000),
        }

    async def get_prices_by_ids(self, price_ids: List[str], vs_currency: str = "usd") -> Dict[str, Decimal]:
        """Batched spot prices; ids missing from the reply are simply absent from the result."""
        if not price_ids:
            return {}

        response = await self._get(
            "/simple/price",
            {"ids": ",".join(price_ids), "vs_currencies": vs_currency},
        )
        response.raise_for_status()
        try:
            data = response.json()
        except ValueError as exc:
            raise PriceFeedError("simple/price returned malformed JSON") from exc
        if not isinstance(data, dict):
            raise PriceFeedError("simple/price returned unexpected payload")

        prices: Dict[str, Decimal] = {}
        for price_id, quote in data.items():
            raw = quote.get(vs_currency) if isinstance(quote, dict) else None
            if raw is None:
                continue
            try:
                price = Decimal(str(raw))
            except (InvalidOperation, ValueError):
                continue
            if price.is_finite() and price >= 0:
                prices[price_id] = price
        return prices

    async def get_coin_market_chart(
        self,
        coin_id: str,
        *,
        vs_currency: str = "usd",
        days: str = "7",
        interval: Optional[str] = None,
    ) -> Dict[str, Any]:
        """``{"prices": [[ts_ms, price], ...], ...}`` for the window, ``{}`` for an unknown coin."""
        if not coin_id:
            return {}

        path = f"/coins/{coin_id}/market_chart"
        params: Dict[str, Any] = {"vs_currency": vs_currency, "days": days}
        if interval:
            params["interval"] = interval

        response = await self._get(path, params, timeout=self.history_timeout_s)
        if response.status_code == 401 and interval:
            # Keyless tier rejects explicit intervals on some ranges
            logger.debug("market_chart rejected interval=%s for %s, retrying without it", interval, coin_id)
            params.pop("interval")
            response = await self._get(path, params, timeout=self.history_timeout_s)

        if response.status_code == 404:
            return {}
        response.raise_for_status()
        return response.json()

    async def get_top_coins(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Top coins by market cap; one retry after a rate limit, then an empty list."""
        params = {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": max(1, min(250, limit)),
            "page": 1,
            "sparkline": "false",
            "price_change_percentage": "24h",
        }

        rows = await self._fetch_markets(params)
        if rows is None:
            await asyncio.sleep(2)
            rows = await self._fetch_markets(params)
        if rows is None:
            return []

        return [
            {
                "id": row.get("id"),
                "symbol": str(row.get("symbol", "")).upper(),
                "name": row.get("name"),
                "price_usd": row.get("current_price"),
                "change_24h": row.get("price_change_percentage_24h"),
                "market_cap": row.get("market_cap"),
                "image": row.get("image"),
            }
            for row in rows[:limit]
        ]

    async def _fetch_markets(self, params: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
        response = await self._get("/coins/markets", params, timeout=self.history_timeout_s)
        if response.status_code == 429:
            logger.info("Coingecko rate limited coins/markets")
            return None
        response.raise_for_status()
        return response.json()
