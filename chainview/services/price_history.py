"""Historical prices per lookback window and portfolio P&L."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

import httpx

from ..cache import TTLCache
from ..config import Settings, settings as default_settings
from ..providers.base import PriceProvider
from ..types import ConnectedWallet, PnLResult, PortfolioPnL, TimePeriod
from .pricing import resolve_price_id

logger = logging.getLogger(__name__)


@dataclass
class Holding:
    price_feed_id: Optional[str]
    balance: Decimal
    current_price: Decimal


class PriceHistoryService:
    def __init__(
        self,
        provider: PriceProvider,
        *,
        config: Optional[Settings] = None,
        cache: Optional[TTLCache] = None,
    ) -> None:
        self.provider = provider
        self.config = config or default_settings
        self.ttl_s = self.config.history_price_ttl_seconds
        self.batch_size = self.config.history_batch_size
        self._cache = cache or TTLCache(default_ttl=self.ttl_s, max_size=5000)

    async def get_historical_price(self, price_id: str, period: TimePeriod) -> Decimal:
        """Price ``period`` ago (first daily point of the series). 0 when unavailable; failures are not cached."""

        cache_key = (price_id, period.value)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            data = await self.provider.get_coin_market_chart(price_id, days=str(period.days), interval="daily")
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Historical price for %s (%s) failed: %s", price_id, period.value, exc)
            return Decimal("0")

        series = data.get("prices") if isinstance(data, dict) else None
        if not series:
            return Decimal("0")
        try:
            price = Decimal(str(series[0][1]))
        except (IndexError, TypeError, InvalidOperation) as exc:
            logger.warning("Malformed price series for %s: %s", price_id, exc)
            return Decimal("0")

        await self._cache.set(cache_key, price, ttl=self.ttl_s)
        return price

    async def get_historical_prices(self, price_ids: Iterable[str], period: TimePeriod) -> Dict[str, Decimal]:
        results: Dict[str, Decimal] = {}
        uncached: List[str] = []

        for pid in dict.fromkeys(pid for pid in price_ids if pid):
            cached = await self._cache.get((pid, period.value))
            if cached is not None:
                results[pid] = cached
            else:
                uncached.append(pid)

        for start in range(0, len(uncached), self.batch_size):
            batch = uncached[start:start + self.batch_size]
            fetched = await asyncio.gather(
                *(self.get_historical_price(pid, period) for pid in batch),
                return_exceptions=True,
            )
            for pid, value in zip(batch, fetched):
                if isinstance(value, BaseException):
                    logger.warning("Historical price for %s raised: %s", pid, value)
                    results[pid] = Decimal("0")
                else:
                    results[pid] = value

        return results

    async def calculate_portfolio_pnl(
        self,
        holdings: List[Holding],
        periods: Iterable[TimePeriod] = tuple(TimePeriod),
    ) -> PortfolioPnL:
        periods = list(periods)
        price_ids = list(dict.fromkeys(h.price_feed_id for h in holdings if h.price_feed_id))
        current_value = sum((h.balance * h.current_price for h in holdings), Decimal("0"))

        historical = await asyncio.gather(*(self.get_historical_prices(price_ids, p) for p in periods))

        result = PortfolioPnL()
        for period, prices in zip(periods, historical):
            result.periods[period] = compute_pnl(holdings, prices, current_value)
        return result


def compute_pnl(holdings: List[Holding], historical_prices: Dict[str, Decimal], current_value: Decimal) -> PnLResult:
    previous_value = Decimal("0")
    for holding in holdings:
        past = historical_prices.get(holding.price_feed_id) if holding.price_feed_id else None
        # No history means no measurable move: value it at today's price
        if not past:
            past = holding.current_price
        previous_value += holding.balance * past

    absolute_change = current_value - previous_value
    percentage_change = (absolute_change / previous_value * 100) if previous_value > 0 else Decimal("0")
    return PnLResult(
        absolute_change=absolute_change,
        percentage_change=percentage_change,
        previous_value=previous_value,
        current_value=current_value,
    )


def holdings_from_wallets(wallets: Iterable[ConnectedWallet]) -> List[Holding]:
    holdings: List[Holding] = []
    for wallet in wallets:
        for balance in wallet.balances:
            holdings.append(
                Holding(
                    price_feed_id=resolve_price_id(balance),
                    balance=balance.amount,
                    current_price=balance.price_usd,
                )
            )
    return holdings


def format_pnl(pnl: PnLResult) -> Dict[str, object]:
    is_positive = pnl.absolute_change >= 0
    sign = "+" if is_positive else "-"
    absolute = abs(pnl.absolute_change).quantize(Decimal("0.01"))
    percent = abs(pnl.percentage_change).quantize(Decimal("0.01"))
    return {
        "absolute": f"{sign}${absolute:,.2f}",
        "percent": f"{sign}{percent:.2f}%",
        "is_positive": is_positive,
    }


__all__ = [
    "Holding",
    "PriceHistoryService",
    "compute_pnl",
    "holdings_from_wallets",
    "format_pnl",
]
