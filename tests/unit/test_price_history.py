import asyncio
from decimal import Decimal

import httpx
import pytest

from chainview.config import Settings
from chainview.services.price_history import (
    Holding,
    PriceHistoryService,
    compute_pnl,
    format_pnl,
    holdings_from_wallets,
)
from chainview.types import ChainId, ConnectedWallet, PnLResult, TimePeriod, TokenBalance, WalletKind


class _FakeChartProvider:
    def __init__(self, series=None, error=None):
        self.series = series or {}
        self.error = error
        self.calls = []
        self.active = 0
        self.max_active = 0

    async def get_coin_market_chart(self, coin_id, *, vs_currency="usd", days="7", interval=None):
        self.calls.append((coin_id, days, interval))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0)
            if self.error is not None:
                raise self.error
            price = self.series.get(coin_id)
            if price is None:
                return {}
            return {"prices": [[1700000000000, price], [1700086400000, price * 2]]}
        finally:
            self.active -= 1


def test_pnl_previous_value_zero_gives_zero_percentage():
    holdings = [Holding(price_feed_id="dust", balance=Decimal("5"), current_price=Decimal("0"))]

    result = compute_pnl(holdings, {}, Decimal("0"))

    assert result.previous_value == 0
    assert result.percentage_change == 0
    assert result.absolute_change == 0


def test_pnl_unchanged_prices_give_zero_change():
    holdings = [Holding(price_feed_id="ethereum", balance=Decimal("2"), current_price=Decimal("100"))]

    result = compute_pnl(holdings, {"ethereum": Decimal("100")}, Decimal("200"))

    assert result.absolute_change == 0
    assert result.percentage_change == 0


def test_pnl_against_historical_value():
    holdings = [
        Holding(price_feed_id="ethereum", balance=Decimal("2"), current_price=Decimal("110")),
        Holding(price_feed_id="usd-coin", balance=Decimal("50"), current_price=Decimal("1")),
    ]

    result = compute_pnl(holdings, {"ethereum": Decimal("100"), "usd-coin": Decimal("1")}, Decimal("270"))

    assert result.previous_value == Decimal("250")
    assert result.absolute_change == Decimal("20")
    assert result.percentage_change == Decimal("8")


def test_missing_history_falls_back_to_current_price():
    holdings = [
        Holding(price_feed_id="newcoin", balance=Decimal("3"), current_price=Decimal("4")),
        Holding(price_feed_id=None, balance=Decimal("1"), current_price=Decimal("6")),
    ]

    result = compute_pnl(holdings, {"newcoin": Decimal("0")}, Decimal("18"))

    assert result.previous_value == Decimal("18")
    assert result.absolute_change == 0


def test_format_pnl_renders_sign_and_grouping():
    gain = PnLResult(absolute_change=Decimal("1234.564"), percentage_change=Decimal("1.234"))
    loss = PnLResult(absolute_change=Decimal("-5"), percentage_change=Decimal("-0.5"))

    assert format_pnl(gain) == {"absolute": "+$1,234.56", "percent": "+1.23%", "is_positive": True}
    assert format_pnl(loss) == {"absolute": "-$5.00", "percent": "-0.50%", "is_positive": False}


@pytest.mark.asyncio
async def test_historical_price_takes_first_point_and_is_cached():
    provider = _FakeChartProvider({"ethereum": 1800})
    service = PriceHistoryService(provider, config=Settings())

    first = await service.get_historical_price("ethereum", TimePeriod.WEEK)
    second = await service.get_historical_price("ethereum", TimePeriod.WEEK)

    assert first == second == Decimal("1800")
    assert provider.calls == [("ethereum", "7", "daily")]


@pytest.mark.asyncio
async def test_windows_are_cached_independently():
    provider = _FakeChartProvider({"ethereum": 1800})
    service = PriceHistoryService(provider, config=Settings())

    await service.get_historical_price("ethereum", TimePeriod.DAY)
    await service.get_historical_price("ethereum", TimePeriod.MONTH)

    assert [days for _, days, _ in provider.calls] == ["1", "30"]


@pytest.mark.asyncio
async def test_historical_failure_returns_zero_and_is_not_cached():
    provider = _FakeChartProvider(error=httpx.ReadTimeout("slow"))
    service = PriceHistoryService(provider, config=Settings())

    assert await service.get_historical_price("ethereum", TimePeriod.DAY) == 0
    assert await service.get_historical_price("ethereum", TimePeriod.DAY) == 0
    assert len(provider.calls) == 2


@pytest.mark.asyncio
async def test_historical_prices_fetched_in_bounded_batches():
    ids = ["a", "b", "c", "d", "e"]
    provider = _FakeChartProvider({pid: 1 for pid in ids})
    service = PriceHistoryService(provider, config=Settings(history_batch_size=2))

    prices = await service.get_historical_prices(ids + ["a", ""], TimePeriod.DAY)

    assert set(prices) == set(ids)
    assert len(provider.calls) == 5
    assert provider.max_active <= 2


@pytest.mark.asyncio
async def test_portfolio_pnl_covers_every_window():
    provider = _FakeChartProvider({"ethereum": 100})
    service = PriceHistoryService(provider, config=Settings())
    holdings = [Holding(price_feed_id="ethereum", balance=Decimal("1"), current_price=Decimal("150"))]

    pnl = await service.calculate_portfolio_pnl(holdings)

    assert set(pnl.periods) == set(TimePeriod)
    for period in TimePeriod:
        assert pnl[period].current_value == Decimal("150")
        assert pnl[period].percentage_change == Decimal("50")


def test_holdings_from_wallets_uses_priced_balances():
    balance = TokenBalance(
        symbol="ETH", name="Ethereum", balance="1.5", decimals=18, chain=ChainId.BASE
    ).with_price(Decimal("2000"))
    wallet = ConnectedWallet(
        id="w1",
        address="0x1234567890abcdef1234567890ABCDEF12345678",
        kind=WalletKind.EVM,
        name="main",
        balances=[balance],
        connected_at=0,
    )

    holdings = holdings_from_wallets([wallet])

    assert holdings == [Holding(price_feed_id="ethereum", balance=Decimal("1.5"), current_price=Decimal("2000"))]
