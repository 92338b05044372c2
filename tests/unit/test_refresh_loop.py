import asyncio
from decimal import Decimal

import pytest

from chainview.providers.base import make_balance
from chainview.services.portfolio_store import PortfolioStore
from chainview.services.refresh import PortfolioRefreshLoop, WalletPhase
from chainview.services.token_lists import get_native_token
from chainview.types import ChainId, WalletKind

EVM_ADDRESS = "0x1234567890abcdef1234567890ABCDEF12345678"
OTHER_ADDRESS = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd"


class _FakeAggregator:
    def __init__(self, gate=None, failing=()):
        self.gate = gate
        self.failing = set(failing)
        self.calls = []

    async def get_all_chain_balances(self, address, kind):
        self.calls.append(address)
        if self.gate is not None:
            await self.gate.wait()
        if address in self.failing:
            raise RuntimeError("aggregation exploded")
        return [make_balance(ChainId.ETHEREUM, get_native_token(ChainId.ETHEREUM), 10 ** 18)]


class _FakePrices:
    async def get_prices(self, price_ids):
        return {"ethereum": Decimal("2000")}


def _loop(aggregator, *addresses):
    store = PortfolioStore()
    wallets = [store.add_wallet(address, WalletKind.EVM) for address in addresses]
    loop = PortfolioRefreshLoop(store, aggregator, _FakePrices(), interval_seconds=60)
    return loop, store, wallets


async def _wait_idle(loop):
    for _ in range(100):
        if not loop.in_flight:
            return
        await asyncio.sleep(0)
    raise AssertionError("refresh cycle did not finish")


@pytest.mark.asyncio
async def test_refresh_commits_priced_totals():
    loop, store, (wallet,) = _loop(_FakeAggregator(), EVM_ADDRESS)

    assert await loop.refresh_all() is True

    snapshot = store.snapshot()
    assert snapshot.total_portfolio_usd == Decimal("2000")
    assert snapshot.is_loading is False
    assert snapshot.last_updated is not None
    assert loop.phase(wallet.id) is WalletPhase.COMMITTED
    assert loop.cycle_count == 1


@pytest.mark.asyncio
async def test_concurrent_triggers_are_suppressed():
    gate = asyncio.Event()
    aggregator = _FakeAggregator(gate=gate)
    loop, store, _ = _loop(aggregator, EVM_ADDRESS)

    running = asyncio.create_task(loop.refresh_all())
    await asyncio.sleep(0)
    assert loop.in_flight is True
    assert store.snapshot().is_loading is True

    assert await loop.refresh_all() is False
    assert loop.trigger_refresh() is False

    gate.set()
    assert await running is True
    assert aggregator.calls == [EVM_ADDRESS]
    assert loop.in_flight is False


@pytest.mark.asyncio
async def test_trigger_refresh_runs_in_background():
    loop, store, _ = _loop(_FakeAggregator(), EVM_ADDRESS)

    assert loop.trigger_refresh() is True
    await _wait_idle(loop)

    assert store.total_portfolio_usd == Decimal("2000")


@pytest.mark.asyncio
async def test_one_failed_wallet_does_not_block_the_others():
    loop, store, (good, bad) = _loop(_FakeAggregator(failing={OTHER_ADDRESS}), EVM_ADDRESS, OTHER_ADDRESS)

    assert await loop.refresh_all() is True

    assert loop.phase(good.id) is WalletPhase.COMMITTED
    assert loop.phase(bad.id) is WalletPhase.FAILED
    assert store.total_portfolio_usd == Decimal("2000")
    assert loop.status()["phases"] == {good.id: "committed", bad.id: "failed"}


@pytest.mark.asyncio
async def test_result_for_wallet_removed_mid_cycle_is_dropped():
    gate = asyncio.Event()
    loop, store, (wallet,) = _loop(_FakeAggregator(gate=gate), EVM_ADDRESS)

    running = asyncio.create_task(loop.refresh_all())
    await asyncio.sleep(0)
    store.remove_wallet(wallet.id)
    loop.forget_wallet(wallet.id)
    gate.set()
    await running

    assert store.wallets() == []
    assert store.total_portfolio_usd == 0
    assert wallet.id not in loop.status()["phases"]


@pytest.mark.asyncio
async def test_loop_runs_on_start_and_wakes_on_wallet_change():
    aggregator = _FakeAggregator()
    loop, store, _ = _loop(aggregator, EVM_ADDRESS)

    await loop.start()
    for _ in range(100):
        if loop.cycle_count >= 1:
            break
        await asyncio.sleep(0)
    store.add_wallet(OTHER_ADDRESS, WalletKind.EVM)
    loop.notify_wallets_changed()
    for _ in range(100):
        if loop.cycle_count >= 2:
            break
        await asyncio.sleep(0)
    await loop.stop()

    assert loop.cycle_count >= 2
    assert OTHER_ADDRESS in aggregator.calls
    assert loop.is_running is False
    assert store.total_portfolio_usd == Decimal("4000")
