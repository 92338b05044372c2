"""Periodic re-valuation of every tracked wallet, committed to the portfolio store."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from ..config import settings
from ..types import ConnectedWallet
from .aggregator import BalanceAggregator
from .portfolio_store import PortfolioStore
from .pricing import SpotPriceService, price_balances


class WalletPhase(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    PRICING = "pricing"
    COMMITTED = "committed"
    FAILED = "failed"


class PortfolioRefreshLoop:
    """Periodically re-values every tracked wallet and commits the results to the store.

    At most one cycle runs at a time; a trigger that arrives while a cycle is
    in flight is dropped rather than queued.
    """

    def __init__(
        self,
        store: PortfolioStore,
        aggregator: BalanceAggregator,
        price_service: SpotPriceService,
        *,
        interval_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.price_service = price_service
        self.interval_seconds = interval_seconds or settings.refresh_interval_seconds
        self.logger = logger or logging.getLogger("portfolio_refresh")
        self._phases: Dict[str, WalletPhase] = {}
        self._in_flight = False
        self._cycle_task: asyncio.Task | None = None
        self._loop_task: asyncio.Task | None = None
        self._wake = asyncio.Event()
        self._running = False
        self.cycle_count = 0
        self.last_error: Optional[str] = None

    # ---------------------------
    # Cycles
    # ---------------------------
    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def phase(self, wallet_id: str) -> WalletPhase:
        return self._phases.get(wallet_id, WalletPhase.IDLE)

    def _begin_cycle(self) -> bool:
        if self._in_flight:
            self.logger.debug("Refresh already in flight; trigger suppressed")
            return False
        self._in_flight = True
        self.store.set_loading(True)
        return True

    async def refresh_all(self) -> bool:
        """Run one cycle to completion. Returns False when another cycle was already running."""
        if not self._begin_cycle():
            return False
        await self._run_cycle()
        return True

    def trigger_refresh(self) -> bool:
        """Start a cycle in the background. Returns False when one is already running."""
        if not self._begin_cycle():
            return False
        self._cycle_task = asyncio.create_task(self._run_cycle(), name="portfolio-refresh-cycle")
        return True

    async def _run_cycle(self) -> None:
        try:
            wallets = self.store.wallets()
            self.logger.debug("Refreshing balances for %d wallets", len(wallets))
            results = await asyncio.gather(
                *(self._refresh_wallet(wallet) for wallet in wallets),
                return_exceptions=True,
            )
            for wallet, result in zip(wallets, results):
                if isinstance(result, BaseException):
                    self._phases[wallet.id] = WalletPhase.FAILED
                    self.logger.warning("Failed to refresh wallet %s: %s", wallet.id, result)

            total = self.store.commit_cycle()
            self.cycle_count += 1
            self.last_error = None
            self.logger.info("Balance refresh complete; total portfolio=%s", total)
        except Exception as exc:  # noqa: BLE001
            self.last_error = str(exc)
            self.logger.error("Refresh cycle crashed: %s", exc, exc_info=True)
        finally:
            self.store.set_loading(False)
            self._in_flight = False

    async def _refresh_wallet(self, wallet: ConnectedWallet) -> None:
        self._phases[wallet.id] = WalletPhase.FETCHING
        balances = await self.aggregator.get_all_chain_balances(wallet.address, wallet.kind)

        self._phases[wallet.id] = WalletPhase.PRICING
        priced = await price_balances(balances, self.price_service)

        if not self.store.update_wallet_balances(wallet.id, priced):
            self._phases.pop(wallet.id, None)
            self.logger.info("Wallet %s removed during refresh; discarding its result", wallet.id)
            return
        self._phases[wallet.id] = WalletPhase.COMMITTED

    def forget_wallet(self, wallet_id: str) -> None:
        self._phases.pop(wallet_id, None)

    def notify_wallets_changed(self) -> None:
        """Wake the loop for an out-of-band cycle (picked up after any cycle in flight)."""
        self._wake.set()

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self.logger.info("Portfolio refresh loop starting; interval=%ss", self.interval_seconds)
        self._loop_task = asyncio.create_task(self._run_loop(), name="portfolio-refresh-loop")

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self.logger.info("Portfolio refresh loop stopping")

        for task in (self._loop_task, self._cycle_task):
            if task is None or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._loop_task = None
        self._cycle_task = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def _run_loop(self) -> None:
        try:
            while self._running:
                self._wake.clear()
                if not await self.refresh_all() and self._cycle_task is not None:
                    # A manually triggered cycle owns the guard; wait for it instead of skipping a beat
                    await asyncio.shield(self._cycle_task)
                try:
                    await asyncio.wait_for(self._wake.wait(), timeout=self.interval_seconds)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            return

    def status(self) -> Dict[str, Any]:
        last_updated = self.store.last_updated
        return {
            "running": self._running,
            "in_flight": self._in_flight,
            "interval_seconds": self.interval_seconds,
            "cycle_count": self.cycle_count,
            "last_updated": _iso_ms(last_updated),
            "last_error": self.last_error,
            "phases": {wallet_id: phase.value for wallet_id, phase in self._phases.items()},
        }


def _iso_ms(value: Optional[int]) -> Optional[str]:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat() if value else None


__all__ = ["PortfolioRefreshLoop", "WalletPhase"]
