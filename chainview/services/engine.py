"""Wires providers, caches and the refresh loop into one object owned by the API process."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..config import Settings, settings as default_settings
from ..providers.coingecko import CoingeckoProvider
from ..providers.evm import EvmBalanceProvider
from ..providers.solana import SolanaBalanceProvider, SolanaConnectionCache
from .aggregator import BalanceAggregator
from .portfolio_store import PortfolioStore
from .price_history import PriceHistoryService
from .pricing import SpotPriceService
from .refresh import PortfolioRefreshLoop


@dataclass
class Engine:
    config: Settings
    store: PortfolioStore
    prices: CoingeckoProvider
    evm: EvmBalanceProvider
    solana_connections: SolanaConnectionCache
    solana: SolanaBalanceProvider
    aggregator: BalanceAggregator
    spot_prices: SpotPriceService
    history: PriceHistoryService
    refresh_loop: PortfolioRefreshLoop

    async def aclose(self) -> None:
        await self.refresh_loop.stop()
        await self.solana_connections.aclose()


def build_engine(config: Optional[Settings] = None) -> Engine:
    cfg = config or default_settings
    store = PortfolioStore()
    prices = CoingeckoProvider(cfg)
    evm = EvmBalanceProvider(config=cfg)
    solana_connections = SolanaConnectionCache(config=cfg)
    solana = SolanaBalanceProvider(solana_connections, config=cfg)
    aggregator = BalanceAggregator(evm, solana, config=cfg)
    spot_prices = SpotPriceService(prices, config=cfg)
    history = PriceHistoryService(prices, config=cfg)
    refresh_loop = PortfolioRefreshLoop(
        store,
        aggregator,
        spot_prices,
        interval_seconds=cfg.refresh_interval_seconds,
        logger=logging.getLogger("portfolio_refresh"),
    )
    return Engine(
        config=cfg,
        store=store,
        prices=prices,
        evm=evm,
        solana_connections=solana_connections,
        solana=solana,
        aggregator=aggregator,
        spot_prices=spot_prices,
        history=history,
        refresh_loop=refresh_loop,
    )


__all__ = ["Engine", "build_engine"]
