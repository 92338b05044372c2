"""Fan-out of balance fetchers across every configured chain for one wallet."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from ..config import Settings, settings as default_settings
from ..providers.evm import EvmBalanceProvider
from ..providers.solana import SolanaBalanceProvider
from ..types import ChainId, TokenBalance, WalletKind
from .endpoints import configured_evm_chains

logger = logging.getLogger(__name__)


class BalanceAggregator:
    def __init__(
        self,
        evm: EvmBalanceProvider,
        solana: SolanaBalanceProvider,
        *,
        chains: Optional[List[ChainId]] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self.evm = evm
        self.solana = solana
        self.chains = list(chains) if chains is not None else configured_evm_chains(config or default_settings)

    async def get_all_chain_balances(self, address: str, kind: WalletKind) -> List[TokenBalance]:
        """Merged balances in chain iteration order. A failed chain contributes nothing; this never raises."""

        if kind is WalletKind.SOLANA:
            try:
                return await self.solana.get_balances(address)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Solana balances failed for %s: %s", address, exc, exc_info=True)
                return []

        results = await asyncio.gather(
            *(self.evm.get_chain_balances(chain, address) for chain in self.chains),
            return_exceptions=True,
        )

        merged: List[TokenBalance] = []
        for chain, result in zip(self.chains, results):
            if isinstance(result, BaseException):
                logger.warning("Balances on %s failed for %s: %s", chain.value, address, result)
                continue
            merged.extend(result)
        return merged


__all__ = ["BalanceAggregator"]
