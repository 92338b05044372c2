"""
Portfolio state owned by the refresh loop.

Consumers read through ``snapshot()``; state only changes through the
operations below. Balance updates for a wallet that is no longer present are
rejected, which is how late results for removed wallets get dropped.
"""

from __future__ import annotations

import logging
import time
import uuid
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from ..types import ConnectedWallet, PortfolioSnapshot, TokenBalance, WalletKind, total_usd
from .address import is_valid_address_for_kind, shorten_address

logger = logging.getLogger(__name__)


class WalletError(ValueError):
    """User-facing wallet problem; the message is shown as-is."""


class InvalidWalletAddressError(WalletError):
    pass


class DuplicateWalletError(WalletError):
    pass


def _now_ms() -> int:
    return int(time.time() * 1000)


class PortfolioStore:
    def __init__(self, clock_ms: Callable[[], int] = _now_ms) -> None:
        self._clock_ms = clock_ms
        self._wallets: Dict[str, ConnectedWallet] = {}
        self._total_portfolio_usd = Decimal("0")
        self._is_loading = False
        self._last_updated: Optional[int] = None

    def add_wallet(
        self,
        address: str,
        kind: WalletKind,
        name: Optional[str] = None,
        wallet_id: Optional[str] = None,
    ) -> ConnectedWallet:
        address = (address or "").strip()
        if not is_valid_address_for_kind(address, kind):
            raise InvalidWalletAddressError(f"'{address}' is not a valid {kind.value} wallet address")

        for existing in self._wallets.values():
            same = existing.address.lower() == address.lower() if kind is WalletKind.EVM else existing.address == address
            if existing.kind is kind and same:
                raise DuplicateWalletError(f"Wallet {shorten_address(address)} is already connected")

        wallet = ConnectedWallet(
            id=wallet_id or uuid.uuid4().hex,
            address=address,
            kind=kind,
            name=name or shorten_address(address),
            connected_at=self._clock_ms(),
        )
        self._wallets[wallet.id] = wallet
        logger.info("Wallet %s (%s) added", wallet.id, kind.value)
        return wallet.model_copy(deep=True)

    def remove_wallet(self, wallet_id: str) -> bool:
        removed = self._wallets.pop(wallet_id, None)
        if removed is None:
            return False
        self._total_portfolio_usd = total_usd_of(self._wallets.values())
        logger.info("Wallet %s removed", wallet_id)
        return True

    def has_wallet(self, wallet_id: str) -> bool:
        return wallet_id in self._wallets

    def wallets(self) -> List[ConnectedWallet]:
        return [w.model_copy(deep=True) for w in self._wallets.values()]

    def update_wallet_balances(self, wallet_id: str, balances: List[TokenBalance]) -> bool:
        wallet = self._wallets.get(wallet_id)
        if wallet is None:
            return False
        self._wallets[wallet_id] = wallet.model_copy(
            update={"balances": list(balances), "total_usd_value": total_usd(balances)}
        )
        return True

    def set_loading(self, loading: bool) -> None:
        self._is_loading = loading

    def commit_cycle(self, timestamp_ms: Optional[int] = None) -> Decimal:
        self._total_portfolio_usd = total_usd_of(self._wallets.values())
        self._last_updated = timestamp_ms if timestamp_ms is not None else self._clock_ms()
        return self._total_portfolio_usd

    def clear(self) -> None:
        self._wallets.clear()
        self._total_portfolio_usd = Decimal("0")
        self._last_updated = None

    @property
    def total_portfolio_usd(self) -> Decimal:
        return self._total_portfolio_usd

    @property
    def last_updated(self) -> Optional[int]:
        return self._last_updated

    def snapshot(self) -> PortfolioSnapshot:
        return PortfolioSnapshot(
            wallets=self.wallets(),
            total_portfolio_usd=self._total_portfolio_usd,
            is_loading=self._is_loading,
            last_updated=self._last_updated,
        )


def total_usd_of(wallets) -> Decimal:
    return sum((w.total_usd_value for w in wallets), Decimal("0"))


__all__ = [
    "PortfolioStore",
    "WalletError",
    "InvalidWalletAddressError",
    "DuplicateWalletError",
]
