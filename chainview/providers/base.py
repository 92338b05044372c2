from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..types import ChainId, TokenBalance, TokenInfo


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class IndexerProvider(Provider):
    """Provider for on-chain balances"""

    @abstractmethod
    async def get_native_balance(self, chain: ChainId, address: str) -> int:
        """Native coin balance in base units; 0 when every endpoint failed"""
        pass

    @abstractmethod
    async def get_token_balances(
        self, chain: ChainId, address: str, tokens: Optional[List[TokenInfo]] = None
    ) -> List[TokenBalance]:
        """Strictly positive token balances"""
        pass


class PriceProvider(Provider):
    """Provider for token price data"""

    @abstractmethod
    async def get_prices_by_ids(self, price_ids: List[str], vs_currency: str = "usd") -> Dict[str, Decimal]:
        """Get current prices keyed by price feed id"""
        pass

    @abstractmethod
    async def get_coin_market_chart(
        self,
        coin_id: str,
        *,
        vs_currency: str = "usd",
        days: str = "7",
        interval: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Get a historical price series for one price feed id"""
        pass


def format_units(raw: int, decimals: int) -> str:
    """Render an integer amount of base units as an exact decimal string."""

    if decimals <= 0:
        return str(raw)
    sign = "-" if raw < 0 else ""
    digits = str(abs(raw)).rjust(decimals + 1, "0")
    whole, fraction = digits[:-decimals], digits[-decimals:].rstrip("0")
    return f"{sign}{whole}.{fraction}" if fraction else f"{sign}{whole}"


def make_balance(chain: ChainId, token: TokenInfo, raw: int) -> TokenBalance:
    return TokenBalance(
        symbol=token.symbol,
        name=token.name,
        balance=format_units(raw, token.decimals),
        decimals=token.decimals,
        chain=chain,
        contract_address=token.contract_address,
    )
