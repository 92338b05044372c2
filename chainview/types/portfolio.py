from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field


class ChainId(str, Enum):
    ETHEREUM = "ethereum"
    POLYGON = "polygon"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"
    BASE = "base"
    BSC = "bsc"
    AVALANCHE = "avalanche"
    SOLANA = "solana"

    @property
    def is_evm(self) -> bool:
        return self is not ChainId.SOLANA


class WalletKind(str, Enum):
    EVM = "evm"
    SOLANA = "solana"


class TimePeriod(str, Enum):
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"

    @property
    def days(self) -> int:
        return {"24h": 1, "7d": 7, "30d": 30}[self.value]


@dataclass(frozen=True)
class TokenInfo:
    """Curated catalog entry. ``contract_address`` is None for a chain's native coin."""

    symbol: str
    name: str
    decimals: int
    price_feed_id: str
    contract_address: Optional[str] = None
    logo_uri: Optional[str] = None


def _to_decimal(value: object) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")
    if not result.is_finite():
        return Decimal("0")
    return result


class TokenBalance(BaseModel):
    symbol: str = Field(description="Token symbol (e.g. ETH, USDC)")
    name: str = Field(description="Full token name")
    balance: str = Field(description="Human readable balance as a full-precision decimal string")
    decimals: int = Field(description="Token decimal places")
    chain: ChainId = Field(description="Chain the balance lives on")
    contract_address: Optional[str] = Field(
        default=None, description="Token contract address or SPL mint (None for the native coin)"
    )
    price_usd: Decimal = Field(default=Decimal("0"), description="Price per token in USD, 0 when unresolved")
    usd_value: Decimal = Field(default=Decimal("0"), ge=0, description="balance * price_usd")

    @property
    def amount(self) -> Decimal:
        return _to_decimal(self.balance)

    def with_price(self, price: object) -> "TokenBalance":
        """Return a copy valued at ``price``; invalid or negative prices count as unresolved."""
        price_decimal = _to_decimal(price)
        if price_decimal < 0:
            price_decimal = Decimal("0")
        value = self.amount * price_decimal
        if value < 0:
            value = Decimal("0")
        return self.model_copy(update={"price_usd": price_decimal, "usd_value": value})


def total_usd(balances: Iterable[TokenBalance]) -> Decimal:
    return sum((b.usd_value for b in balances), Decimal("0"))


class ConnectedWallet(BaseModel):
    id: str = Field(description="Wallet identifier")
    address: str = Field(description="Wallet address")
    kind: WalletKind = Field(description="Wallet family")
    name: str = Field(description="Display name")
    balances: List[TokenBalance] = Field(default_factory=list, description="Balances in chain order")
    total_usd_value: Decimal = Field(default=Decimal("0"), description="Sum of balances' usd_value")
    connected_at: int = Field(description="Connection time in epoch milliseconds")


class PortfolioSnapshot(BaseModel):
    wallets: List[ConnectedWallet] = Field(default_factory=list)
    total_portfolio_usd: Decimal = Field(default=Decimal("0"))
    is_loading: bool = False
    last_updated: Optional[int] = Field(default=None, description="Epoch ms of the last committed cycle")


class PnLResult(BaseModel):
    absolute_change: Decimal = Decimal("0")
    percentage_change: Decimal = Decimal("0")
    previous_value: Decimal = Decimal("0")
    current_value: Decimal = Decimal("0")


class PortfolioPnL(BaseModel):
    periods: Dict[TimePeriod, PnLResult] = Field(default_factory=dict)

    def __getitem__(self, period: TimePeriod) -> PnLResult:
        return self.periods[period]
