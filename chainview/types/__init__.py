from .portfolio import (
    ChainId,
    ConnectedWallet,
    PnLResult,
    PortfolioPnL,
    PortfolioSnapshot,
    TimePeriod,
    TokenBalance,
    TokenInfo,
    WalletKind,
    total_usd,
)
from .requests import AddWalletRequest
from .responses import BalancesResponse, HealthResponse, RefreshResponse

__all__ = [
    "ChainId",
    "ConnectedWallet",
    "PnLResult",
    "PortfolioPnL",
    "PortfolioSnapshot",
    "TimePeriod",
    "TokenBalance",
    "TokenInfo",
    "WalletKind",
    "total_usd",
    "AddWalletRequest",
    "BalancesResponse",
    "HealthResponse",
    "RefreshResponse",
]
