"""
Curated token catalogs used for fast balance checks.

Only well-known tokens are queried per EVM chain so a scan never has to walk
every contract; Solana balances come from a token-account scan and use the
catalog for metadata only.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from ..types import ChainId, TokenInfo


def _token(address: str, symbol: str, name: str, decimals: int, price_feed_id: str) -> TokenInfo:
    return TokenInfo(
        symbol=symbol,
        name=name,
        decimals=decimals,
        price_feed_id=price_feed_id,
        contract_address=address,
    )


EVM_TOKENS: Dict[ChainId, List[TokenInfo]] = {
    ChainId.ETHEREUM: [
        _token("0xdAC17F958D2ee523a2206206994597C13D831ec7", "USDT", "Tether USD", 6, "tether"),
        _token("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", "USDC", "USD Coin", 6, "usd-coin"),
        _token("0x6B175474E89094C44Da98b954EedeAC495271d0F", "DAI", "Dai Stablecoin", 18, "dai"),
        _token("0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", "WBTC", "Wrapped BTC", 8, "wrapped-bitcoin"),
        _token("0x514910771AF9Ca656af840dff83E8264EcF986CA", "LINK", "Chainlink", 18, "chainlink"),
        _token("0x7Fc66500c84A76Ad7e9c93437bFc5Ac33E2DDaE9", "AAVE", "Aave", 18, "aave"),
        _token("0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984", "UNI", "Uniswap", 18, "uniswap"),
        _token("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", "WETH", "Wrapped Ether", 18, "weth"),
    ],
    ChainId.POLYGON: [
        _token("0xc2132D05D31c914a87C6611C10748AEb04B58e8F", "USDT", "Tether USD", 6, "tether"),
        _token("0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174", "USDC", "USD Coin", 6, "usd-coin"),
        _token("0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063", "DAI", "Dai Stablecoin", 18, "dai"),
        _token("0x1BFD67037B42Cf73acF2047067bd4F2C47D9BfD6", "WBTC", "Wrapped BTC", 8, "wrapped-bitcoin"),
        _token("0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619", "WETH", "Wrapped Ether", 18, "weth"),
    ],
    ChainId.ARBITRUM: [
        _token("0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9", "USDT", "Tether USD", 6, "tether"),
        _token("0xFF970A61A04b1cA14834A43f5dE4533eBDDB5CC8", "USDC", "USD Coin", 6, "usd-coin"),
        _token("0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1", "DAI", "Dai Stablecoin", 18, "dai"),
        _token("0x912CE59144191C1204E64559FE8253a0e49E6548", "ARB", "Arbitrum", 18, "arbitrum"),
    ],
    ChainId.OPTIMISM: [
        _token("0x94b008aA00579c1307B0EF2c499aD98a8ce58e58", "USDT", "Tether USD", 6, "tether"),
        _token("0x7F5c764cBc14f9669B88837ca1490cCa17c31607", "USDC", "USD Coin", 6, "usd-coin"),
        _token("0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1", "DAI", "Dai Stablecoin", 18, "dai"),
    ],
    ChainId.BASE: [
        _token("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", "USDC", "USD Coin", 6, "usd-coin"),
        _token("0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb", "DAI", "Dai Stablecoin", 18, "dai"),
    ],
    ChainId.BSC: [
        _token("0x55d398326f99059fF775485246999027B3197955", "USDT", "Tether USD", 18, "tether"),
        _token("0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d", "USDC", "USD Coin", 18, "usd-coin"),
        _token("0x1AF3F329e8BE154074D8769D1FFa4eE058B1DBc3", "DAI", "Dai Stablecoin", 18, "dai"),
    ],
    ChainId.AVALANCHE: [
        _token("0x9702230A8Ea53601f5cD2dc00fDBc13d4dF4A8c7", "USDT", "Tether USD", 6, "tether"),
        _token("0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E", "USDC", "USD Coin", 6, "usd-coin"),
    ],
}

SOLANA_TOKENS: List[TokenInfo] = [
    _token("Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB", "USDT", "Tether USD", 6, "tether"),
    _token("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", "USDC", "USD Coin", 6, "usd-coin"),
    _token("So11111111111111111111111111111111111111112", "SOL", "Wrapped SOL", 9, "solana"),
    _token("mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So", "mSOL", "Marinade SOL", 9, "marinade-staked-sol"),
    _token("DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", "BONK", "Bonk", 5, "bonk"),
]

# Native coin per chain. Several L2s settle in ETH and share its price feed.
NATIVE_TOKENS: Dict[ChainId, TokenInfo] = {
    ChainId.ETHEREUM: TokenInfo(symbol="ETH", name="Ethereum", decimals=18, price_feed_id="ethereum"),
    ChainId.POLYGON: TokenInfo(symbol="MATIC", name="Polygon", decimals=18, price_feed_id="matic-network"),
    ChainId.ARBITRUM: TokenInfo(symbol="ETH", name="Ethereum", decimals=18, price_feed_id="ethereum"),
    ChainId.OPTIMISM: TokenInfo(symbol="ETH", name="Ethereum", decimals=18, price_feed_id="ethereum"),
    ChainId.BASE: TokenInfo(symbol="ETH", name="Ethereum", decimals=18, price_feed_id="ethereum"),
    ChainId.BSC: TokenInfo(symbol="BNB", name="BNB", decimals=18, price_feed_id="binancecoin"),
    ChainId.AVALANCHE: TokenInfo(symbol="AVAX", name="Avalanche", decimals=18, price_feed_id="avalanche-2"),
    ChainId.SOLANA: TokenInfo(symbol="SOL", name="Solana", decimals=9, price_feed_id="solana"),
}

# Symbol -> price feed id, used when neither the chain nor the contract resolves
SYMBOL_PRICE_IDS: Dict[str, str] = {
    "ETH": "ethereum",
    "WETH": "weth",
    "BTC": "bitcoin",
    "MATIC": "matic-network",
    "BNB": "binancecoin",
    "AVAX": "avalanche-2",
    "SOL": "solana",
    "USDT": "tether",
    "USDC": "usd-coin",
    "DAI": "dai",
    "WBTC": "wrapped-bitcoin",
    "LINK": "chainlink",
    "AAVE": "aave",
    "UNI": "uniswap",
    "ARB": "arbitrum",
}

_EVM_INDEX: Dict[ChainId, Dict[str, TokenInfo]] = {
    chain: {token.contract_address.lower(): token for token in tokens if token.contract_address}
    for chain, tokens in EVM_TOKENS.items()
}
_SOLANA_INDEX: Dict[str, TokenInfo] = {
    token.contract_address: token for token in SOLANA_TOKENS if token.contract_address
}


def get_tokens_for_chain(chain: ChainId) -> List[TokenInfo]:
    if chain is ChainId.SOLANA:
        return list(SOLANA_TOKENS)
    return list(EVM_TOKENS.get(chain, []))


def get_native_token(chain: ChainId) -> TokenInfo:
    return NATIVE_TOKENS[chain]


def find_token(chain: ChainId, contract_address: str) -> Optional[TokenInfo]:
    """Look up a catalog entry; EVM addresses compare case-insensitively, Solana mints exactly."""
    if not contract_address:
        return None
    if chain is ChainId.SOLANA:
        return _SOLANA_INDEX.get(contract_address)
    return _EVM_INDEX.get(chain, {}).get(contract_address.lower())


def price_id_for_symbol(symbol: str) -> Optional[str]:
    if not symbol:
        return None
    return SYMBOL_PRICE_IDS.get(symbol.upper())


__all__ = [
    "EVM_TOKENS",
    "SOLANA_TOKENS",
    "NATIVE_TOKENS",
    "SYMBOL_PRICE_IDS",
    "get_tokens_for_chain",
    "get_native_token",
    "find_token",
    "price_id_for_symbol",
]
