"""Per-chain RPC endpoint pools. List order is failover priority (first = primary)."""

from __future__ import annotations

from typing import Dict, List, Optional

from ..config import Settings, settings as default_settings
from ..types import ChainId
from .address import normalize_chain

# Public endpoints, no API key required
PUBLIC_RPCS: Dict[ChainId, List[str]] = {
    ChainId.ETHEREUM: [
        "https://eth.llamarpc.com",
        "https://rpc.ankr.com/eth",
        "https://ethereum-rpc.publicnode.com",
    ],
    ChainId.POLYGON: [
        "https://polygon-rpc.com",
        "https://polygon.llamarpc.com",
        "https://polygon-bor-rpc.publicnode.com",
    ],
    ChainId.ARBITRUM: [
        "https://arb1.arbitrum.io/rpc",
        "https://arbitrum.llamarpc.com",
        "https://arbitrum-one-rpc.publicnode.com",
    ],
    ChainId.OPTIMISM: [
        "https://mainnet.optimism.io",
        "https://optimism.llamarpc.com",
        "https://optimism-rpc.publicnode.com",
    ],
    ChainId.BASE: [
        "https://mainnet.base.org",
        "https://base.llamarpc.com",
        "https://base-rpc.publicnode.com",
    ],
    ChainId.BSC: [
        "https://bsc-dataseed.binance.org",
        "https://bsc.publicnode.com",
    ],
    ChainId.AVALANCHE: [
        "https://api.avax.network/ext/bc/C/rpc",
        "https://avalanche-c-chain-rpc.publicnode.com",
    ],
    ChainId.SOLANA: [
        "https://api.mainnet-beta.solana.com",
        "https://solana-rpc.publicnode.com",
    ],
}

HELIUS_RPC_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={api_key}"


def get_endpoint_pool(chain: ChainId, config: Optional[Settings] = None) -> List[str]:
    """Return the ordered candidate URLs for ``chain``.

    A configured override replaces the public defaults entirely. For Solana,
    a Helius key puts the key-bearing URL in front of whatever pool applies.
    """

    cfg = config or default_settings
    overrides = cfg.rpc_overrides()
    pool = list(overrides.get(chain.value) or PUBLIC_RPCS.get(chain, []))

    if chain is ChainId.SOLANA and cfg.has_helius_key:
        helius_url = HELIUS_RPC_TEMPLATE.format(api_key=cfg.solana_helius_api_key)
        if helius_url not in pool:
            pool.insert(0, helius_url)

    return pool


def configured_evm_chains(config: Optional[Settings] = None) -> List[ChainId]:
    """EVM chains scanned for EVM wallets, in configured order. Aliases accepted, unknown slugs ignored."""

    cfg = config or default_settings
    chains: List[ChainId] = []
    for slug in cfg.evm_chain_slugs():
        chain = normalize_chain(slug)
        if chain is not None and chain.is_evm and chain not in chains:
            chains.append(chain)
    return chains


__all__ = ["PUBLIC_RPCS", "get_endpoint_pool", "configured_evm_chains"]
