"""Helpers for normalizing chain identifiers and validating wallet addresses."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional

from ..types import ChainId, WalletKind

_BASE58_ALPHABET = set("123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz")

_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

_CHAIN_ALIASES = {
    "eth": "ethereum",
    "ethereum": "ethereum",
    "mainnet": "ethereum",
    "sol": "solana",
    "solana": "solana",
    "matic": "polygon",
    "polygon": "polygon",
    "arb": "arbitrum",
    "arbitrum": "arbitrum",
    "op": "optimism",
    "optimism": "optimism",
    "base-mainnet": "base",
    "base": "base",
    "bnb": "bsc",
    "binance": "bsc",
    "bsc": "bsc",
    "avax": "avalanche",
    "avalanche": "avalanche",
}


def normalize_chain(chain: str | None) -> Optional[ChainId]:
    """Collapse user-provided chain identifiers into a ChainId, or None when unknown."""

    if not chain:
        return ChainId.ETHEREUM
    canonical = _CHAIN_ALIASES.get(chain.lower().strip())
    return ChainId(canonical) if canonical else None


@lru_cache(maxsize=128)
def is_valid_solana_address(address: str) -> bool:
    if not address:
        return False
    length = len(address)
    if length < 32 or length > 44:
        return False
    return all(ch in _BASE58_ALPHABET for ch in address)


def is_valid_evm_address(address: str) -> bool:
    return bool(address) and bool(_EVM_ADDRESS_RE.fullmatch(address))


def is_valid_address_for_kind(address: str, kind: WalletKind) -> bool:
    if not address:
        return False
    if kind is WalletKind.SOLANA:
        return is_valid_solana_address(address)
    return is_valid_evm_address(address)


def shorten_address(address: str) -> str:
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


__all__ = [
    "normalize_chain",
    "is_valid_address_for_kind",
    "is_valid_evm_address",
    "is_valid_solana_address",
    "shorten_address",
]
