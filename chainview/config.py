from pathlib import Path
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


def _split_urls(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Price feed
    coingecko_api_key: str = Field(default="", description="Coingecko API key (optional)")
    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="Base URL for the Coingecko API",
    )
    price_request_timeout_seconds: float = Field(default=8.0, description="Spot price request timeout")
    history_request_timeout_seconds: float = Field(default=10.0, description="Historical price request timeout")
    spot_price_ttl_seconds: float = Field(default=15.0, description="Spot price cache TTL")
    history_price_ttl_seconds: float = Field(default=300.0, description="Historical price cache TTL")
    history_batch_size: int = Field(default=5, ge=1, description="Concurrent historical price requests")

    # RPC endpoint overrides (comma separated, first = primary)
    ethereum_rpc_urls: str = Field(default="", description="Ethereum RPC endpoint pool override")
    polygon_rpc_urls: str = Field(default="", description="Polygon RPC endpoint pool override")
    arbitrum_rpc_urls: str = Field(default="", description="Arbitrum RPC endpoint pool override")
    optimism_rpc_urls: str = Field(default="", description="Optimism RPC endpoint pool override")
    base_rpc_urls: str = Field(default="", description="Base RPC endpoint pool override")
    bsc_rpc_urls: str = Field(default="", description="BSC RPC endpoint pool override")
    avalanche_rpc_urls: str = Field(default="", description="Avalanche RPC endpoint pool override")
    solana_rpc_urls: str = Field(default="", description="Solana RPC endpoint pool override")
    solana_helius_api_key: str = Field(
        default="",
        description="Helius API key; when set its RPC URL becomes the primary Solana endpoint",
    )

    # Chain client tuning
    evm_request_timeout_seconds: float = Field(default=15.0, description="EVM JSON-RPC request timeout")
    solana_request_timeout_seconds: float = Field(default=10.0, description="Solana JSON-RPC request timeout")
    evm_attempt_timeout_seconds: float = Field(default=12.0, description="Overall timeout per EVM endpoint attempt")
    solana_attempt_timeout_seconds: float = Field(default=8.0, description="Overall timeout per Solana endpoint attempt")
    rpc_transport_retries: int = Field(default=2, ge=0, description="Transport-level retries per request")
    rpc_retry_backoff_seconds: float = Field(default=1.0, ge=0, description="Fixed backoff between transport retries")

    # Solana connection cache
    solana_connection_ttl_seconds: float = Field(default=20.0, description="Validated Solana connection TTL")
    solana_probe_timeout_seconds: float = Field(default=5.0, description="Solana liveness probe timeout")
    solana_native_max_retries: int = Field(
        default=2,
        ge=0,
        description="Retries for a Solana native balance read, including the forced reconnect on a zero balance",
    )

    # Portfolio refresh
    refresh_interval_seconds: float = Field(default=15.0, gt=0, description="Balance refresh interval")
    refresh_on_startup: bool = Field(default=True, description="Start the refresh loop with the API")
    evm_chains: str = Field(
        default="ethereum,polygon,arbitrum,optimism,base,bsc,avalanche",
        description="EVM chains scanned for EVM wallets, in output order",
    )

    @property
    def has_coingecko_key(self) -> bool:
        return bool(self.coingecko_api_key)

    @property
    def has_helius_key(self) -> bool:
        return bool(self.solana_helius_api_key)

    def rpc_overrides(self) -> Dict[str, List[str]]:
        """Return configured endpoint pools keyed by chain slug, skipping empty ones."""
        overrides: Dict[str, List[str]] = {}
        for chain in ("ethereum", "polygon", "arbitrum", "optimism", "base", "bsc", "avalanche", "solana"):
            urls = _split_urls(getattr(self, f"{chain}_rpc_urls"))
            if urls:
                overrides[chain] = urls
        return overrides

    def evm_chain_slugs(self) -> List[str]:
        return _split_urls(self.evm_chains)


# Global settings instance
settings = Settings()
