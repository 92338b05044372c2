from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .portfolio import TokenBalance


class BalancesResponse(BaseModel):
    address: str = Field(description="Wallet address that was scanned")
    kind: str = Field(description="Wallet family")
    balances: List[TokenBalance] = Field(default_factory=list, description="Priced balances in chain order")
    total_usd_value: str = Field(description="Sum of usd values")
    fetched_at: datetime = Field(description="When the scan completed")
    latency_ms: Optional[int] = Field(default=None, description="Scan latency in milliseconds")


class RefreshResponse(BaseModel):
    started: bool = Field(description="False when a cycle was already in flight")
    last_updated: Optional[int] = Field(default=None, description="Epoch ms of the last committed cycle")


class HealthResponse(BaseModel):
    status: str = Field(description="healthy when every provider is up, otherwise degraded")
    providers: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    available_providers: int = 0
    total_providers: int = 0
    refresh_loop: Dict[str, Any] = Field(default_factory=dict)
