import logging
from datetime import datetime, timezone
from time import perf_counter

from fastapi import APIRouter, HTTPException, Path, Query, Request

from ..services.address import is_valid_address_for_kind
from ..services.pricing import price_balances
from ..types import BalancesResponse, WalletKind, total_usd

router = APIRouter(prefix="/tools")
_logger = logging.getLogger(__name__)


@router.get("/balances/{kind}/{address}")
async def get_balances_endpoint(
    request: Request,
    kind: WalletKind = Path(..., description="Wallet family (evm or solana)"),
    address: str = Path(..., description="Wallet address to scan"),
) -> BalancesResponse:
    """One-shot multi-chain scan and valuation, independent of the tracked wallets"""

    if not is_valid_address_for_kind(address, kind):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid wallet address format for {kind.value}",
        )

    engine = request.app.state.engine
    started = perf_counter()
    balances = await engine.aggregator.get_all_chain_balances(address, kind)
    priced = await price_balances(balances, engine.spot_prices)

    return BalancesResponse(
        address=address,
        kind=kind.value,
        balances=priced,
        total_usd_value=str(total_usd(priced)),
        fetched_at=datetime.now(timezone.utc),
        latency_ms=int((perf_counter() - started) * 1000),
    )


@router.get("/prices/top")
async def get_top_prices(
    request: Request,
    limit: int = Query(50, ge=1, le=250, description="Number of coins by market cap"),
):
    try:
        coins = await request.app.state.engine.prices.get_top_coins(limit=limit)
    except Exception as e:  # noqa: BLE001
        _logger.warning("Top coins fetch failed: %s", e)
        raise HTTPException(status_code=502, detail=f"Failed to fetch top coins: {str(e)}")
    return {"coins": coins, "source": "coingecko"}
