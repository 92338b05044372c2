from typing import List

from fastapi import APIRouter, HTTPException, Request, status

from ..services.portfolio_store import DuplicateWalletError, WalletError
from ..services.price_history import format_pnl, holdings_from_wallets
from ..types import AddWalletRequest, ConnectedWallet, PortfolioSnapshot, RefreshResponse

router = APIRouter()


@router.get("/wallets")
async def list_wallets(request: Request) -> List[ConnectedWallet]:
    return request.app.state.engine.store.wallets()


@router.post("/wallets", status_code=status.HTTP_201_CREATED)
async def add_wallet(payload: AddWalletRequest, request: Request) -> ConnectedWallet:
    """Track a signed-in wallet and schedule a refresh that includes it"""

    engine = request.app.state.engine
    try:
        wallet = engine.store.add_wallet(payload.address, payload.kind, payload.name)
    except DuplicateWalletError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except WalletError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    engine.refresh_loop.notify_wallets_changed()
    return wallet


@router.delete("/wallets/{wallet_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_wallet(wallet_id: str, request: Request) -> None:
    engine = request.app.state.engine
    if not engine.store.remove_wallet(wallet_id):
        raise HTTPException(status_code=404, detail=f"Wallet '{wallet_id}' not found")
    engine.refresh_loop.forget_wallet(wallet_id)


@router.get("/portfolio")
async def get_portfolio(request: Request) -> PortfolioSnapshot:
    return request.app.state.engine.store.snapshot()


@router.post("/portfolio/refresh")
async def refresh_portfolio(request: Request) -> RefreshResponse:
    engine = request.app.state.engine
    started = engine.refresh_loop.trigger_refresh()
    return RefreshResponse(started=started, last_updated=engine.store.last_updated)


@router.get("/portfolio/pnl")
async def get_portfolio_pnl(request: Request):
    """P&L for 24h / 7d / 30d over the last committed balances"""

    engine = request.app.state.engine
    holdings = holdings_from_wallets(engine.store.wallets())
    pnl = await engine.history.calculate_portfolio_pnl(holdings)

    return {
        period.value: {**result.model_dump(mode="json"), "display": format_pnl(result)}
        for period, result in pnl.periods.items()
    }
