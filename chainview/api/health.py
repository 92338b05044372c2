from fastapi import APIRouter, Request

from ..types import HealthResponse

router = APIRouter()

_UP = {"healthy", "configured"}


@router.get("/healthz")
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint that verifies provider status"""

    engine = request.app.state.engine

    provider_status = {
        "coingecko": await engine.prices.health_check(),
        "solana": await engine.solana.health_check(),
        "evm": await engine.evm.health_check(),
    }
    available_providers = sum(1 for status in provider_status.values() if status["status"] in _UP)

    return HealthResponse(
        status="healthy" if available_providers == len(provider_status) else "degraded",
        providers=provider_status,
        available_providers=available_providers,
        total_providers=len(provider_status),
        refresh_loop=engine.refresh_loop.status(),
    )
