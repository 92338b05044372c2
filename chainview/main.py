from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, portfolio, tools
from .config import settings
from .logging_config import setup_logging
from .services.engine import Engine, build_engine


def create_app(engine: Optional[Engine] = None, *, start_refresh_loop: Optional[bool] = None) -> FastAPI:
    start_loop = settings.refresh_on_startup if start_refresh_loop is None else start_refresh_loop

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        app.state.engine = engine or build_engine(settings)
        if start_loop:
            await app.state.engine.refresh_loop.start()
        try:
            yield
        finally:
            await app.state.engine.aclose()

    app = FastAPI(
        title="Chainview API",
        description="Multi-chain wallet balance aggregation",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(portfolio.router, tags=["Portfolio"])
    app.include_router(tools.router, tags=["Tools"])

    @app.get("/")
    async def root():
        """Root endpoint with basic info"""
        return {
            "name": "Chainview API",
            "version": "0.1.0",
            "description": "Multi-chain wallet balance aggregation",
            "docs": "/docs",
            "health": "/healthz"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "chainview.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
