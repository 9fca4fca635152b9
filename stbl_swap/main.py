from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, prices, swap, tokens
from .config import settings
from .core.price_feed import get_price_feed_client
from .logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    feed = get_price_feed_client()
    feed.start()
    try:
        yield
    finally:
        await feed.stop()


# Create FastAPI app
app = FastAPI(
    title="STBL Swap API",
    description="Quotes, prices and unsigned swap transactions for the STBL swap widget",
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
app.include_router(tokens.router, tags=["Tokens"])
app.include_router(prices.router, tags=["Prices"])
app.include_router(swap.router, tags=["Swap"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "STBL Swap API",
        "version": "0.1.0",
        "description": "Quotes, prices and unsigned swap transactions for the STBL swap widget",
        "docs": "/docs",
        "health": "/healthz",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "stbl_swap.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
