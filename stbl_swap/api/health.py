from typing import Any, Dict

from fastapi import APIRouter

from ..core.price_feed import get_price_feed_client
from ..providers.coingecko import get_coingecko_provider
from ..providers.jupiter import get_jupiter_swap_provider

router = APIRouter()


@router.get("/healthz")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint that verifies provider status"""

    provider_status = {
        "coingecko": await get_coingecko_provider().health_check(),
        "jupiter": await get_jupiter_swap_provider().health_check(),
    }

    available_providers = sum(
        1 for status in provider_status.values()
        if status["status"] in ("healthy", "configured")
    )
    all_healthy = all(
        status["status"] in ("healthy", "configured", "unavailable")
        for status in provider_status.values()
    )

    feed = get_price_feed_client()
    return {
        "status": "healthy" if all_healthy and available_providers > 0 else "degraded",
        "providers": provider_status,
        "available_providers": available_providers,
        "total_providers": len(provider_status),
        "price_feed": {
            "running": feed.is_running,
            "updated_at": feed.snapshot.updated_at.isoformat() if feed.snapshot.updated_at else None,
        },
    }
