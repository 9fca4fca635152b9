from typing import Any, Dict

from fastapi import APIRouter

from ..config import settings
from ..core.price_feed import get_price_feed_client
from ..services.tokens import DISPLAY_TOKENS
from ..services.units import format_currency, format_percent

router = APIRouter()


@router.get("/prices")
async def get_prices() -> Dict[str, Any]:
    """Latest ticker snapshot. Symbols without data are listed with null prices."""

    feed = get_price_feed_client()
    snapshot = feed.snapshot

    prices = {}
    for symbol, token in DISPLAY_TOKENS.items():
        point = snapshot.get(symbol)
        prices[symbol] = {
            "name": token.name,
            "price": point.price if point else None,
            "change_24h": point.change_24h if point else None,
            "price_display": format_currency(point.price) if point else None,
            "change_display": format_percent(point.change_24h) if point else None,
        }

    return {
        "prices": prices,
        "updated_at": snapshot.updated_at.isoformat() if snapshot.updated_at else None,
        "stale": snapshot.is_stale(settings.price_stale_after_seconds),
        "error": feed.last_error.message if feed.last_error else None,
    }
