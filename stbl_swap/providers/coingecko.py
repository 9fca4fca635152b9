import httpx
from typing import Any, Dict, List, Optional
from ..config import settings
from .base import PriceProvider


class CoingeckoProvider(PriceProvider):
    """Coingecko API provider for spot prices"""

    name = "coingecko"

    def __init__(self, base_url: Optional[str] = None, timeout_s: Optional[float] = None):
        self.api_key = settings.coingecko_api_key
        self.base_url = (base_url or settings.coingecko_base_url).rstrip("/")
        self.timeout_s = timeout_s or settings.request_timeout_seconds

    def _build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"accept": "application/json"}
        if self.api_key:
            headers["X-CG-Demo-API-Key"] = self.api_key
        return headers

    async def ready(self) -> bool:
        return settings.enable_coingecko  # API key is optional for basic tier

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {
                "status": "unavailable",
                "reason": "Provider disabled"
            }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.get(
                    f"{self.base_url}/ping",
                    headers=self._build_headers(),
                )
                response.raise_for_status()
                return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    async def get_simple_prices(self, ids: List[str], vs_currency: str = "usd") -> Dict[str, Any]:
        """
        Fetch spot price and 24h change for several coins in a single request.

        Returns the raw payload keyed by Coingecko id, e.g.
        ``{"solana": {"usd": 140.2, "usd_24h_change": -1.3}}``. Coins the API
        has no data for are simply absent.
        """
        if not ids:
            return {}

        params = {
            "ids": ",".join(ids),
            "vs_currencies": vs_currency,
            "include_24hr_change": "true",
        }

        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            response = await client.get(
                f"{self.base_url}/simple/price",
                headers=self._build_headers(),
                params=params,
            )
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, dict):
            raise ValueError("Unexpected response from Coingecko simple/price")
        return data


_coingecko_provider: Optional[CoingeckoProvider] = None


def get_coingecko_provider() -> CoingeckoProvider:
    """Get the singleton Coingecko provider."""
    global _coingecko_provider
    if _coingecko_provider is None:
        _coingecko_provider = CoingeckoProvider()
    return _coingecko_provider
