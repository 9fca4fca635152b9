from abc import ABC, abstractmethod
from typing import Any, Dict, List


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class PriceProvider(Provider):
    """Provider for spot price data"""

    @abstractmethod
    async def get_simple_prices(self, ids: List[str], vs_currency: str = "usd") -> Dict[str, Any]:
        """Get spot price and 24h change for several assets in one call"""
        pass
