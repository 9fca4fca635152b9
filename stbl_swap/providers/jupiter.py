"""
Jupiter swap aggregator client for Solana.

Covers the two endpoints the swap widget needs:
- GET /quote  prices an input amount into an output amount over the best route
- POST /swap  turns an accepted quote into an unsigned, base64 encoded transaction

No API key required.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .base import Provider
from ..config import settings


logger = logging.getLogger(__name__)


@dataclass
class RoutePlanStep:
    """A single step in the swap route."""
    swap_info: Dict[str, Any]
    percent: int  # Percentage of input going through this route


@dataclass
class JupiterQuote:
    """Quote response from Jupiter."""
    input_mint: str
    output_mint: str
    in_amount: int                              # In smallest units (lamports)
    out_amount: int                             # In smallest units
    other_amount_threshold: int                 # Minimum output (with slippage)
    swap_mode: str                              # "ExactIn" or "ExactOut"
    slippage_bps: int
    price_impact_pct: float                     # A fraction despite the name (0.01 == 1%)
    route_plan: List[RoutePlanStep]

    # Opaque handle echoed back to /swap
    quote_response: Optional[Dict[str, Any]] = None

    # Timing
    fetched_at: float = field(default_factory=time.time)
    ttl_seconds: float = 30.0

    @property
    def route_hop_count(self) -> int:
        return len(self.route_plan) or 1

    @property
    def is_valid(self) -> bool:
        """Check if quote is still fresh enough to build a transaction from."""
        return (time.time() - self.fetched_at) < self.ttl_seconds


@dataclass
class JupiterSwapResult:
    """Result of building a swap transaction."""
    swap_transaction: str                       # Base64 encoded transaction
    last_valid_block_height: int
    priority_fee_lamports: int
    compute_unit_limit: int


class JupiterError(Exception):
    """Base class for Jupiter failures."""
    pass


class JupiterQuoteError(JupiterError):
    """Jupiter answered with a structured error for the quote."""
    pass


class JupiterSwapError(JupiterError):
    """Failed to build swap transaction."""
    pass


class JupiterUnavailableError(JupiterError):
    """Jupiter could not be reached or answered with something unparseable."""
    pass


def _reported_error(data: Any) -> Optional[str]:
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return None


class JupiterSwapProvider(Provider):
    """
    Quotes and unsigned swap transactions from the Jupiter v6 API.

    A quote is only good for ``quote_ttl_seconds``; building a transaction from
    an older one is refused before anything is sent. The returned transaction
    still has to be signed by the user's wallet.
    """

    name = "jupiter"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        quote_ttl_seconds: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.jupiter_quote_api_url).rstrip("/")
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._quote_ttl = quote_ttl_seconds or settings.quote_ttl_seconds

    async def ready(self) -> bool:
        """Jupiter API requires no authentication."""
        return settings.enable_jupiter

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Provider disabled"}
        # Quoting is rate limited; report configured state instead of probing.
        return {"status": "configured", "base_url": self.base_url}

    async def get_swap_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int = 50,
        swap_mode: str = "ExactIn",
    ) -> JupiterQuote:
        """
        Price ``amount`` base units of ``input_mint`` into ``output_mint``.

        Slippage is in basis points (50 = 0.5%).

        Raises:
            JupiterQuoteError: Jupiter reported an error for this route
            JupiterUnavailableError: network or parse failure
        """
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": slippage_bps,
            "swapMode": swap_mode,
        }
        logger.debug("Requesting Jupiter quote %s -> %s for %s", input_mint, output_mint, amount)

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.get(f"{self.base_url}/quote", params=params)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise JupiterUnavailableError(str(e)) from e

        # Route errors come back as a JSON body, usually with a 4xx status
        reported = _reported_error(data)
        if reported:
            raise JupiterQuoteError(reported)

        try:
            response.raise_for_status()
            route_plan = [
                RoutePlanStep(
                    swap_info=step.get("swapInfo", {}),
                    percent=step.get("percent", 100),
                )
                for step in data.get("routePlan") or []
            ]
            return JupiterQuote(
                input_mint=data["inputMint"],
                output_mint=data["outputMint"],
                in_amount=int(data["inAmount"]),
                out_amount=int(data["outAmount"]),
                other_amount_threshold=int(data.get("otherAmountThreshold", data["outAmount"])),
                swap_mode=data.get("swapMode", swap_mode),
                slippage_bps=int(data.get("slippageBps", slippage_bps)),
                price_impact_pct=float(data.get("priceImpactPct") or 0),
                route_plan=route_plan,
                quote_response=data,
                ttl_seconds=self._quote_ttl,
            )
        except httpx.HTTPStatusError as e:
            raise JupiterUnavailableError(f"HTTP error: {e.response.status_code}") from e
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise JupiterUnavailableError(f"Malformed quote response: {e}") from e

    async def build_swap_transaction(
        self,
        quote: JupiterQuote,
        user_public_key: str,
        wrap_and_unwrap_sol: bool = True,
    ) -> JupiterSwapResult:
        """
        Build a swap transaction from a quote.

        Args:
            quote: The quote to build a transaction for
            user_public_key: User's Solana wallet public key
            wrap_and_unwrap_sol: Automatically wrap/unwrap SOL

        Returns:
            JupiterSwapResult with base64 encoded transaction
        """
        if not quote.quote_response:
            raise JupiterSwapError("Quote response required for swap transaction")

        if not quote.is_valid:
            raise JupiterSwapError("Quote has expired, please get a new quote")

        return await self.build_swap_transaction_from_response(
            quote.quote_response,
            user_public_key,
            wrap_and_unwrap_sol=wrap_and_unwrap_sol,
        )

    async def build_swap_transaction_from_response(
        self,
        quote_response: Dict[str, Any],
        user_public_key: str,
        wrap_and_unwrap_sol: bool = True,
    ) -> JupiterSwapResult:
        """Build a swap transaction from a raw quote payload previously returned by /quote."""

        payload = {
            "quoteResponse": quote_response,
            "userPublicKey": user_public_key,
            "wrapAndUnwrapSol": wrap_and_unwrap_sol,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.post(f"{self.base_url}/swap", json=payload)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise JupiterSwapError(str(e)) from e

        reported = _reported_error(data)
        if reported:
            raise JupiterSwapError(reported)

        try:
            response.raise_for_status()
            return JupiterSwapResult(
                swap_transaction=data["swapTransaction"],
                last_valid_block_height=int(data.get("lastValidBlockHeight", 0)),
                priority_fee_lamports=int(data.get("prioritizationFeeLamports", 0)),
                compute_unit_limit=int(data.get("computeUnitLimit", 200_000)),
            )
        except httpx.HTTPStatusError as e:
            raise JupiterSwapError(f"HTTP error: {e.response.status_code}") from e
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise JupiterSwapError(f"Malformed swap response: {e}") from e


_jupiter_swap_provider: Optional[JupiterSwapProvider] = None


def get_jupiter_swap_provider() -> JupiterSwapProvider:
    """Get the singleton Jupiter swap provider."""
    global _jupiter_swap_provider
    if _jupiter_swap_provider is None:
        _jupiter_swap_provider = JupiterSwapProvider()
    return _jupiter_swap_provider


__all__ = [
    "JupiterSwapProvider",
    "JupiterQuote",
    "JupiterSwapResult",
    "JupiterError",
    "JupiterQuoteError",
    "JupiterSwapError",
    "JupiterUnavailableError",
    "RoutePlanStep",
    "get_jupiter_swap_provider",
]
