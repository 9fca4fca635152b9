"""
Live price feed for the ticker and the swap widget's USD estimate.

Polls one batched price endpoint on a fixed period. A failed poll keeps the
whole previous snapshot; staleness is reported through ``updated_at`` rather
than raised.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Set

from ..config import settings
from ..providers.base import PriceProvider
from ..services.tokens import DISPLAY_TOKENS, PRICE_FEED_SYMBOLS
from .errors import NetworkFailure


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricePoint:
    price: float
    change_24h: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"price": self.price, "change_24h": self.change_24h}


@dataclass(frozen=True)
class PriceSnapshot:
    """Prices keyed by symbol, replaced wholesale on every successful poll."""

    prices: Mapping[str, PricePoint] = field(default_factory=dict)
    updated_at: Optional[datetime] = None

    def get(self, symbol: str) -> Optional[PricePoint]:
        return self.prices.get(symbol.upper())

    def age_seconds(self, now: Optional[datetime] = None) -> Optional[float]:
        if self.updated_at is None:
            return None
        now = now or datetime.now(timezone.utc)
        return (now - self.updated_at).total_seconds()

    def is_stale(self, max_age_seconds: float, now: Optional[datetime] = None) -> bool:
        age = self.age_seconds(now)
        return age is None or age > max_age_seconds


class PollOutcome(str, Enum):
    UPDATED = "updated"
    FAILED = "failed"          # Previous snapshot kept
    SUPERSEDED = "superseded"  # A later poll already landed


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_simple_prices(
    payload: Mapping[str, Any],
    ids_by_symbol: Mapping[str, str],
    vs_currency: str = "usd",
) -> Dict[str, PricePoint]:
    """
    Map a Coingecko simple/price payload onto symbols.

    A coin missing from the payload means "no data" for that symbol. A coin
    that is present but has no usable price makes the whole payload invalid.
    """
    prices: Dict[str, PricePoint] = {}
    for symbol, coin_id in ids_by_symbol.items():
        entry = payload.get(coin_id)
        if entry is None:
            continue
        if not isinstance(entry, Mapping):
            raise ValueError(f"Malformed price entry for {coin_id}")
        price = _as_number(entry.get(vs_currency))
        if price is None:
            raise ValueError(f"Missing {vs_currency} price for {coin_id}")
        prices[symbol] = PricePoint(
            price=price,
            change_24h=_as_number(entry.get(f"{vs_currency}_24h_change")),
        )
    return prices


class PriceFeedClient:
    """Periodic poller holding the latest price snapshot."""

    def __init__(
        self,
        provider: PriceProvider,
        *,
        symbols: Iterable[str] = PRICE_FEED_SYMBOLS,
        interval_seconds: Optional[float] = None,
    ):
        self._provider = provider
        self._ids_by_symbol = {
            symbol: DISPLAY_TOKENS[symbol].coingecko_id for symbol in symbols
        }
        self._interval = settings.price_poll_interval_seconds if interval_seconds is None else interval_seconds
        self._snapshot = PriceSnapshot()
        self._last_error: Optional[NetworkFailure] = None

        # Polls are stamped so a slow older poll never overwrites a newer one
        self._issued = 0
        self._applied = 0

        self._loop_task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def snapshot(self) -> PriceSnapshot:
        return self._snapshot

    @property
    def last_error(self) -> Optional[NetworkFailure]:
        return self._last_error

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None

    def get(self, symbol: str) -> Optional[PricePoint]:
        return self._snapshot.get(symbol)

    async def poll(self) -> PollOutcome:
        """Fetch all prices in one call. Failures are absorbed and reported as FAILED."""

        self._issued += 1
        sequence = self._issued

        try:
            payload = await self._provider.get_simple_prices(list(self._ids_by_symbol.values()))
            prices = parse_simple_prices(payload, self._ids_by_symbol)
        except Exception as exc:  # noqa: BLE001
            self._last_error = NetworkFailure(str(exc) or None)
            logger.warning("Price poll failed, keeping previous snapshot: %s", exc)
            return PollOutcome.FAILED

        if sequence < self._applied:
            logger.debug("Discarding price poll %d, poll %d already applied", sequence, self._applied)
            return PollOutcome.SUPERSEDED

        self._applied = sequence
        self._last_error = None
        self._snapshot = PriceSnapshot(prices=prices, updated_at=datetime.now(timezone.utc))
        return PollOutcome.UPDATED

    # ---------------------------
    # Lifecycle
    # ---------------------------
    def start(self) -> None:
        """Poll now, then every interval measured from this call."""

        if self._loop_task is not None:
            return
        self._loop_task = asyncio.create_task(self._run(), name="price-feed")

    async def stop(self) -> None:
        task, self._loop_task = self._loop_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        for poll in list(self._inflight):
            poll.cancel()
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        self._inflight.clear()

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()
        ticks = 0
        while True:
            poll = asyncio.create_task(self.poll())
            self._inflight.add(poll)
            poll.add_done_callback(self._inflight.discard)

            ticks += 1
            delay = started + ticks * self._interval - loop.time()
            await asyncio.sleep(max(0.0, delay))


_price_feed_client: Optional[PriceFeedClient] = None


def get_price_feed_client() -> PriceFeedClient:
    """Get the process-wide price feed backed by Coingecko."""
    global _price_feed_client
    if _price_feed_client is None:
        from ..providers.coingecko import get_coingecko_provider

        _price_feed_client = PriceFeedClient(get_coingecko_provider())
    return _price_feed_client
