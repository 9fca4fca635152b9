"""
Debounced, supersession-safe quote requests.

Rapid input changes are collapsed by a debounce timer that is truly cancelled
on every new call. Every call advances the sequence number; a lookup carries
the number current when its timer fired, and its result is dropped if the
number has moved on by the time the response arrives. Lookups already on the
wire are never aborted, only ignored.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Set

from ..config import settings
from ..providers.jupiter import (
    JupiterQuote,
    JupiterQuoteError,
    JupiterSwapProvider,
    JupiterUnavailableError,
)
from ..services.tokens import TokenSpec
from ..services.units import parse_decimal, to_base_units
from .errors import InvalidAmount, QuoteSuperseded, QuoteUnavailable, SwapWidgetError


logger = logging.getLogger(__name__)

# The widget only deals with this one quote shape
Quote = JupiterQuote


@dataclass(frozen=True)
class QuoteRequest:
    input_token: TokenSpec
    output_token: TokenSpec
    amount_base_units: int
    sequence: int = 0


@dataclass
class _PendingCall:
    request: QuoteRequest
    handle: asyncio.TimerHandle
    future: asyncio.Future


def _settle(future: asyncio.Future, *, result: Optional[Quote] = None, error: Optional[BaseException] = None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


class QuoteFetcher:
    """Fetches quotes for the latest user intent only."""

    def __init__(
        self,
        provider: JupiterSwapProvider,
        *,
        debounce_seconds: Optional[float] = None,
        slippage_bps: Optional[int] = None,
    ):
        self._provider = provider
        self._debounce = settings.quote_debounce_seconds if debounce_seconds is None else debounce_seconds
        self._slippage_bps = settings.swap_slippage_bps if slippage_bps is None else slippage_bps

        self._sequence = 0
        self._pending: Optional[_PendingCall] = None
        self._lookups: Set[asyncio.Task] = set()
        self._latest: Optional[Quote] = None
        self._network_calls = 0

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def latest(self) -> Optional[Quote]:
        """Most recently accepted quote."""
        return self._latest

    @property
    def network_calls(self) -> int:
        return self._network_calls

    @property
    def has_pending(self) -> bool:
        return self._pending is not None or bool(self._lookups)

    async def request_quote(
        self,
        input_token: TokenSpec,
        output_token: TokenSpec,
        human_amount: str,
    ) -> Optional[Quote]:
        """
        Quote ``human_amount`` of ``input_token`` into ``output_token``.

        Returns None without touching the network for an empty, zero or negative amount.

        Raises:
            InvalidAmount: the amount is not a finite non-negative number
            QuoteSuperseded: a newer request replaced this one
            QuoteUnavailable: the aggregator could not quote the route
        """
        text = (human_amount or "").strip() if isinstance(human_amount, str) else human_amount
        if text == "":
            self.cancel()
            return None

        value = parse_decimal(text)
        if value is None:
            self.cancel()
            raise InvalidAmount(f"{human_amount!r} is not a valid amount")

        # Zero, negative, or dust below one base unit
        try:
            amount_base_units = to_base_units(value, input_token.decimals) if value > 0 else 0
        except InvalidAmount:
            self.cancel()
            raise
        if amount_base_units <= 0:
            self.cancel()
            return None

        # A new intent makes every earlier request stale, pending or in flight
        loop = asyncio.get_running_loop()
        self.cancel()

        request = QuoteRequest(input_token, output_token, amount_base_units)
        future: asyncio.Future = loop.create_future()
        handle = loop.call_later(self._debounce, self._fire, request, future)
        self._pending = _PendingCall(request=request, handle=handle, future=future)
        return await future

    def cancel(self) -> None:
        """Drop the pending timer and invalidate every lookup already in flight."""

        self._cancel_pending()
        self._sequence += 1

    async def close(self) -> None:
        self.cancel()
        for task in list(self._lookups):
            task.cancel()
        if self._lookups:
            await asyncio.gather(*self._lookups, return_exceptions=True)
        self._lookups.clear()

    # ---------------------------
    # Internals
    # ---------------------------
    def _cancel_pending(self) -> None:
        pending, self._pending = self._pending, None
        if pending is None:
            return
        pending.handle.cancel()
        _settle(pending.future, error=QuoteSuperseded())

    def _fire(self, request: QuoteRequest, future: asyncio.Future) -> None:
        if self._pending is None or self._pending.future is not future:
            return
        self._pending = None
        if future.done():
            # Caller went away before the window closed
            return

        stamped = QuoteRequest(
            input_token=request.input_token,
            output_token=request.output_token,
            amount_base_units=request.amount_base_units,
            sequence=self._sequence,
        )
        task = asyncio.get_running_loop().create_task(self._lookup(stamped, future))
        self._lookups.add(task)
        task.add_done_callback(self._lookups.discard)

    async def _lookup(self, request: QuoteRequest, future: asyncio.Future) -> None:
        self._network_calls += 1
        quote: Optional[Quote] = None
        error: Optional[SwapWidgetError] = None
        try:
            quote = await self._provider.get_swap_quote(
                input_mint=request.input_token.mint,
                output_mint=request.output_token.mint,
                amount=request.amount_base_units,
                slippage_bps=self._slippage_bps,
            )
        except JupiterQuoteError as exc:
            error = QuoteUnavailable(str(exc) or None)
        except JupiterUnavailableError as exc:
            logger.info("Quote lookup failed: %s", exc)
            error = QuoteUnavailable("try again")
        except asyncio.CancelledError:
            _settle(future, error=QuoteSuperseded())
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("Unexpected quote lookup failure: %s", exc, exc_info=True)
            error = QuoteUnavailable("try again")

        if request.sequence != self._sequence:
            logger.debug(
                "Discarding quote #%d for %s->%s, #%d is current",
                request.sequence,
                request.input_token.symbol,
                request.output_token.symbol,
                self._sequence,
            )
            _settle(future, error=QuoteSuperseded())
            return

        if error is not None:
            _settle(future, error=error)
            return

        self._latest = quote
        _settle(future, result=quote)
