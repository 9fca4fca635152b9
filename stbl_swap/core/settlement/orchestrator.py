"""
Settlement Orchestrator

Drives one swap widget session: turns user input into debounced quotes,
gates the swap on wallet, quote and amount, and runs
build -> decode -> sign while tracking the settlement state.
"""

import asyncio
import logging
from decimal import Decimal
from typing import List, Optional, Set

from ...config import settings
from ...logging_config import settlement_context
from ...providers.jupiter import JupiterError, JupiterSwapProvider
from ...services.tokens import SOLSCAN_ACCOUNT_URL, SOLSCAN_TX_URL, TokenSpec, get_swap_token
from ...services.units import (
    format_price_impact,
    format_token_amount,
    format_usd_value,
    from_base_units,
    is_positive_amount,
    parse_decimal,
    truncate_address,
)
from ..errors import (
    InvalidAmount,
    InvalidTransitionError,
    QuoteSuperseded,
    QuoteUnavailable,
    SwapFailed,
    SwapRejected,
    SwapWidgetError,
)
from ..price_feed import PriceFeedClient
from ..quote_fetcher import Quote, QuoteFetcher
from ..transactions import TransactionCodec
from ..wallet import WalletSessionManager
from .models import (
    TRANSITIONS,
    SettlementState,
    StateTransition,
    SwapView,
    TransitionTrigger,
)


# Price impact above this fraction is flagged in the view
HIGH_PRICE_IMPACT = Decimal("0.01")


class SettlementOrchestrator:
    """
    Owns the widget's input, the current quote and the settlement state.

    Features:
    - Every input change clears the quote and error and asks for a new quote
    - A quote is applied only if the input that produced it is still current
    - Inputs are locked while a swap is awaiting its signature
    - Each settlement step fails independently into FAILED with a typed error
    """

    TRANSITIONS = TRANSITIONS

    def __init__(
        self,
        wallet: WalletSessionManager,
        quotes: QuoteFetcher,
        swap_provider: JupiterSwapProvider,
        *,
        codec: Optional[TransactionCodec] = None,
        prices: Optional[PriceFeedClient] = None,
        input_symbol: str = "SOL",
        output_symbol: str = "USDC",
        default_amount: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._wallet = wallet
        self._quotes = quotes
        self._swap_provider = swap_provider
        self._codec = codec or TransactionCodec()
        self._prices = prices
        self.logger = logger or logging.getLogger(__name__)

        self._input = get_swap_token(input_symbol)
        self._output = get_swap_token(output_symbol)
        if self._input == self._output:
            raise ValueError("input and output tokens must differ")

        self._default_amount = default_amount or settings.default_swap_amount
        self._amount = self._default_amount

        self._state = SettlementState.IDLE
        self._history: List[StateTransition] = []
        self._quote: Optional[Quote] = None
        self._error: Optional[SwapWidgetError] = None
        self._signature: Optional[str] = None

        # Bumped on every input change; stale quote results compare against it
        self._revision = 0
        self._quote_tasks: Set[asyncio.Task] = set()

    # ---------------------------
    # Read-only state
    # ---------------------------
    @property
    def state(self) -> SettlementState:
        return self._state

    @property
    def history(self) -> List[StateTransition]:
        return list(self._history)

    @property
    def input_token(self) -> TokenSpec:
        return self._input

    @property
    def output_token(self) -> TokenSpec:
        return self._output

    @property
    def amount(self) -> str:
        return self._amount

    @property
    def quote(self) -> Optional[Quote]:
        return self._quote

    @property
    def error(self) -> Optional[SwapWidgetError]:
        return self._error

    @property
    def last_signature(self) -> Optional[str]:
        return self._signature

    @property
    def can_swap(self) -> bool:
        return self._swap_blocker() is None

    def can_transition_to(self, to_state: SettlementState) -> bool:
        return to_state in self.TRANSITIONS.get(self._state, set())

    # ---------------------------
    # User input
    # ---------------------------
    def start(self) -> None:
        """Request the first quote for the default amount."""
        self._on_input_changed("widget opened")

    def set_amount(self, text: Optional[str]) -> None:
        self._ensure_editable()
        self._amount = text or ""
        self._on_input_changed("amount changed")

    def set_input_token(self, symbol: str) -> None:
        token = get_swap_token(symbol)
        self._ensure_editable()
        if token == self._output:
            self._output = self._input
        self._input = token
        self._on_input_changed("input token changed")

    def set_output_token(self, symbol: str) -> None:
        token = get_swap_token(symbol)
        self._ensure_editable()
        if token == self._input:
            self._input = self._output
        self._output = token
        self._on_input_changed("output token changed")

    def flip(self) -> None:
        """Swap input and output, seeding the amount from the quoted output."""

        self._ensure_editable()
        seeded = self._quoted_output_text()
        self._input, self._output = self._output, self._input
        self._amount = seeded if is_positive_amount(seeded) else self._default_amount
        self._on_input_changed("tokens flipped")

    def refresh_quote(self) -> None:
        """Ask for a fresh quote for the current input."""

        self._ensure_editable()
        self._on_input_changed("quote refreshed")

    def reset(self) -> None:
        """Back to the default amount, ready for the next swap."""

        self._ensure_editable()
        self._amount = self._default_amount
        self._on_input_changed("reset")

    async def wait_for_quote(self) -> Optional[Quote]:
        """Wait until no quote request is outstanding; returns the applied quote."""

        while self._quote_tasks:
            await asyncio.gather(*list(self._quote_tasks), return_exceptions=True)
        return self._quote

    async def close(self) -> None:
        self._revision += 1
        for task in list(self._quote_tasks):
            task.cancel()
        if self._quote_tasks:
            await asyncio.gather(*self._quote_tasks, return_exceptions=True)
        self._quote_tasks.clear()
        await self._quotes.close()

    # ---------------------------
    # Settlement
    # ---------------------------
    async def swap(self) -> str:
        """
        Settle the current quote through the connected wallet.

        Returns:
            The transaction signature

        Raises:
            SwapRejected: preconditions not met, nothing was sent
            UserRejected: the user declined the signature prompt
            SwapFailed: building, decoding or sending failed
        """
        blocker = self._swap_blocker()
        if blocker is not None:
            raise SwapRejected(blocker)

        quote = self._quote
        address = self._wallet.address
        self._quotes.cancel()
        self._transition(SettlementState.AWAITING_SIGNATURE, TransitionTrigger.USER_ACTION, reason="swap requested")

        step = "build"
        pair = f"{self._input.symbol}->{self._output.symbol}"
        try:
            with settlement_context(wallet=address, pair=pair):
                built = await self._swap_provider.build_swap_transaction(quote, address)
                step = "decode"
                transaction = await self._codec.decode(built.swap_transaction)
                step = "sign"
                signature = await self._wallet.sign_and_send(transaction)
        except JupiterError as exc:
            raise self._fail(step, SwapFailed(str(exc) or None)) from exc
        except SwapWidgetError as exc:
            raise self._fail(step, exc)
        except asyncio.CancelledError:
            self._fail(step, SwapFailed("Swap cancelled"))
            raise
        except Exception as exc:  # noqa: BLE001
            self.logger.exception("Unexpected failure during swap %s step", step)
            raise self._fail(step, SwapFailed()) from exc

        self._signature = signature
        self._amount = self._default_amount
        self._quote = None
        self._error = None
        self._revision += 1
        self._transition(
            SettlementState.CONFIRMED,
            TransitionTrigger.TRANSACTION_CONFIRMED,
            reason=f"signature {signature}",
        )
        return signature

    # ---------------------------
    # View
    # ---------------------------
    def view(self) -> SwapView:
        quote = self._quote
        output_amount = ""
        rate = None
        impact = None
        impact_high = False
        route = None
        if quote is not None:
            output_amount = self._quoted_output_text()
            out_human = Decimal(from_base_units(quote.out_amount, self._output.decimals))
            in_human = Decimal(from_base_units(quote.in_amount, self._input.decimals))
            if in_human > 0:
                rate = (
                    f"1 {self._input.symbol} ≈ "
                    f"{format_token_amount(out_human / in_human, 4)} {self._output.symbol}"
                )
            impact = format_price_impact(quote.price_impact_pct)
            impact_high = Decimal(str(quote.price_impact_pct)) > HIGH_PRICE_IMPACT
            hops = quote.route_hop_count
            route = f"{hops} hop{'s' if hops > 1 else ''} via Jupiter"

        error = self._error
        address = self._wallet.address
        return SwapView(
            state=self._state,
            input_symbol=self._input.symbol,
            output_symbol=self._output.symbol,
            amount=self._amount,
            output_amount=output_amount,
            rate=rate,
            price_impact=impact,
            price_impact_high=impact_high,
            route=route,
            usd_value=self._usd_value(),
            quote_loading=self._state is SettlementState.AWAITING_QUOTE,
            error=getattr(error, "display_message", error.message) if error else None,
            error_code=type(error).__name__ if error else None,
            signature=self._signature,
            explorer_url=SOLSCAN_TX_URL.format(signature=self._signature) if self._signature else None,
            wallet_address=address,
            wallet_label=truncate_address(address),
            wallet_url=SOLSCAN_ACCOUNT_URL.format(address=address) if address else None,
            can_swap=self.can_swap,
        )

    # ---------------------------
    # Internals
    # ---------------------------
    def _ensure_editable(self) -> None:
        if self._state is SettlementState.AWAITING_SIGNATURE:
            raise InvalidTransitionError(
                from_state=self._state,
                to_state=SettlementState.AWAITING_QUOTE,
                message="Inputs are locked while the swap is being signed",
            )

    def _swap_blocker(self) -> Optional[str]:
        if self._state is SettlementState.AWAITING_SIGNATURE:
            return "Swap already in progress"
        if not self._wallet.is_connected:
            return "Connect a wallet to swap"
        if not is_positive_amount(self._amount):
            return "Enter an amount greater than zero"
        if self._quote is None or self._state is not SettlementState.QUOTE_READY:
            return "No quote available"
        return None

    def _on_input_changed(self, reason: str) -> None:
        self._revision += 1
        self._quote = None
        self._error = None
        self._signature = None

        if self._state is SettlementState.CONFIRMED:
            self._transition(SettlementState.IDLE, TransitionTrigger.USER_INPUT, reason="ready for next swap")

        text = self._amount.strip()
        value = parse_decimal(text)
        if text == "" or (value is not None and value <= 0):
            self._quotes.cancel()
            self._transition(SettlementState.IDLE, TransitionTrigger.USER_INPUT, reason=reason)
            return
        if value is None:
            self._quotes.cancel()
            self._error = InvalidAmount(f"{text!r} is not a valid amount")
            self._transition(SettlementState.IDLE, TransitionTrigger.USER_INPUT, reason=reason)
            return

        self._transition(SettlementState.AWAITING_QUOTE, TransitionTrigger.USER_INPUT, reason=reason)
        task = asyncio.get_running_loop().create_task(
            self._await_quote(self._revision, self._input, self._output, text)
        )
        self._quote_tasks.add(task)
        task.add_done_callback(self._quote_tasks.discard)

    async def _await_quote(
        self,
        revision: int,
        input_token: TokenSpec,
        output_token: TokenSpec,
        text: str,
    ) -> None:
        try:
            quote = await self._quotes.request_quote(input_token, output_token, text)
        except QuoteSuperseded:
            return
        except SwapWidgetError as exc:
            self._quote_failed(revision, exc)
            return
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Unexpected quote failure: %s", exc, exc_info=True)
            self._quote_failed(revision, QuoteUnavailable())
            return

        if revision != self._revision:
            self.logger.debug("Dropping quote for outdated input (revision %d, now %d)", revision, self._revision)
            return

        if quote is None:
            # Dust amount that rounds to zero base units
            self._transition(SettlementState.IDLE, TransitionTrigger.QUOTE_RESOLVED, reason="amount too small")
            return

        self._quote = quote
        self._transition(SettlementState.QUOTE_READY, TransitionTrigger.QUOTE_RESOLVED)

    def _quote_failed(self, revision: int, error: SwapWidgetError) -> None:
        if revision != self._revision:
            return
        self._error = error
        self._transition(SettlementState.IDLE, TransitionTrigger.ERROR, error=error)

    def _fail(self, step: str, error: SwapWidgetError) -> SwapWidgetError:
        self.logger.warning("Swap failed at %s step: %s", step, error.message)
        self._error = error
        self._transition(SettlementState.FAILED, TransitionTrigger.ERROR, reason=f"{step} failed", error=error)
        return error

    def _quoted_output_text(self) -> str:
        if self._quote is None:
            return ""
        return format_token_amount(from_base_units(self._quote.out_amount, self._output.decimals), 6)

    def _usd_value(self) -> Optional[str]:
        if self._prices is None:
            return None
        point = self._prices.get(self._input.symbol)
        amount = parse_decimal(self._amount.strip())
        if point is None or amount is None or amount <= 0:
            return None
        try:
            return format_usd_value(amount * Decimal(str(point.price)))
        except ArithmeticError:
            return None

    def _transition(
        self,
        to_state: SettlementState,
        trigger: TransitionTrigger,
        reason: Optional[str] = None,
        error: Optional[SwapWidgetError] = None,
    ) -> Optional[StateTransition]:
        from_state = self._state
        if to_state is from_state:
            return None

        if not self.can_transition_to(to_state):
            raise InvalidTransitionError(
                from_state=from_state,
                to_state=to_state,
                message=f"Invalid transition from {from_state.value} to {to_state.value}. "
                        f"Allowed: {sorted(s.value for s in self.TRANSITIONS.get(from_state, set()))}",
            )

        transition = StateTransition(
            from_state=from_state,
            to_state=to_state,
            trigger=trigger,
            reason=reason,
            error_code=type(error).__name__ if error else None,
            error_message=error.message if error else None,
        )
        self._history.append(transition)
        self._state = to_state

        self.logger.info(
            "Settlement %s -> %s (trigger: %s%s)",
            from_state.value,
            to_state.value,
            trigger.value,
            f", reason: {reason}" if reason else "",
        )
        return transition
