"""
Settlement State Machine Models

Defines states, transitions, and the read-only view of a swap widget session.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Set


class SettlementState(str, Enum):
    """States of the quote-and-settle flow."""

    IDLE = "idle"                                # No amount, or waiting for the user
    AWAITING_QUOTE = "awaiting_quote"            # Debounce running or quote in flight
    QUOTE_READY = "quote_ready"                  # Accepted quote, swap can be triggered
    AWAITING_SIGNATURE = "awaiting_signature"    # Building, signing and broadcasting
    CONFIRMED = "confirmed"                      # Signature obtained
    FAILED = "failed"                            # A settlement step failed


class TransitionTrigger(str, Enum):
    """What triggered a state transition."""

    USER_INPUT = "user_input"             # Amount or token changed
    USER_ACTION = "user_action"           # Swap, flip, retry
    QUOTE_RESOLVED = "quote_resolved"
    TRANSACTION_CONFIRMED = "tx_confirmed"
    ERROR = "error"


TRANSITIONS: Dict[SettlementState, Set[SettlementState]] = {
    SettlementState.IDLE: {
        SettlementState.AWAITING_QUOTE,
    },
    SettlementState.AWAITING_QUOTE: {
        SettlementState.QUOTE_READY,
        SettlementState.IDLE,             # Cleared, or quote unavailable
    },
    SettlementState.QUOTE_READY: {
        SettlementState.AWAITING_SIGNATURE,
        SettlementState.AWAITING_QUOTE,   # Input changed
        SettlementState.IDLE,             # Input cleared
    },
    SettlementState.AWAITING_SIGNATURE: {
        SettlementState.CONFIRMED,
        SettlementState.FAILED,
    },
    SettlementState.CONFIRMED: {
        SettlementState.IDLE,             # Ready for the next swap
    },
    SettlementState.FAILED: {
        SettlementState.AWAITING_QUOTE,   # Input edited or retry
        SettlementState.IDLE,
    },
}


@dataclass
class StateTransition:
    """Record of a state transition."""

    from_state: SettlementState
    to_state: SettlementState
    trigger: TransitionTrigger
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    reason: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromState": self.from_state.value,
            "toState": self.to_state.value,
            "trigger": self.trigger.value,
            "timestamp": self.timestamp.isoformat(),
            "reason": self.reason,
            "errorCode": self.error_code,
            "errorMessage": self.error_message,
        }


@dataclass(frozen=True)
class SwapView:
    """Everything the widget renders, derived from the orchestrator in one go."""

    state: SettlementState
    input_symbol: str
    output_symbol: str
    amount: str
    output_amount: str = ""
    rate: Optional[str] = None
    price_impact: Optional[str] = None
    price_impact_high: bool = False
    route: Optional[str] = None
    usd_value: Optional[str] = None
    quote_loading: bool = False
    error: Optional[str] = None
    error_code: Optional[str] = None
    signature: Optional[str] = None
    explorer_url: Optional[str] = None
    wallet_address: Optional[str] = None
    wallet_label: str = ""
    wallet_url: Optional[str] = None
    can_swap: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "inputSymbol": self.input_symbol,
            "outputSymbol": self.output_symbol,
            "amount": self.amount,
            "outputAmount": self.output_amount,
            "rate": self.rate,
            "priceImpact": self.price_impact,
            "priceImpactHigh": self.price_impact_high,
            "route": self.route,
            "usdValue": self.usd_value,
            "quoteLoading": self.quote_loading,
            "error": self.error,
            "errorCode": self.error_code,
            "signature": self.signature,
            "explorerUrl": self.explorer_url,
            "walletAddress": self.wallet_address,
            "walletLabel": self.wallet_label,
            "walletUrl": self.wallet_url,
            "canSwap": self.can_swap,
        }
