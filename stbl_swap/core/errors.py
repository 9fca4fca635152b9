"""
Error Classification

Typed failures raised by the swap widget core. Every async path in the
widget resolves either to a value or to one of these.
"""

from typing import Any, Dict, Optional


class SwapWidgetError(Exception):
    """Base class for all widget failures."""

    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": type(self).__name__, "message": self.message}


class ProviderUnavailable(SwapWidgetError):
    """No wallet extension is available in the environment."""

    default_message = "Wallet not found"

    def __init__(self, install_url: str, message: Optional[str] = None):
        self.install_url = install_url
        super().__init__(message or f"Wallet not found, install one from {install_url}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["installUrl"] = self.install_url
        return data


class UserRejected(SwapWidgetError):
    """The user declined a wallet prompt."""

    default_message = "Request cancelled in wallet"


class WalletConnectionFailed(SwapWidgetError):
    """The wallet failed to connect for a reason other than user refusal."""

    default_message = "Connection failed"


class InvalidAmount(SwapWidgetError):
    """Amount is not a finite, non-negative decimal number."""

    default_message = "Enter a valid amount"


class UnsupportedToken(SwapWidgetError):
    """Symbol is not in the swap token table."""

    default_message = "Token not supported"


class QuoteUnavailable(SwapWidgetError):
    """The aggregator could not price the requested route."""

    default_message = "try again"

    @property
    def display_message(self) -> str:
        return f"Quote unavailable: {self.message}"


class QuoteSuperseded(SwapWidgetError):
    """A newer quote request replaced this one before it resolved."""

    default_message = "Quote request superseded"


class SwapRejected(SwapWidgetError):
    """Swap preconditions are not met; nothing was sent anywhere."""

    default_message = "Swap not ready"


class SwapFailed(SwapWidgetError):
    """A step of swap settlement failed."""

    default_message = "Swap failed. Please try again."


class NetworkFailure(SwapWidgetError):
    """Price feed could not be refreshed. Recorded, never raised to callers."""

    default_message = "Price feed unavailable"


class InvalidTransitionError(SwapWidgetError):
    """Raised when an invalid settlement state transition is attempted."""

    def __init__(self, from_state: Any, to_state: Any, message: Optional[str] = None):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            message or f"Cannot transition from {from_state.value} to {to_state.value}"
        )
