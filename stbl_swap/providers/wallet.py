"""
Signing capability boundary.

The wallet itself (a browser extension such as Phantom) lives outside this
process. Hosts adapt it to WalletProvider and translate its failures into the
three boundary exceptions below so the session manager can tell "user said
no" apart from everything else.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Dict

from .base import Provider


class WalletProviderError(Exception):
    """Wallet failed for a reason other than user refusal."""
    pass


class WalletRejectedError(WalletProviderError):
    """The user declined the prompt."""
    pass


class WalletDisconnectedError(WalletProviderError):
    """The wallet revoked or lost the connection."""
    pass


@dataclass(frozen=True)
class WalletConnection:
    address: str


class WalletProvider(Provider):
    """A wallet able to authorize a site and sign transactions."""

    name = "wallet"

    @abstractmethod
    async def connect(self, *, only_if_trusted: bool = False) -> WalletConnection:
        """Request authorization. With only_if_trusted no prompt may be shown."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        pass

    @abstractmethod
    async def sign_and_send_transaction(self, transaction: Any) -> str:
        """Sign and broadcast a decoded transaction; returns the signature."""
        pass

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Wallet not installed"}
        return {"status": "healthy"}
