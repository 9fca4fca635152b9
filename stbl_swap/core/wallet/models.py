"""Wallet session models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict


class WalletState(str, Enum):
    """Connection lifecycle of the wallet."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ReconnectOutcome(str, Enum):
    """Result of the silent startup reconnect."""

    RESTORED = "restored"          # Wallet had trusted this site, session restored
    UNAVAILABLE = "unavailable"    # No wallet in the environment
    NOT_TRUSTED = "not_trusted"    # Wallet declined the silent request
    FAILED = "failed"              # Any other wallet failure


@dataclass(frozen=True)
class WalletSession:
    """An authorized wallet connection."""

    address: str
    restored: bool = False
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "restored": self.restored,
            "connectedAt": self.connected_at.isoformat(),
        }
