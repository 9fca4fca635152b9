"""
Wallet Session Module

Usage:
    from stbl_swap.core.wallet import WalletSessionManager

    manager = WalletSessionManager(provider)
    await manager.try_auto_reconnect()   # silent, at startup
    session = await manager.connect()    # user clicked "Connect"
"""

from .models import ReconnectOutcome, WalletSession, WalletState
from .session_manager import WalletSessionManager

__all__ = [
    "ReconnectOutcome",
    "WalletSession",
    "WalletSessionManager",
    "WalletState",
]
