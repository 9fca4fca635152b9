"""
Settlement Module

Usage:
    from stbl_swap.core.settlement import SettlementOrchestrator

    orchestrator = SettlementOrchestrator(wallet, QuoteFetcher(jupiter), jupiter)
    orchestrator.set_amount("2.5")
    await orchestrator.wait_for_quote()
    signature = await orchestrator.swap()
"""

from .models import (
    TRANSITIONS,
    SettlementState,
    StateTransition,
    SwapView,
    TransitionTrigger,
)
from .orchestrator import SettlementOrchestrator

__all__ = [
    "TRANSITIONS",
    "SettlementOrchestrator",
    "SettlementState",
    "StateTransition",
    "SwapView",
    "TransitionTrigger",
]
