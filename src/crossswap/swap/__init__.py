"""Swap engine interface, Garden adapter and the swap orchestrator."""

from crossswap.swap.engine import Order, Quote, SwapEngine, SwapRequest
from crossswap.swap.orchestrator import SwapOrchestrator, SwapResult, translate_engine_error

__all__ = [
    "Order",
    "Quote",
    "SwapEngine",
    "SwapOrchestrator",
    "SwapRequest",
    "SwapResult",
    "translate_engine_error",
]
