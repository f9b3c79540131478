"""Per-user conversation state and the keyed stores that hold it."""

from crossswap.session.state import ConversationState, ConversationStep, Scratch, SwapIntent
from crossswap.session.store import KeyedStore, MemoryKeyedStore

__all__ = [
    "ConversationState",
    "ConversationStep",
    "KeyedStore",
    "MemoryKeyedStore",
    "Scratch",
    "SwapIntent",
]
