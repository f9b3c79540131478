"""Order -> user correlation.

Settlement events arrive from the swap engine with an order but no user
context. Orders are recorded here at submission time so the completion
notice can be routed back to the user who placed them.
"""

import logging
from typing import Optional

from crossswap.session.store import KeyedStore, MemoryKeyedStore

logger = logging.getLogger(__name__)


class OrderCorrelator:
    """Maps order ids to Telegram user ids."""

    def __init__(self, store: Optional[KeyedStore[str, int]] = None):
        self._store: KeyedStore[str, int] = store or MemoryKeyedStore()

    async def store(self, order_id: Optional[str], user_id: Optional[int]) -> None:
        """Record who placed an order. No-op if either id is missing."""
        if not order_id or not user_id:
            logger.warning(
                f"Cannot store order-user mapping: order_id={order_id!r}, user_id={user_id!r}"
            )
            return
        await self._store.set(order_id, user_id)
        logger.info(f"Stored user {user_id} for order {order_id}")

    async def lookup(self, order_id: str) -> Optional[int]:
        """User who placed the order, or None."""
        if not order_id:
            return None
        return await self._store.get(order_id)

    async def evict(self, order_id: str) -> None:
        """Forget a completed order."""
        await self._store.delete(order_id)
