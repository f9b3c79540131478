"""Per-user turn locks.

A user's turns are processed one at a time so two messages can never
interleave on the same conversation state. Different users never wait on
each other.
"""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Global lock registry: telegram user id -> asyncio.Lock
_user_locks: dict[int, asyncio.Lock] = {}
_registry_lock = asyncio.Lock()


class LockTimeoutError(Exception):
    """Raised when a user's previous turn does not finish in time."""

    pass


async def get_user_lock(user_id: int) -> asyncio.Lock:
    """Get or create the turn lock of a user."""
    async with _registry_lock:
        if user_id not in _user_locks:
            _user_locks[user_id] = asyncio.Lock()
        return _user_locks[user_id]


def is_turn_running(user_id: int) -> bool:
    """Whether a turn is currently being processed for the user."""
    lock = _user_locks.get(user_id)
    return lock is not None and lock.locked()


class UserTurnLock:
    """Serializes the turns of one user.

    Example:
        async with UserTurnLock(user_id, operation="swap_amount"):
            reply = await conversation.handle_text(...)
    """

    def __init__(
        self,
        user_id: int,
        timeout: Optional[float] = 120.0,
        operation: str = "turn",
    ):
        """Initialize the lock.

        Args:
            user_id: Telegram user id
            timeout: Maximum time to wait for the previous turn (None = wait forever)
            operation: Description of the turn for logging
        """
        self.user_id = user_id
        self.timeout = timeout
        self.operation = operation
        self._lock: Optional[asyncio.Lock] = None
        self._acquired = False

    async def __aenter__(self) -> "UserTurnLock":
        self._lock = await get_user_lock(self.user_id)

        try:
            if self.timeout:
                await asyncio.wait_for(self._lock.acquire(), timeout=self.timeout)
            else:
                await self._lock.acquire()
        except asyncio.TimeoutError:
            logger.warning(
                f"Turn lock timeout for user {self.user_id} after {self.timeout}s: {self.operation}"
            )
            raise LockTimeoutError(
                "Your previous request is still being processed. Please wait a moment."
            )

        self._acquired = True
        logger.debug(f"Turn started for user {self.user_id}: {self.operation}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._acquired and self._lock:
            self._lock.release()
            self._acquired = False
            logger.debug(f"Turn finished for user {self.user_id}: {self.operation}")
        return False


def clear_user_locks() -> None:
    """Clear all user locks (useful for testing)."""
    _user_locks.clear()
