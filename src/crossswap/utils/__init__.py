"""Utility modules for CrossSwap."""

from crossswap.utils.locks import LockTimeoutError, UserTurnLock, get_user_lock

__all__ = ["LockTimeoutError", "UserTurnLock", "get_user_lock"]
