"""Tests for per-user turn locks."""

import asyncio

import pytest

from crossswap.utils.locks import (
    LockTimeoutError,
    UserTurnLock,
    get_user_lock,
    is_turn_running,
)


class TestUserTurnLock:
    """Tests for the concurrency locks module."""

    @pytest.mark.asyncio
    async def test_get_user_lock_creates_new(self):
        """Test that get_user_lock returns the same lock for a user."""
        lock1 = await get_user_lock(1)
        lock2 = await get_user_lock(1)

        assert lock1 is lock2

    @pytest.mark.asyncio
    async def test_different_users_get_different_locks(self):
        """Test that different users get different locks."""
        lock1 = await get_user_lock(1)
        lock2 = await get_user_lock(2)

        assert lock1 is not lock2

    @pytest.mark.asyncio
    async def test_context_manager(self):
        """Test UserTurnLock as context manager."""
        async with UserTurnLock(100, operation="test"):
            lock = await get_user_lock(100)
            assert lock.locked()
            assert is_turn_running(100)

        assert not lock.locked()
        assert not is_turn_running(100)

    @pytest.mark.asyncio
    async def test_turns_are_serialized(self):
        """Test that two turns of one user never interleave."""
        results = []

        async def turn(name):
            async with UserTurnLock(200, timeout=10.0, operation=f"turn_{name}"):
                results.append(f"{name}_start")
                await asyncio.sleep(0.05)
                results.append(f"{name}_end")

        await asyncio.gather(turn("A"), turn("B"))

        assert results in [
            ["A_start", "A_end", "B_start", "B_end"],
            ["B_start", "B_end", "A_start", "A_end"],
        ]

    @pytest.mark.asyncio
    async def test_different_users_run_concurrently(self):
        """Test that users do not wait on each other."""
        results = []

        async def turn(user_id):
            async with UserTurnLock(user_id, timeout=10.0):
                results.append(f"{user_id}_start")
                await asyncio.sleep(0.05)
                results.append(f"{user_id}_end")

        await asyncio.gather(turn(301), turn(302))

        assert results[:2] == ["301_start", "302_start"]

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test that waiting too long for the previous turn raises LockTimeoutError."""
        async with UserTurnLock(400):
            with pytest.raises(LockTimeoutError):
                async with UserTurnLock(400, timeout=0.05):
                    pass

    @pytest.mark.asyncio
    async def test_released_on_exception(self):
        """Test that the lock is released when the turn fails."""
        with pytest.raises(RuntimeError):
            async with UserTurnLock(500):
                raise RuntimeError("boom")

        assert not is_turn_running(500)
