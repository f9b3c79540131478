"""Account registration, login and password rotation.

The plaintext password is never stored: the database keeps a PBKDF2 hash,
and the password itself only lives in the in-memory auth session, where
it serves as the key for wallet encryption until logout.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from crossswap.crypto import EncryptionService
from crossswap.errors import AuthenticationError, InvalidInput
from crossswap.session.store import KeyedStore, MemoryKeyedStore
from crossswap.storage.database import get_db
from crossswap.storage.repository import AccountRepository
from crossswap.storage.wallet_store import PersistentWalletStore
from crossswap.wallets.base import WalletRecord
from crossswap.wallets.custody import WalletCustodyService

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


@dataclass
class AuthSession:
    """A logged-in user."""

    user_id: int
    password: str = field(repr=False)


def check_password_strength(password: str) -> str:
    password = password.strip()
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
    if " " in password:
        raise InvalidInput("Password must not contain spaces.")
    return password


class AuthService:
    """Register, log in and out, and rotate passwords."""

    def __init__(
        self,
        wallet_store: PersistentWalletStore,
        custody: WalletCustodyService,
        sessions: Optional[KeyedStore[int, AuthSession]] = None,
    ):
        self.wallet_store = wallet_store
        self.custody = custody
        self.sessions: KeyedStore[int, AuthSession] = sessions or MemoryKeyedStore()

    async def register(self, telegram_id: int, password: str) -> int:
        """Create an account and log it in.

        Returns:
            Internal user id

        Raises:
            InvalidInput: Weak password
            AuthenticationError: Already registered
        """
        password = check_password_strength(password)
        password_hash = await asyncio.to_thread(EncryptionService.hash_password, password)

        async with get_db() as session:
            repo = AccountRepository(session)
            if await repo.get_user_by_telegram_id(telegram_id) is not None:
                raise AuthenticationError("You are already registered. Use /login to access your wallets.")
            user = await repo.create_user(telegram_id, password_hash)
            user_id = user.id

        await self.sessions.set(telegram_id, AuthSession(user_id=user_id, password=password))
        logger.info(f"Registered user {user_id} (telegram {telegram_id})")
        return user_id

    async def login(self, telegram_id: int, password: str) -> list[WalletRecord]:
        """Verify the password and decrypt the user's wallets.

        Returns:
            Decrypted wallets with signing clients attached

        Raises:
            AuthenticationError: Unknown user or wrong password
        """
        async with get_db() as session:
            user = await AccountRepository(session).get_user_by_telegram_id(telegram_id)
        if user is None:
            raise AuthenticationError("No account found. Use /register to create one.")

        valid = await asyncio.to_thread(EncryptionService.verify_password, password.strip(), user.password_hash)
        if not valid:
            logger.warning(f"Failed login for telegram user {telegram_id}")
            raise AuthenticationError("Invalid credentials. Please try again.")

        password = password.strip()
        records = await self.wallet_store.load_all(user.id, password)
        for record in records:
            self.custody.restore_client(record)

        await self.sessions.set(telegram_id, AuthSession(user_id=user.id, password=password))
        logger.info(f"User {user.id} logged in with {len(records)} wallet(s)")
        return records

    async def logout(self, telegram_id: int) -> None:
        await self.sessions.delete(telegram_id)
        logger.info(f"Telegram user {telegram_id} logged out")

    async def is_authenticated(self, telegram_id: int) -> bool:
        return await self.sessions.get(telegram_id) is not None

    async def require(self, telegram_id: int) -> AuthSession:
        """Current auth session.

        Raises:
            AuthenticationError: Not logged in
        """
        auth = await self.sessions.get(telegram_id)
        if auth is None:
            raise AuthenticationError("You must be logged in. Use /login <password> first.")
        return auth

    async def change_password(self, telegram_id: int, old_password: str, new_password: str) -> int:
        """Re-encrypt every wallet under a new password.

        Returns:
            Number of wallets re-encrypted
        """
        auth = await self.require(telegram_id)
        if old_password.strip() != auth.password:
            raise AuthenticationError("Current password is incorrect.")

        new_password = check_password_strength(new_password)
        new_hash = await asyncio.to_thread(EncryptionService.hash_password, new_password)
        count = await self.wallet_store.reencrypt(
            auth.user_id, auth.password, new_password, new_password_hash=new_hash
        )

        await self.sessions.set(telegram_id, AuthSession(user_id=auth.user_id, password=new_password))
        logger.info(f"User {auth.user_id} changed password, {count} wallet(s) re-encrypted")
        return count
