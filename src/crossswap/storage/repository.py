"""Repository for user and wallet rows."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crossswap.storage.models import StoredWallet, User


class AccountRepository:
    """All user- and wallet-related database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # User operations
    async def get_user_by_telegram_id(self, telegram_id: int) -> Optional[User]:
        """Get user by Telegram ID."""
        stmt = select(User).where(User.telegram_id == telegram_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def create_user(self, telegram_id: int, password_hash: str) -> User:
        user = User(telegram_id=telegram_id, password_hash=password_hash)
        self.session.add(user)
        await self.session.flush()
        return user

    async def update_password_hash(self, user: User, password_hash: str) -> User:
        user.password_hash = password_hash
        await self.session.flush()
        return user

    # Wallet operations
    async def add_wallet(self, wallet: StoredWallet) -> StoredWallet:
        self.session.add(wallet)
        await self.session.flush()
        return wallet

    async def get_wallet(self, user_id: int, wallet_id: int) -> Optional[StoredWallet]:
        stmt = select(StoredWallet).where(
            StoredWallet.id == wallet_id, StoredWallet.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_wallet_by_address(self, user_id: int, address: str) -> Optional[StoredWallet]:
        stmt = select(StoredWallet).where(
            StoredWallet.user_id == user_id, StoredWallet.address == address
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_wallets(self, user_id: int) -> list[StoredWallet]:
        """All wallets of a user in creation order."""
        stmt = select(StoredWallet).where(StoredWallet.user_id == user_id).order_by(StoredWallet.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
