"""Database models, session management and the encrypted wallet store."""

from crossswap.storage.database import close_db, get_db, init_db
from crossswap.storage.repository import AccountRepository
from crossswap.storage.wallet_store import PersistentWalletStore, WalletSummary

__all__ = [
    "AccountRepository",
    "PersistentWalletStore",
    "WalletSummary",
    "close_db",
    "get_db",
    "init_db",
]
