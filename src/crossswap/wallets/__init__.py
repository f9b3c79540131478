"""Wallet custody: per-family adapters and the multi-chain custody service."""

from crossswap.wallets.base import ChainWalletAdapter, WalletClient, WalletRecord
from crossswap.wallets.custody import WalletBundle, WalletCustodyService

__all__ = [
    "ChainWalletAdapter",
    "WalletClient",
    "WalletRecord",
    "WalletBundle",
    "WalletCustodyService",
]
