"""CrossSwap: Telegram bot for cross-chain atomic swaps with custodial wallets."""

__version__ = "0.1.0"
