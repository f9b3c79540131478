"""Out-of-band notifications for swap events."""

from crossswap.notifications.correlator import OrderCorrelator
from crossswap.notifications.telegram import TelegramNotifier

__all__ = ["OrderCorrelator", "TelegramNotifier"]
