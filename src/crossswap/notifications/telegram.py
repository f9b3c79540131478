"""Telegram notification service.

Delivers out-of-band swap events (completion, funding reminders) to the
user that placed the order through the bot the application runs.
"""

import html
import logging
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError

from crossswap.chains import explorer_tx_url, find_asset, format_chain_name
from crossswap.notifications.correlator import OrderCorrelator
from crossswap.swap.engine import Order

logger = logging.getLogger(__name__)


def format_destination_amount(order: Order) -> str:
    """Destination amount in display units when the asset is known."""
    create = order.raw.get("create_order") or {}
    asset = find_asset(order.destination_chain, create.get("destination_asset"))
    if asset is None:
        return str(order.destination_amount)
    return f"{asset.from_base_units(order.destination_amount)} {asset.symbol}"


def format_completion_message(order: Order, tx_hash: str) -> str:
    """HTML completion notice for a redeemed order."""
    link = explorer_tx_url(order.destination_chain, tx_hash)
    return (
        "✅ <b>Swap Completed Successfully!</b>\n\n"
        f"• Order ID: <code>{html.escape(order.order_id)}</code>\n"
        f"• From: {format_chain_name(order.source_chain)}\n"
        f"• To: {format_chain_name(order.destination_chain)}\n"
        f"• Amount: {html.escape(format_destination_amount(order))}\n"
        f'• Transaction: <a href="{html.escape(link)}">View Transaction</a>'
    )


class TelegramNotifier:
    """Service for sending Telegram notifications to users."""

    def __init__(self, correlator: OrderCorrelator, bot: Bot):
        self.correlator = correlator
        self.bot = bot

    async def send_message(
        self,
        telegram_id: int,
        message: str,
        parse_mode: Optional[str] = "HTML",
    ) -> bool:
        """Send a message to a user.

        Returns:
            True if message was sent successfully
        """
        try:
            await self.bot.send_message(
                chat_id=telegram_id,
                text=message,
                parse_mode=parse_mode,
                disable_web_page_preview=True,
            )
            return True
        except TelegramForbiddenError:
            logger.warning(f"User {telegram_id} has blocked the bot")
            return False
        except TelegramBadRequest as e:
            logger.error(f"Bad request sending to {telegram_id}: {e}")
            return False
        except Exception as e:
            logger.error(f"Failed to send notification to {telegram_id}: {e}")
            return False

    async def notify_swap_completed(self, order: Order, tx_hash: str) -> bool:
        """Tell the user who placed the order that it was redeemed.

        Orders with no recorded user are logged and dropped.
        """
        user_id = await self.correlator.lookup(order.order_id)
        if user_id is None:
            logger.warning(f"Could not find user ID for order {order.order_id}")
            return False

        sent = await self.send_message(user_id, format_completion_message(order, tx_hash))
        if sent:
            logger.info(f"Sent swap completion notification to user {user_id}")
        await self.correlator.evict(order.order_id)
        return sent

    async def on_engine_success(self, order: Order, action: str, tx_hash: str) -> None:
        """Engine `success` handler."""
        logger.info(f"Engine success [{action}] for order {order.order_id}, txHash: {tx_hash}")
        if action.lower() == "redeem":
            await self.notify_swap_completed(order, tx_hash)

    async def on_engine_error(self, order: Order, error: Exception) -> None:
        """Engine `error` handler."""
        logger.error(f"Engine error for order {order.order_id}: {error}")

    async def on_engine_log(self, order_id: str, message: str) -> None:
        """Engine `log` handler."""
        logger.info(f"Engine log [{order_id}]: {message}")
