"""Swap flow handlers.

Every button press and free-text message is handed to the conversation;
this module only renders its replies.
"""

import logging

from aiogram import F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, ExceptionTypeFilter
from aiogram.types import CallbackQuery, ErrorEvent, Message

from crossswap.bot.keyboards import answer_reply, inline_keyboard
from crossswap.session.conversation import Reply, SwapConversation
from crossswap.utils.locks import LockTimeoutError

logger = logging.getLogger(__name__)

router = Router()


@router.message(Command("swap"))
async def cmd_swap(message: Message, conversation: SwapConversation) -> None:
    """Start the swap flow at network selection."""
    if not message.from_user:
        return
    reply = await conversation.handle_callback(message.from_user.id, "menu:swap")
    if reply is not None:
        await answer_reply(message, reply)


@router.callback_query(F.data)
async def handle_conversation_callback(callback: CallbackQuery, conversation: SwapConversation) -> None:
    """Route a button press through the conversation."""
    if not callback.from_user or not callback.message:
        return

    # acknowledge first: confirmation can take longer than Telegram waits
    await callback.answer()

    async def notify(reply: Reply) -> None:
        await callback.message.answer(reply.text, reply_markup=inline_keyboard(reply))

    reply = await conversation.handle_callback(callback.from_user.id, callback.data, notify=notify)
    if reply is not None:
        await callback.message.answer(reply.text, reply_markup=inline_keyboard(reply))


@router.message(F.text & ~F.text.startswith("/"))
async def handle_conversation_text(message: Message, conversation: SwapConversation) -> None:
    """Route free text (keys, amounts, addresses) through the conversation."""
    if not message.from_user or not message.text:
        return

    reply = await conversation.handle_text(message.from_user.id, message.text)
    if reply.delete_input:
        try:
            await message.delete()
        except TelegramBadRequest as e:
            logger.warning(f"Could not delete message with key material: {e}")
    await answer_reply(message, reply)


@router.errors(ExceptionTypeFilter(LockTimeoutError))
async def handle_busy(event: ErrorEvent) -> None:
    """A previous turn of the same user is still running."""
    update = event.update
    text = str(event.exception)
    if update.callback_query and update.callback_query.message:
        await update.callback_query.message.answer(text)
    elif update.message:
        await update.message.answer(text)
