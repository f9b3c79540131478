"""Telegram rendering of conversation replies."""

from typing import Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, Message

from crossswap.session.conversation import Reply


def inline_keyboard(reply: Reply) -> Optional[InlineKeyboardMarkup]:
    """Inline keyboard for a reply, or None when it has no buttons."""
    if not reply.buttons:
        return None
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=button.text, callback_data=button.data) for button in row]
            for row in reply.buttons
        ]
    )


def registration_keyboard() -> InlineKeyboardMarkup:
    """Shown to users who are not logged in."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="🔑 Register", callback_data="auth:register")],
            [InlineKeyboardButton(text="🔐 Login", callback_data="auth:login")],
        ]
    )


async def answer_reply(message: Message, reply: Reply) -> None:
    """Send a reply as a new message."""
    await message.answer(reply.text, reply_markup=inline_keyboard(reply))
