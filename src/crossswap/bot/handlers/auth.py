"""Account handlers: register, login, logout, change password.

Messages carrying a password are deleted from the chat once read.
"""

import logging

from aiogram import F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message

from crossswap.auth import AuthService
from crossswap.errors import CrossSwapError
from crossswap.session.conversation import SwapConversation

logger = logging.getLogger(__name__)

router = Router()


async def _delete_secret(message: Message) -> None:
    try:
        await message.delete()
    except TelegramBadRequest as e:
        logger.warning(f"Could not delete message with credentials: {e}")


@router.message(Command("register"))
async def cmd_register(message: Message, command: CommandObject, auth: AuthService) -> None:
    """Handle /register <password>."""
    if not message.from_user:
        return
    if not command.args:
        await message.answer("Usage: /register <password>")
        return

    await _delete_secret(message)
    try:
        await auth.register(message.from_user.id, command.args)
    except CrossSwapError as e:
        await message.answer(str(e))
        return

    await message.answer(
        "✅ Registration successful! You are logged in.\n\n"
        "Use /create_wallet to create wallets or /import_wallet to import one."
    )


@router.message(Command("login"))
async def cmd_login(
    message: Message, command: CommandObject, auth: AuthService, conversation: SwapConversation
) -> None:
    """Handle /login <password> - decrypt wallets into the session."""
    if not message.from_user:
        return
    if not command.args:
        await message.answer("Usage: /login <password>")
        return

    await _delete_secret(message)
    try:
        wallets = await auth.login(message.from_user.id, command.args)
    except CrossSwapError as e:
        await message.answer(str(e))
        return

    await conversation.attach_wallets(message.from_user.id, wallets)
    if not wallets:
        await message.answer(
            "✅ Login successful! You don't have any wallets yet. Use /create_wallet to create one."
        )
    else:
        await message.answer(
            f"✅ Login successful! You have {len(wallets)} wallet(s). Use /wallets to view them."
        )


@router.message(Command("logout"))
async def cmd_logout(message: Message, auth: AuthService, conversation: SwapConversation) -> None:
    """Handle /logout - forget the password and decrypted wallets."""
    if not message.from_user:
        return
    await auth.logout(message.from_user.id)
    await conversation.end_session(message.from_user.id)
    await message.answer(
        "You have been logged out. Your private keys are no longer accessible until you log in again."
    )


@router.message(Command("change_password"))
async def cmd_change_password(message: Message, command: CommandObject, auth: AuthService) -> None:
    """Handle /change_password <old> <new> - re-encrypt every wallet."""
    if not message.from_user:
        return
    parts = (command.args or "").split()
    if len(parts) != 2:
        await message.answer("Usage: /change_password <old_password> <new_password>")
        return

    await _delete_secret(message)
    try:
        count = await auth.change_password(message.from_user.id, parts[0], parts[1])
    except CrossSwapError as e:
        await message.answer(str(e))
        return

    await message.answer(f"✅ Password changed. {count} wallet(s) re-encrypted with the new password.")


@router.callback_query(F.data.in_({"auth:register", "auth:login"}))
async def handle_auth_buttons(callback: CallbackQuery) -> None:
    """Explain how to register or log in."""
    if callback.data == "auth:register":
        text = "Send /register <password> to create your account (at least 8 characters)."
    else:
        text = "Send /login <password> to unlock your wallets."
    await callback.message.answer(text)
    await callback.answer()
