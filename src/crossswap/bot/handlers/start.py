"""Start and basic command handlers."""

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from crossswap.auth import AuthService
from crossswap.bot.keyboards import answer_reply, registration_keyboard
from crossswap.session.conversation import SwapConversation

router = Router()


@router.message(CommandStart())
async def cmd_start(message: Message, conversation: SwapConversation, auth: AuthService) -> None:
    """Handle /start - show the main menu, or ask to register/login."""
    if not message.from_user:
        return

    if not await auth.is_authenticated(message.from_user.id):
        first_name = message.from_user.first_name or "there"
        await message.answer(
            f"Welcome to CrossSwap, {first_name}!\n\n"
            "Your keys are encrypted with your password, which is never stored.\n\n"
            "New here? /register <password>\n"
            "Returning? /login <password>",
            reply_markup=registration_keyboard(),
        )
        return

    await answer_reply(message, await conversation.start(message.from_user.id))


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    """Handle /help command."""
    help_text = """CrossSwap Bot Commands

Account:
  /register <password>  - Create an account
  /login <password>     - Unlock your wallets
  /logout               - Lock your wallets
  /change_password <old> <new>

Wallets:
  /create_wallet        - Create new wallets
  /import_wallet        - Import a private key or phrase
  /wallets              - List your wallets
  /wallet_details N     - Show wallet N
  /show_private_key N   - Reveal the private key of wallet N
  /show_mnemonic N      - Reveal the recovery phrase of wallet N

Swaps:
  /swap                 - Start a cross-chain swap
  /cancel               - Cancel the current operation

Supported testnets: Ethereum Sepolia, Arbitrum Sepolia,
Bitcoin testnet4, Starknet Sepolia."""

    await message.answer(help_text)


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, conversation: SwapConversation) -> None:
    """Handle /cancel - takes effect even while a swap is being processed."""
    if not message.from_user:
        return
    await answer_reply(message, await conversation.cancel(message.from_user.id))
