"""Wallet handlers: create/import entry points, listing and reveal."""

import logging
from typing import Optional

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from crossswap.auth import AuthService
from crossswap.bot.keyboards import answer_reply
from crossswap.chains import ChainFamily
from crossswap.errors import CrossSwapError, NotFoundError
from crossswap.session.conversation import SwapConversation
from crossswap.storage.wallet_store import PersistentWalletStore, WalletSummary

logger = logging.getLogger(__name__)

router = Router()


def _wallet_index(command: CommandObject) -> Optional[int]:
    """1-based wallet number from the command arguments."""
    try:
        index = int((command.args or "").strip())
    except ValueError:
        return None
    return index if index > 0 else None


async def _pick_wallet(
    message: Message, command: CommandObject, auth: AuthService, wallet_store: PersistentWalletStore
) -> Optional[WalletSummary]:
    """Resolve `/cmd N` to a stored wallet, replying on any problem."""
    index = _wallet_index(command)
    if index is None:
        await message.answer(f"Usage: /{command.command} <wallet number> (see /wallets)")
        return None

    try:
        session = await auth.require(message.from_user.id)
        wallets = await wallet_store.list(session.user_id)
        if index > len(wallets):
            raise NotFoundError(f"Wallet {index} not found. You have {len(wallets)} wallet(s).")
    except CrossSwapError as e:
        await message.answer(str(e))
        return None
    return wallets[index - 1]


@router.message(Command("create_wallet"))
async def cmd_create_wallet(message: Message, conversation: SwapConversation) -> None:
    if not message.from_user:
        return
    reply = await conversation.handle_callback(message.from_user.id, "wallet:create")
    if reply is not None:
        await answer_reply(message, reply)


@router.message(Command("import_wallet"))
async def cmd_import_wallet(message: Message, conversation: SwapConversation) -> None:
    if not message.from_user:
        return
    reply = await conversation.handle_callback(message.from_user.id, "wallet:import")
    if reply is not None:
        await answer_reply(message, reply)


@router.message(Command("wallets"))
async def cmd_wallets(message: Message, auth: AuthService, wallet_store: PersistentWalletStore) -> None:
    """List stored wallets (no decryption needed)."""
    if not message.from_user:
        return

    try:
        session = await auth.require(message.from_user.id)
        wallets = await wallet_store.list(session.user_id)
    except CrossSwapError as e:
        await message.answer(str(e))
        return

    if not wallets:
        await message.answer("You don't have any wallets yet. Use /create_wallet to create one.")
        return

    lines = ["👛 Your wallets\n"]
    for number, wallet in enumerate(wallets, start=1):
        lines.append(f"{number}. {wallet.chain_family.label}\n   {wallet.address}")
    lines.append("\nUse /wallet_details N for details.")
    await message.answer("\n".join(lines))


@router.message(Command("wallet_details"))
async def cmd_wallet_details(
    message: Message, command: CommandObject, auth: AuthService, wallet_store: PersistentWalletStore
) -> None:
    if not message.from_user:
        return
    wallet = await _pick_wallet(message, command, auth, wallet_store)
    if wallet is None:
        return

    text = (
        f"👛 Wallet details\n\n"
        f"Chain: {wallet.chain_family.label}\n"
        f"Address: {wallet.address}\n"
        f"Public key: {wallet.public_key or '-'}\n"
        f"Recovery phrase stored: {'yes' if wallet.has_mnemonic else 'no'}"
    )
    if wallet.chain_family == ChainFamily.STARKNET:
        deployed = {True: "yes", False: "no"}.get(wallet.contract_deployed, "unknown")
        text += f"\nAccount deployed: {deployed}"
    await message.answer(text)


@router.message(Command("show_private_key"))
async def cmd_show_private_key(
    message: Message, command: CommandObject, auth: AuthService, wallet_store: PersistentWalletStore
) -> None:
    """Decrypt and reveal a private key."""
    if not message.from_user:
        return
    wallet = await _pick_wallet(message, command, auth, wallet_store)
    if wallet is None:
        return

    try:
        session = await auth.require(message.from_user.id)
        record = await wallet_store.load(session.user_id, wallet.id, session.password)
    except CrossSwapError as e:
        await message.answer(str(e))
        return

    logger.info(f"User {session.user_id} revealed the private key of wallet {wallet.id}")
    await message.answer(
        f"🔐 Private key ({wallet.chain_family.label})\n\n{record.private_key}\n\n"
        "⚠️ Never share this key. Delete this message once you have saved it."
    )


@router.message(Command("show_mnemonic"))
async def cmd_show_mnemonic(
    message: Message, command: CommandObject, auth: AuthService, wallet_store: PersistentWalletStore
) -> None:
    """Decrypt and reveal a recovery phrase."""
    if not message.from_user:
        return
    wallet = await _pick_wallet(message, command, auth, wallet_store)
    if wallet is None:
        return
    if not wallet.has_mnemonic:
        await message.answer("This wallet has no recovery phrase (it was imported from a private key).")
        return

    try:
        session = await auth.require(message.from_user.id)
        record = await wallet_store.load(session.user_id, wallet.id, session.password)
    except CrossSwapError as e:
        await message.answer(str(e))
        return

    logger.info(f"User {session.user_id} revealed the recovery phrase of wallet {wallet.id}")
    await message.answer(
        f"🔐 Recovery phrase\n\n{record.mnemonic}\n\n"
        "⚠️ Never share this phrase. Delete this message once you have saved it."
    )
