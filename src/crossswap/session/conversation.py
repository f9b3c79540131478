"""The swap conversation.

`SwapConversation` turns user input (button presses and text) into state
transitions and replies. It knows nothing about Telegram: replies are
plain `Reply` objects that the bot layer renders as messages with inline
keyboards.

Turns of one user run one at a time under a per-user lock. Cancel is the
exception: it skips the lock and resets the conversation immediately, and
any turn still running for that user discards its result when it finishes.
Logging out drops the session; a turn finishing after that never writes
its state back.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from crossswap.auth import AuthService, AuthSession
from crossswap.chains import (
    NETWORKS,
    Asset,
    ChainFamily,
    format_chain_name,
    from_asset_candidates,
    get_asset,
    shorten_address,
    to_asset_candidates,
    validate_address,
)
from crossswap.errors import (
    AmountOutOfRange,
    AuthenticationError,
    CrossSwapError,
    EngineUnavailable,
    IllegalTransition,
    InvalidAddress,
    InvalidAmount,
    InvalidInput,
    InvalidKeyFormat,
    NotFoundError,
    PersistenceError,
)
from crossswap.session.state import ConversationState, ConversationStep, SwapIntent, parse_amount
from crossswap.session.store import KeyedStore, MemoryKeyedStore
from crossswap.storage.wallet_store import PersistentWalletStore
from crossswap.swap.orchestrator import SwapOrchestrator, SwapResult
from crossswap.utils.locks import UserTurnLock, is_turn_running
from crossswap.wallets.base import WalletRecord
from crossswap.wallets.custody import WalletBundle, WalletCustodyService

logger = logging.getLogger(__name__)

Step = ConversationStep

CREATE_CHOICES: dict[str, tuple[ChainFamily, ...]] = {
    "all": (ChainFamily.EVM, ChainFamily.BITCOIN, ChainFamily.STARKNET),
    "evm_btc": (ChainFamily.EVM, ChainFamily.BITCOIN),
    "starknet": (ChainFamily.STARKNET,),
}

PRIVATE_KEY = "private_key"
MNEMONIC = "mnemonic"


@dataclass(frozen=True)
class Button:
    text: str
    data: str


@dataclass
class Reply:
    """Transport-neutral bot reply."""

    text: str
    buttons: list[list[Button]] = field(default_factory=list)
    # the user's message held secret material and should be removed from the chat
    delete_input: bool = False


Notify = Callable[[Reply], Awaitable[None]]

CANCEL_BUTTON = Button("❌ Cancel", "cancel")


def main_menu() -> Reply:
    return Reply(
        "Welcome to CrossSwap!\n\n"
        "Swap between Ethereum, Arbitrum, Bitcoin and Starknet testnets "
        "with atomic swaps.\n\nWhat would you like to do?",
        [
            [Button("👛 Wallets", "menu:wallet"), Button("🔄 Swap", "menu:swap")],
            [Button("🌐 Select network", "menu:network")],
        ],
    )


def wallet_menu() -> Reply:
    return Reply(
        "👛 Wallet menu",
        [
            [Button("✨ Create wallets", "wallet:create"), Button("📥 Import wallet", "wallet:import")],
            [Button("🔙 Back", "menu:main")],
        ],
    )


def _asset_label(asset: Asset) -> str:
    return f"{asset.symbol} ({format_chain_name(asset.chain)})"


def _asset_buttons(assets: list[Asset], prefix: str) -> list[list[Button]]:
    rows: list[list[Button]] = []
    row: list[Button] = []
    for asset in assets:
        row.append(Button(_asset_label(asset), f"{prefix}:{asset.key}"))
        if len(row) == 2:
            rows.append(row)
            row = []
    if row:
        rows.append(row)
    rows.append([CANCEL_BUTTON])
    return rows


def _amount_bounds_text(asset: Asset) -> str:
    return (
        f"{asset.from_base_units(asset.min_amount)} and "
        f"{asset.from_base_units(asset.max_amount)} {asset.symbol}"
    )


def _wallet_lines(wallets: list[WalletRecord]) -> str:
    return "\n".join(f"• {w.chain_family.label}: {w.address}" for w in wallets)


class SwapConversation:
    """Per-user conversation driver."""

    def __init__(
        self,
        auth: AuthService,
        custody: WalletCustodyService,
        wallet_store: PersistentWalletStore,
        orchestrator: SwapOrchestrator,
        sessions: Optional[KeyedStore[int, ConversationState]] = None,
        lock_timeout: Optional[float] = 120.0,
    ):
        self.auth = auth
        self.custody = custody
        self.wallet_store = wallet_store
        self.orchestrator = orchestrator
        self.sessions: KeyedStore[int, ConversationState] = sessions or MemoryKeyedStore()
        self.lock_timeout = lock_timeout

    # ======================
    # Session access
    # ======================

    async def get_state(self, user_id: int) -> ConversationState:
        state = await self.sessions.get(user_id)
        if state is None:
            state = ConversationState()
            await self.sessions.set(user_id, state)
        return state

    async def attach_wallets(self, user_id: int, records: list[WalletRecord]) -> None:
        """Put decrypted wallets into the live session (after login)."""
        state = await self.get_state(user_id)
        state.add_wallets(records)
        await self.sessions.set(user_id, state)

    async def end_session(self, user_id: int) -> None:
        """Drop the session and every decrypted wallet it holds."""
        await self.sessions.delete(user_id)

    # ======================
    # Entry points
    # ======================

    async def start(self, user_id: int) -> Reply:
        async with UserTurnLock(user_id, timeout=self.lock_timeout, operation="start"):
            state = await self.get_state(user_id)
            state.reset()
            await self.sessions.set(user_id, state)
        return main_menu()

    async def cancel(self, user_id: int) -> Reply:
        """Reset to INITIAL immediately, even while a turn is running."""
        state = await self.get_state(user_id)
        state.reset()
        await self.sessions.set(user_id, state)
        if is_turn_running(user_id):
            logger.info(f"User {user_id} cancelled while a turn was running")
        else:
            logger.info(f"User {user_id} cancelled the current operation")
        return Reply("❌ Operation cancelled.", main_menu().buttons)

    async def handle_callback(self, user_id: int, data: str, notify: Optional[Notify] = None) -> Optional[Reply]:
        """Handle a button press. Returns None when the result was discarded."""
        if data == "cancel":
            return await self.cancel(user_id)

        action, _, value = data.partition(":")
        async with UserTurnLock(user_id, timeout=self.lock_timeout, operation=action):
            state = await self.get_state(user_id)
            try:
                reply = await self._dispatch_callback(user_id, state, action, value, notify)
            except IllegalTransition as e:
                logger.info(f"User {user_id}: rejected '{data}' at {state.step.value}: {e}")
                reply = Reply("That option is no longer available. Use /start to begin again.")
            except CrossSwapError as e:
                reply = Reply(str(e), [[CANCEL_BUTTON]])
            if reply is not None:
                await self._write_back(user_id, state)
            return reply

    async def handle_text(self, user_id: int, text: str) -> Reply:
        """Handle free text: key material, amounts and addresses."""
        async with UserTurnLock(user_id, timeout=self.lock_timeout, operation="text"):
            state = await self.get_state(user_id)
            importing = state.step == Step.WALLET_IMPORT
            try:
                if importing:
                    reply = await self._import_text(user_id, state, text)
                elif state.step == Step.SWAP_AMOUNT:
                    reply = self._amount_text(state, text)
                elif state.step == Step.ENTER_DESTINATION:
                    reply = self._destination_text(state, text)
                else:
                    reply = Reply("Use /start to open the menu, or /help for all commands.")
            except CrossSwapError as e:
                reply = Reply(str(e), [[CANCEL_BUTTON]])
            if importing:
                reply.delete_input = True
            await self._write_back(user_id, state)
            return reply

    async def _write_back(self, user_id: int, state: ConversationState) -> None:
        if await self.sessions.get(user_id) is not state:
            logger.info(f"Session of user {user_id} ended during the turn, not saving it")
            return
        await self.sessions.set(user_id, state)

    async def _abandoned(self, user_id: int, state: ConversationState, step: ConversationStep) -> bool:
        """Whether the user cancelled or logged out while the turn was waiting."""
        return state.step != step or await self.sessions.get(user_id) is not state

    async def _dispatch_callback(
        self,
        user_id: int,
        state: ConversationState,
        action: str,
        value: str,
        notify: Optional[Notify],
    ) -> Optional[Reply]:
        if action == "menu":
            return await self._menu(state, value)
        if action == "wallet":
            return self._wallet_action(state, value)
        if action == "create":
            return await self._create_wallets(user_id, state, value)
        if action == "import_type":
            return self._import_type(state, value)
        if action == "import_chain":
            return self._import_chain(state, value)
        if action == "network":
            return self._select_network(state, value)
        if action == "from":
            return self._select_from_asset(state, value)
        if action == "to":
            return self._select_to_asset(state, value)
        if action == "dest":
            return self._destination_method(state, value)
        if action == "confirm":
            return await self._confirm(user_id, state, notify)

        logger.warning(f"Unknown callback action from user {user_id}: {action}")
        return Reply("Unknown action. Use /start to begin again.")

    # ======================
    # Menus
    # ======================

    @staticmethod
    def _leave_flow(state: ConversationState) -> None:
        if state.step not in (Step.INITIAL, Step.WALLET_IMPORTED):
            state.reset()

    async def _menu(self, state: ConversationState, value: str) -> Reply:
        self._leave_flow(state)
        if value == "wallet":
            return wallet_menu()
        if value in ("network", "swap"):
            return self._open_network_menu(state)
        return main_menu()

    def _open_network_menu(self, state: ConversationState) -> Reply:
        if not state.wallets:
            return Reply(
                "You need to create or import a wallet first before you can perform swaps.",
                wallet_menu().buttons,
            )
        state.transition(Step.SELECT_NETWORK)
        buttons = [[Button(network.name, f"network:{network.id}")] for network in NETWORKS.values()]
        buttons.append([CANCEL_BUTTON])
        return Reply("🌐 Select the network where you want to perform swaps:", buttons)

    # ======================
    # Wallet create / import
    # ======================

    def _wallet_action(self, state: ConversationState, value: str) -> Reply:
        self._leave_flow(state)
        if value == "create":
            state.transition(Step.WALLET_CREATE)
            return Reply(
                "✨ Which wallets should be created?",
                [
                    [Button("All chains", "create:all")],
                    [Button("EVM + Bitcoin", "create:evm_btc"), Button("Starknet", "create:starknet")],
                    [CANCEL_BUTTON],
                ],
            )
        if value == "import":
            state.transition(Step.WALLET_IMPORT)
            return Reply(
                "📥 How do you want to import?",
                [
                    [Button("🔑 Private key", f"import_type:{PRIVATE_KEY}")],
                    [Button("📝 Mnemonic phrase", f"import_type:{MNEMONIC}")],
                    [CANCEL_BUTTON],
                ],
            )
        return wallet_menu()

    async def _create_wallets(self, user_id: int, state: ConversationState, value: str) -> Optional[Reply]:
        if state.step != Step.WALLET_CREATE:
            raise IllegalTransition(state.step.value, Step.WALLET_IMPORTED.value)
        families = CREATE_CHOICES.get(value)
        if families is None:
            raise InvalidInput("Unknown wallet selection.")

        auth = await self._require_auth(user_id, state)
        bundle = await self.custody.create(families)
        if await self._abandoned(user_id, state, Step.WALLET_CREATE):
            logger.info(f"Discarding wallets created after user {user_id} left the flow")
            return None
        await self._persist(auth.user_id, auth.password, bundle)

        # stored now, so the phrase is shown even if the user cancelled meanwhile
        state.add_wallets(bundle.wallets)
        if state.step == Step.WALLET_CREATE:
            state.transition(Step.WALLET_IMPORTED)

        text = "✅ Wallets created and securely stored!\n\n" + _wallet_lines(bundle.wallets)
        if bundle.mnemonic:
            text += (
                "\n\n🔐 Recovery phrase (EVM + Bitcoin):\n"
                f"{bundle.mnemonic}\n\n"
                "Write it down and keep it offline. Anyone with this phrase controls your funds."
            )
        return Reply(text, self._after_wallet_buttons())

    def _import_type(self, state: ConversationState, value: str) -> Reply:
        if state.step != Step.WALLET_IMPORT or state.scratch is None:
            raise IllegalTransition(state.step.value, Step.WALLET_IMPORT.value)
        if value not in (PRIVATE_KEY, MNEMONIC):
            raise InvalidInput("Unknown import type.")

        state.scratch.import_type = value
        state.scratch.import_chain = None
        state.scratch.pending_starknet_key = None

        families = [ChainFamily.EVM, ChainFamily.BITCOIN]
        if value == PRIVATE_KEY:
            families.append(ChainFamily.STARKNET)
        buttons = [[Button(family.label, f"import_chain:{family.value}")] for family in families]
        buttons.append([CANCEL_BUTTON])
        return Reply("Which chain does the key belong to?", buttons)

    def _import_chain(self, state: ConversationState, value: str) -> Reply:
        scratch = state.scratch
        if state.step != Step.WALLET_IMPORT or scratch is None or scratch.import_type is None:
            raise IllegalTransition(state.step.value, Step.WALLET_IMPORT.value)
        try:
            family = ChainFamily(value)
        except ValueError:
            raise InvalidInput("Unknown chain.") from None
        if scratch.import_type == MNEMONIC and family == ChainFamily.STARKNET:
            raise InvalidInput("Mnemonic import is not supported for Starknet.")

        scratch.import_chain = family
        if scratch.import_type == MNEMONIC:
            prompt = "📝 Send your 12 or 24 word recovery phrase."
        else:
            prompt = f"🔑 Send your {family.label} private key (hex, 0x prefix optional)."
        return Reply(prompt + "\n\nThe message will be deleted right after import.", [[CANCEL_BUTTON]])

    async def _import_text(self, user_id: int, state: ConversationState, text: str) -> Reply:
        scratch = state.scratch
        if scratch is None or scratch.import_chain is None:
            return Reply("Choose what to import first.", wallet_menu().buttons)

        auth = await self._require_auth(user_id, state)
        family = scratch.import_chain
        secret = text.strip()

        if scratch.import_type == MNEMONIC:
            bundle = await self.custody.import_from_mnemonic(secret, family)
        elif family == ChainFamily.STARKNET and scratch.pending_starknet_key is None:
            scratch.pending_starknet_key = secret
            state.transition(Step.WALLET_IMPORT)
            return Reply(
                "Now send the Starknet account address for this key.",
                [[CANCEL_BUTTON]],
                delete_input=True,
            )
        elif family == ChainFamily.STARKNET:
            try:
                bundle = await self.custody.import_from_private_key(
                    scratch.pending_starknet_key, family, {"address": secret}
                )
            except InvalidKeyFormat:
                scratch.pending_starknet_key = None
                raise
            except InvalidAddress as e:
                return Reply(f"{e}\n\nSend the Starknet account address again.", [[CANCEL_BUTTON]])
        else:
            try:
                bundle = await self.custody.import_from_private_key(secret, family)
            except InvalidInput as e:
                return Reply(str(e), [[CANCEL_BUTTON]], delete_input=True)

        if await self._abandoned(user_id, state, Step.WALLET_IMPORT):
            logger.info(f"Discarding import finished after user {user_id} left the flow")
            return Reply("Import discarded.", main_menu().buttons, delete_input=True)
        await self._persist(auth.user_id, auth.password, bundle)
        state.add_wallets(bundle.wallets)
        if state.step == Step.WALLET_IMPORT:
            state.transition(Step.WALLET_IMPORTED)

        text = "✅ Wallets imported and securely stored!\n\n" + _wallet_lines(bundle.wallets)
        for warning in bundle.warnings:
            text += f"\n\n⚠️ {warning}"
        return Reply(text, self._after_wallet_buttons(), delete_input=True)

    async def _persist(self, user_id: int, password: str, bundle: WalletBundle) -> None:
        for record in bundle.wallets:
            await self.wallet_store.save(user_id, record, password)

    async def _require_auth(self, user_id: int, state: ConversationState) -> AuthSession:
        try:
            return await self.auth.require(user_id)
        except AuthenticationError:
            state.reset()
            raise

    @staticmethod
    def _after_wallet_buttons() -> list[list[Button]]:
        return [[Button("🌐 Select network", "menu:network"), Button("👛 Wallet menu", "menu:wallet")]]

    # ======================
    # Swap intent
    # ======================

    def _select_network(self, state: ConversationState, value: str) -> Reply:
        network = NETWORKS.get(value)
        if state.step != Step.SELECT_NETWORK or state.swap_intent is None:
            raise IllegalTransition(state.step.value, Step.SELECT_FROM_ASSET.value)
        if network is None:
            raise InvalidInput("Unknown network.")

        state.swap_intent.selected_network = network.id
        state.transition(Step.SELECT_FROM_ASSET)
        return Reply(
            f"Selected network: {network.name}\n\n💱 Select the asset you want to swap from:",
            _asset_buttons(from_asset_candidates(network.id), "from"),
        )

    def _select_from_asset(self, state: ConversationState, value: str) -> Reply:
        intent = self._intent_at(state, Step.SELECT_FROM_ASSET)
        asset = get_asset(value)
        if asset is None or asset not in from_asset_candidates(intent.selected_network):
            raise InvalidInput("That asset is not available on this network.")

        intent.from_asset = asset
        state.transition(Step.SELECT_TO_ASSET)
        return Reply(
            f"From: {_asset_label(asset)}\n\n💱 Select the asset you want to receive:",
            _asset_buttons(to_asset_candidates(asset), "to"),
        )

    def _select_to_asset(self, state: ConversationState, value: str) -> Reply:
        intent = self._intent_at(state, Step.SELECT_TO_ASSET)
        asset = get_asset(value)
        if asset is None or asset not in to_asset_candidates(intent.from_asset):
            raise InvalidInput("You cannot swap to an asset on the same chain.")

        intent.to_asset = asset
        state.transition(Step.SWAP_AMOUNT)
        return Reply(
            f"Swap {_asset_label(intent.from_asset)} → {_asset_label(asset)}\n\n"
            f"Enter the amount of {intent.from_asset.symbol} to swap "
            f"(between {_amount_bounds_text(intent.from_asset)}):",
            [[CANCEL_BUTTON]],
        )

    def _amount_text(self, state: ConversationState, text: str) -> Reply:
        intent = self._intent_at(state, Step.SWAP_AMOUNT)
        asset = intent.from_asset
        amount = parse_amount(text)
        bounds = (asset.from_base_units(asset.min_amount), asset.from_base_units(asset.max_amount))

        if amount is None:
            raise InvalidAmount(
                f"Please enter a valid positive number between {_amount_bounds_text(asset)}.", *bounds
            )
        if -amount.normalize().as_tuple().exponent > asset.decimals:
            raise InvalidAmount(f"{asset.symbol} supports at most {asset.decimals} decimal places.", *bounds)
        if not asset.min_amount <= asset.to_base_units(amount) <= asset.max_amount:
            raise InvalidAmount(f"Amount must be between {_amount_bounds_text(asset)}.", *bounds)

        intent.send_amount = format(amount, "f")

        own = state.wallet_for_family(intent.to_asset.family)
        if own is not None:
            state.transition(Step.CHOOSE_DESTINATION_METHOD)
            return Reply(
                f"Where should the {intent.to_asset.symbol} be sent?",
                [
                    [Button(f"👛 My {own.chain_family.label} wallet ({shorten_address(own.address)})", "dest:existing")],
                    [Button("✏️ Enter address manually", "dest:manual")],
                    [CANCEL_BUTTON],
                ],
            )

        state.transition(Step.ENTER_DESTINATION)
        return self._destination_prompt(intent)

    def _destination_method(self, state: ConversationState, value: str) -> Reply:
        intent = self._intent_at(state, Step.CHOOSE_DESTINATION_METHOD)
        if value == "manual":
            state.transition(Step.ENTER_DESTINATION)
            return self._destination_prompt(intent)

        own = state.wallet_for_family(intent.to_asset.family)
        if own is None:
            raise NotFoundError(f"You have no {intent.to_asset.family.label} wallet.")
        intent.destination_address = own.address
        state.transition(Step.CONFIRM_SWAP)
        return self._summary(intent)

    def _destination_text(self, state: ConversationState, text: str) -> Reply:
        intent = self._intent_at(state, Step.ENTER_DESTINATION)
        intent.destination_address = validate_address(intent.to_asset.family, text)
        state.transition(Step.CONFIRM_SWAP)
        return self._summary(intent)

    @staticmethod
    def _destination_prompt(intent: SwapIntent) -> Reply:
        return Reply(
            f"Enter the {intent.to_asset.family.label} address that should receive "
            f"the {intent.to_asset.symbol}:",
            [[CANCEL_BUTTON]],
        )

    @staticmethod
    def _intent_at(state: ConversationState, step: ConversationStep) -> SwapIntent:
        if state.step != step or state.swap_intent is None:
            raise IllegalTransition(state.step.value, step.value)
        return state.swap_intent

    @staticmethod
    def _summary(intent: SwapIntent) -> Reply:
        network = NETWORKS[intent.selected_network]
        return Reply(
            "📋 Swap summary\n\n"
            f"Network: {network.name}\n"
            f"From: {intent.send_amount} {_asset_label(intent.from_asset)}\n"
            f"To: {_asset_label(intent.to_asset)}\n"
            f"Destination: {intent.destination_address}\n\n"
            "Confirm to request a quote and submit the swap.",
            [[Button("✅ Confirm", "confirm"), CANCEL_BUTTON]],
        )

    # ======================
    # Confirmation
    # ======================

    def _wallet_selection(self, state: ConversationState) -> dict[ChainFamily, WalletRecord]:
        selection = {}
        for family in ChainFamily:
            wallet = state.wallet_for_family(family)
            if wallet is not None:
                selection[family] = wallet
        return selection

    async def _is_stale(self, user_id: int, nonce: str) -> bool:
        current = await self.sessions.get(user_id)
        intent = current.swap_intent if current else None
        return intent is None or intent.nonce != nonce

    async def _confirm(self, user_id: int, state: ConversationState, notify: Optional[Notify]) -> Optional[Reply]:
        intent = self._intent_at(state, Step.CONFIRM_SWAP)
        if not intent.is_submittable():
            raise IllegalTransition(state.step.value, Step.CONFIRM_SWAP.value)
        await self._require_auth(user_id, state)

        nonce = intent.renew_nonce()
        wallets = self._wallet_selection(state)
        amount = parse_amount(intent.send_amount)

        try:
            quote = await self.orchestrator.get_quote(
                intent.selected_network, wallets, intent.from_asset, intent.to_asset, amount
            )
            if await self._is_stale(user_id, nonce):
                logger.info(f"Discarding quote for cancelled swap of user {user_id}")
                return None

            strategy_id, receive = quote.first_strategy()
            logger.info(f"User {user_id} quote: strategy {strategy_id}, receive {receive}")
            if notify is not None:
                await notify(
                    Reply(
                        f"💱 Quote: you will receive about "
                        f"{intent.to_asset.from_base_units(receive)} {intent.to_asset.symbol}.\n"
                        "Submitting your swap..."
                    )
                )

            result = await self.orchestrator.submit(
                intent.selected_network,
                wallets,
                quote,
                intent.destination_address,
                nonce,
                user_id=user_id,
            )
        except AmountOutOfRange as e:
            if await self._is_stale(user_id, nonce):
                return None
            intent.send_amount = None
            intent.destination_address = None
            state.transition(Step.SWAP_AMOUNT)
            return Reply(f"❌ {e}\n\nEnter a new amount of {intent.from_asset.symbol}:", [[CANCEL_BUTTON]])
        except (NotFoundError, AuthenticationError, EngineUnavailable, PersistenceError) as e:
            if await self._is_stale(user_id, nonce):
                return None
            state.reset()
            return Reply(f"❌ {e}", main_menu().buttons)
        except CrossSwapError as e:
            if await self._is_stale(user_id, nonce):
                return None
            state.transition(Step.CONFIRM_SWAP)
            return Reply(f"❌ {e}", [[Button("🔁 Try again", "confirm"), CANCEL_BUTTON]])

        if await self._is_stale(user_id, nonce):
            logger.info(f"Order {result.order_id} finished after user {user_id} cancelled")
            return None

        state.reset()
        return self._result_reply(result)

    @staticmethod
    def _result_reply(result: SwapResult) -> Reply:
        sent = f"{result.from_asset.from_base_units(result.send_amount)} {result.from_asset.symbol}"
        received = f"{result.to_asset.from_base_units(result.receive_amount)} {result.to_asset.symbol}"
        if result.awaiting_funding:
            text = (
                "✅ Order created!\n\n"
                f"Order ID: {result.order_id}\n"
                f"Send exactly {sent} to this address:\n{result.funding_address}\n\n"
                f"You will receive about {received} once the deposit confirms."
            )
        else:
            text = (
                "✅ Swap initiated!\n\n"
                f"Order ID: {result.order_id}\n"
                f"Sent: {sent}\n"
                f"Expected: {received}\n"
                f"Transaction: {result.tx_hash}\n\n"
                "You will be notified when the swap completes."
            )
        return Reply(text, main_menu().buttons)
