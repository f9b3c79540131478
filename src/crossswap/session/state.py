"""Conversation state for one user.

The step a user is on and the shape of their swap intent are kept
consistent by `TRANSITIONS`: a step can only be entered from the steps
listed for it, and only once the fields it depends on are set.
"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterable, Optional

from crossswap.chains import Asset, ChainFamily
from crossswap.errors import IllegalTransition
from crossswap.wallets.base import WalletRecord

logger = logging.getLogger(__name__)


class ConversationStep(str, Enum):
    """Where a user is in the conversation."""

    INITIAL = "initial"
    WALLET_CREATE = "wallet_create"
    WALLET_IMPORT = "wallet_import"
    WALLET_IMPORTED = "wallet_imported"
    SELECT_NETWORK = "select_network"
    SELECT_FROM_ASSET = "select_from_asset"
    SELECT_TO_ASSET = "select_to_asset"
    SWAP_AMOUNT = "swap_amount"
    CHOOSE_DESTINATION_METHOD = "choose_destination_method"
    ENTER_DESTINATION = "enter_destination"
    CONFIRM_SWAP = "confirm_swap"


S = ConversationStep

# step -> steps it may move to. INITIAL is added to every entry below.
TRANSITIONS: dict[ConversationStep, frozenset[ConversationStep]] = {
    S.INITIAL: frozenset({S.WALLET_CREATE, S.WALLET_IMPORT, S.SELECT_NETWORK}),
    S.WALLET_CREATE: frozenset({S.WALLET_IMPORTED}),
    S.WALLET_IMPORT: frozenset({S.WALLET_IMPORT, S.WALLET_IMPORTED}),
    S.WALLET_IMPORTED: frozenset({S.WALLET_CREATE, S.WALLET_IMPORT, S.SELECT_NETWORK}),
    S.SELECT_NETWORK: frozenset({S.SELECT_FROM_ASSET}),
    S.SELECT_FROM_ASSET: frozenset({S.SELECT_TO_ASSET}),
    S.SELECT_TO_ASSET: frozenset({S.SWAP_AMOUNT}),
    S.SWAP_AMOUNT: frozenset({S.SWAP_AMOUNT, S.CHOOSE_DESTINATION_METHOD, S.ENTER_DESTINATION}),
    S.CHOOSE_DESTINATION_METHOD: frozenset({S.ENTER_DESTINATION, S.CONFIRM_SWAP}),
    S.ENTER_DESTINATION: frozenset({S.ENTER_DESTINATION, S.CONFIRM_SWAP}),
    S.CONFIRM_SWAP: frozenset({S.CONFIRM_SWAP, S.SWAP_AMOUNT}),
}
TRANSITIONS = {step: targets | {S.INITIAL} for step, targets in TRANSITIONS.items()}


def _validate_transitions() -> None:
    """Every step needs an entry, and every step must be reachable from INITIAL."""
    missing = set(ConversationStep) - set(TRANSITIONS)
    if missing:
        raise RuntimeError(f"Steps without transitions: {sorted(s.value for s in missing)}")

    reachable = {S.INITIAL}
    frontier = [S.INITIAL]
    while frontier:
        for target in TRANSITIONS[frontier.pop()]:
            if target not in reachable:
                reachable.add(target)
                frontier.append(target)
    unreachable = set(ConversationStep) - reachable
    if unreachable:
        raise RuntimeError(f"Unreachable steps: {sorted(s.value for s in unreachable)}")


_validate_transitions()


def parse_amount(text: str) -> Optional[Decimal]:
    """Parse a positive decimal amount, or return None."""
    try:
        amount = Decimal(text.strip())
    except (InvalidOperation, AttributeError):
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


@dataclass
class SwapIntent:
    """What the user wants to swap, filled in step by step."""

    selected_network: Optional[str] = None
    from_asset: Optional[Asset] = None
    to_asset: Optional[Asset] = None
    send_amount: Optional[str] = None
    destination_address: Optional[str] = None
    nonce: str = field(default_factory=lambda: uuid.uuid4().hex)

    def renew_nonce(self) -> str:
        self.nonce = uuid.uuid4().hex
        return self.nonce

    def missing_fields(self) -> list[str]:
        names = ("selected_network", "from_asset", "to_asset", "send_amount", "destination_address")
        return [name for name in names if not getattr(self, name)]

    def amount_in_range(self) -> bool:
        if self.from_asset is None or self.send_amount is None:
            return False
        amount = parse_amount(self.send_amount)
        if amount is None:
            return False
        base = self.from_asset.to_base_units(amount)
        return self.from_asset.min_amount <= base <= self.from_asset.max_amount

    def is_submittable(self) -> bool:
        return not self.missing_fields() and self.amount_in_range()


@dataclass
class Scratch:
    """Transient input collected during wallet import."""

    import_type: Optional[str] = None  # private_key | mnemonic
    import_chain: Optional[ChainFamily] = None
    pending_starknet_key: Optional[str] = None


# Fields an intent must have before a step can be entered
_REQUIRED: dict[ConversationStep, tuple[str, ...]] = {
    S.SELECT_FROM_ASSET: ("selected_network",),
    S.SELECT_TO_ASSET: ("selected_network", "from_asset"),
    S.SWAP_AMOUNT: ("selected_network", "from_asset", "to_asset"),
    S.CHOOSE_DESTINATION_METHOD: ("selected_network", "from_asset", "to_asset", "send_amount"),
    S.ENTER_DESTINATION: ("selected_network", "from_asset", "to_asset", "send_amount"),
}


@dataclass
class ConversationState:
    """Everything the bot remembers about one user between turns."""

    step: ConversationStep = ConversationStep.INITIAL
    wallets: dict[str, WalletRecord] = field(default_factory=dict)
    active_wallet: Optional[str] = None
    swap_intent: Optional[SwapIntent] = None
    scratch: Optional[Scratch] = None

    def transition(self, target: ConversationStep) -> None:
        """Move to another step.

        Entering INITIAL clears the swap intent and scratch. Entering
        SELECT_NETWORK starts a fresh swap intent.

        Raises:
            IllegalTransition: If the table forbids the move, or the
                target step's prerequisites are missing
        """
        if target not in TRANSITIONS[self.step]:
            raise IllegalTransition(self.step.value, target.value)

        if target == S.SELECT_NETWORK and not self.wallets:
            raise IllegalTransition(self.step.value, target.value)

        required = _REQUIRED.get(target, ())
        if required:
            intent = self.swap_intent
            if intent is None or any(not getattr(intent, name) for name in required):
                raise IllegalTransition(self.step.value, target.value)

        if target == S.CONFIRM_SWAP and (self.swap_intent is None or not self.swap_intent.is_submittable()):
            raise IllegalTransition(self.step.value, target.value)

        logger.debug(f"Conversation step {self.step.value} -> {target.value}")

        if target == S.INITIAL:
            self.swap_intent = None
            self.scratch = None
        elif target == S.SELECT_NETWORK:
            self.swap_intent = SwapIntent()
            self.scratch = None
        elif target == S.WALLET_IMPORTED:
            self.scratch = None
        elif target in (S.WALLET_CREATE, S.WALLET_IMPORT) and self.scratch is None:
            self.scratch = Scratch()

        self.step = target

    def reset(self) -> None:
        """Back to INITIAL from anywhere. Wallets are kept."""
        self.transition(ConversationStep.INITIAL)

    def add_wallets(self, records: Iterable[WalletRecord]) -> None:
        for record in records:
            self.wallets[record.address] = record
            if self.active_wallet is None:
                self.active_wallet = record.address

    def wallet_for_family(self, family: ChainFamily) -> Optional[WalletRecord]:
        """Session wallet of a family, preferring the active one."""
        active = self.wallets.get(self.active_wallet) if self.active_wallet else None
        if active is not None and active.chain_family == family:
            return active
        for wallet in self.wallets.values():
            if wallet.chain_family == family:
                return wallet
        return None
