"""Tests for conversation steps and the transition table."""

from decimal import Decimal

import pytest

from crossswap.chains import ChainFamily, get_asset
from crossswap.errors import IllegalTransition
from crossswap.session.state import (
    TRANSITIONS,
    ConversationState,
    ConversationStep,
    SwapIntent,
    parse_amount,
)
from crossswap.wallets.base import WalletRecord

Step = ConversationStep


def make_wallet(family: ChainFamily, address: str) -> WalletRecord:
    return WalletRecord(address=address, chain_family=family, private_key="0x" + "11" * 32)


def state_with_wallets() -> ConversationState:
    state = ConversationState()
    state.add_wallets(
        [
            make_wallet(ChainFamily.EVM, "0x" + "ab" * 20),
            make_wallet(ChainFamily.BITCOIN, "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx"),
        ]
    )
    return state


def state_at_confirm() -> ConversationState:
    state = state_with_wallets()
    state.transition(Step.SELECT_NETWORK)
    intent = state.swap_intent
    intent.selected_network = "ethereum_sepolia"
    state.transition(Step.SELECT_FROM_ASSET)
    intent.from_asset = get_asset("ethereum_sepolia:ETH")
    state.transition(Step.SELECT_TO_ASSET)
    intent.to_asset = get_asset("bitcoin_testnet:BTC")
    state.transition(Step.SWAP_AMOUNT)
    intent.send_amount = "0.01"
    state.transition(Step.ENTER_DESTINATION)
    intent.destination_address = "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx"
    state.transition(Step.CONFIRM_SWAP)
    return state


class TestTransitionTable:
    """Tests for the table itself."""

    def test_every_step_has_entry(self):
        assert set(TRANSITIONS) == set(ConversationStep)

    def test_initial_reachable_from_everywhere(self):
        """Test that every step can go back to INITIAL."""
        assert all(Step.INITIAL in targets for targets in TRANSITIONS.values())

    def test_confirm_only_from_destination_steps(self):
        """Test that CONFIRM_SWAP is entered only once a destination can be set."""
        sources = {step for step, targets in TRANSITIONS.items() if Step.CONFIRM_SWAP in targets}

        assert sources == {Step.CHOOSE_DESTINATION_METHOD, Step.ENTER_DESTINATION, Step.CONFIRM_SWAP}


class TestConversationState:
    """Tests for ConversationState.transition."""

    def test_happy_path(self):
        state = state_at_confirm()

        assert state.step == Step.CONFIRM_SWAP
        assert state.swap_intent.is_submittable()

    def test_illegal_jump(self):
        """Test that skipping steps is rejected."""
        state = state_with_wallets()

        with pytest.raises(IllegalTransition):
            state.transition(Step.SWAP_AMOUNT)
        assert state.step == Step.INITIAL

    def test_network_requires_wallets(self):
        """Test that a swap cannot start without a wallet."""
        with pytest.raises(IllegalTransition):
            ConversationState().transition(Step.SELECT_NETWORK)

    def test_select_network_starts_fresh_intent(self):
        state = state_with_wallets()
        state.transition(Step.SELECT_NETWORK)

        assert state.swap_intent is not None
        assert state.swap_intent.missing_fields() == [
            "selected_network",
            "from_asset",
            "to_asset",
            "send_amount",
            "destination_address",
        ]

    @pytest.mark.parametrize(
        "field",
        ["selected_network", "from_asset", "to_asset", "send_amount", "destination_address"],
    )
    def test_confirm_never_entered_with_missing_field(self, field):
        """Test that CONFIRM_SWAP is refused whenever any intent field is missing."""
        state = state_at_confirm()
        state.step = Step.ENTER_DESTINATION
        setattr(state.swap_intent, field, None)

        with pytest.raises(IllegalTransition):
            state.transition(Step.CONFIRM_SWAP)
        assert state.step == Step.ENTER_DESTINATION

    def test_confirm_refused_for_out_of_band_amount(self):
        """Test that an amount outside the asset band never reaches CONFIRM_SWAP."""
        state = state_at_confirm()
        state.step = Step.ENTER_DESTINATION
        state.swap_intent.send_amount = "5"

        with pytest.raises(IllegalTransition):
            state.transition(Step.CONFIRM_SWAP)

    def test_reset_keeps_wallets(self):
        """Test that INITIAL clears the intent but not the wallets."""
        state = state_at_confirm()
        state.reset()

        assert state.step == Step.INITIAL
        assert state.swap_intent is None
        assert state.scratch is None
        assert len(state.wallets) == 2

    def test_import_creates_scratch(self):
        state = ConversationState()
        state.transition(Step.WALLET_IMPORT)

        assert state.scratch is not None

    def test_wallet_imported_clears_scratch(self):
        state = ConversationState()
        state.transition(Step.WALLET_IMPORT)
        state.scratch.pending_starknet_key = "0x1"
        state.transition(Step.WALLET_IMPORTED)

        assert state.scratch is None

    def test_wallet_for_family_prefers_active(self):
        """Test that the active wallet wins over other wallets of its family."""
        state = ConversationState()
        first = make_wallet(ChainFamily.EVM, "0x" + "01" * 20)
        second = make_wallet(ChainFamily.EVM, "0x" + "02" * 20)
        state.add_wallets([first, second])
        state.active_wallet = second.address

        assert state.wallet_for_family(ChainFamily.EVM) is second
        assert state.wallet_for_family(ChainFamily.STARKNET) is None


class TestSwapIntent:
    """Tests for SwapIntent."""

    def test_renew_nonce(self):
        intent = SwapIntent()
        old = intent.nonce

        assert intent.renew_nonce() != old
        assert intent.nonce != old

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("0.01", Decimal("0.01")),
            (" 1 ", Decimal("1")),
            ("0", None),
            ("-1", None),
            ("abc", None),
            ("NaN", None),
            ("Infinity", None),
            ("", None),
        ],
    )
    def test_parse_amount(self, text, expected):
        assert parse_amount(text) == expected
