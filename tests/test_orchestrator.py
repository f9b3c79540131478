"""Tests for the swap orchestrator and engine error translation."""

import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio

from crossswap.chains import ChainFamily, get_asset
from crossswap.errors import (
    AmountOutOfRange,
    EngineUnavailable,
    ExternalEngineError,
    NotFoundError,
)
from crossswap.swap.engine import Quote
from crossswap.swap.orchestrator import (
    AWAITING_FUNDING,
    EXACT_OUTPUT_GUIDANCE,
    GENERIC_ENGINE_ERROR,
    INITIATED,
    SwapOrchestrator,
    translate_engine_error,
)

from tests.conftest import FakeSwapEngine

NETWORK = "arbitrum_sepolia"
DESTINATION_BTC = "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx"
DESTINATION_EVM = "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"


@pytest_asyncio.fixture
async def wallets(custody):
    bundle = await custody.create(list(ChainFamily))
    return {w.chain_family: w for w in bundle.wallets}


class TestTranslateEngineError:
    """Tests for translate_engine_error."""

    def test_range_error_with_bounds(self):
        """Test that engine bounds are converted to display units of the source asset."""
        btc = get_asset("bitcoin_testnet:BTC")
        error = ExternalEngineError(
            "amount outside acceptable range, should be within the range of 50000 to 10000000"
        )

        translated = translate_engine_error(error, btc)

        assert isinstance(translated, AmountOutOfRange)
        assert str(translated) == "Amount must be between 0.0005 and 0.1 BTC."
        assert translated.min_amount == Decimal("0.0005")
        assert translated.max_amount == Decimal("0.1")

    def test_range_error_without_bounds_uses_asset_band(self):
        eth = get_asset("ethereum_sepolia:ETH")

        translated = translate_engine_error(ExternalEngineError("Amount outside acceptable range"), eth)

        assert str(translated) == "Amount must be between 0.0005 and 0.1 ETH."

    def test_exact_output_error(self):
        eth = get_asset("ethereum_sepolia:ETH")

        translated = translate_engine_error(ExternalEngineError("exact output quote error: no liquidity"), eth)

        assert str(translated) == EXACT_OUTPUT_GUIDANCE

    def test_other_errors_are_generic(self):
        """Test that raw engine text never reaches the user."""
        eth = get_asset("ethereum_sepolia:ETH")

        translated = translate_engine_error(RuntimeError("stack trace with secrets"), eth)

        assert isinstance(translated, ExternalEngineError)
        assert str(translated) == GENERIC_ENGINE_ERROR

    def test_unavailable_passes_through(self):
        error = EngineUnavailable("The swap service is unreachable.")

        assert translate_engine_error(error, get_asset("ethereum_sepolia:ETH")) is error


class TestSwapOrchestrator:
    """Tests for SwapOrchestrator."""

    @pytest.mark.asyncio
    async def test_quote_in_base_units(self, orchestrator, fake_engine, wallets):
        eth = get_asset("ethereum_sepolia:ETH")
        btc = get_asset("bitcoin_testnet:BTC")

        quote = await orchestrator.get_quote(NETWORK, wallets, eth, btc, Decimal("0.01"))

        assert fake_engine.quotes == [(eth, btc, 10**16)]
        assert quote.first_strategy() == ("strategy-1", 25_000)

    @pytest.mark.asyncio
    async def test_quote_error_translated(self, orchestrator, fake_engine, wallets):
        fake_engine.quote_error = ExternalEngineError(
            "amount outside acceptable range, should be within the range of 500000000000000 to 100000000000000000"
        )

        with pytest.raises(AmountOutOfRange) as exc_info:
            await orchestrator.get_quote(
                NETWORK, wallets, get_asset("ethereum_sepolia:ETH"), get_asset("bitcoin_testnet:BTC"), Decimal("1")
            )
        assert str(exc_info.value) == "Amount must be between 0.0005 and 0.1 ETH."

    @pytest.mark.asyncio
    async def test_empty_quote_is_an_engine_error(self, orchestrator, fake_engine, wallets):
        async def no_strategies(from_asset, to_asset, amount, exact_output=False):
            return Quote(from_asset, to_asset, amount, {})

        fake_engine.get_quote = no_strategies

        with pytest.raises(ExternalEngineError):
            await orchestrator.get_quote(
                NETWORK, wallets, get_asset("ethereum_sepolia:ETH"), get_asset("bitcoin_testnet:BTC"), Decimal("0.01")
            )

    @pytest.mark.asyncio
    async def test_evm_source_initiates(self, orchestrator, fake_engine, correlator, wallets):
        """Test that an EVM source order is initiated through the account relay."""
        eth = get_asset("ethereum_sepolia:ETH")
        btc = get_asset("bitcoin_testnet:BTC")
        quote = await orchestrator.get_quote(NETWORK, wallets, eth, btc, Decimal("0.01"))

        result = await orchestrator.submit(NETWORK, wallets, quote, DESTINATION_BTC, "nonce-1", user_id=42)

        assert result.status == INITIATED
        assert result.tx_hash == "0xinitiated"
        assert result.funding_address is None
        assert fake_engine.initiated == [("account", result.order_id)]

        request = fake_engine.requests[0]
        assert request.initiator_source_address == wallets[ChainFamily.EVM].address
        assert request.nonce == "nonce-1"
        assert request.strategy_id == "strategy-1"
        assert request.additional_data == {
            "destination_address": DESTINATION_BTC,
            "bitcoin_optional_recipient": DESTINATION_BTC,
        }
        assert await correlator.lookup(result.order_id) == 42

    @pytest.mark.asyncio
    async def test_bitcoin_source_awaits_funding(self, orchestrator, fake_engine, wallets):
        """Test that a Bitcoin source returns a funding address and initiates nothing."""
        btc = get_asset("bitcoin_testnet:BTC")
        eth = get_asset("arbitrum_sepolia:ETH")
        quote = await orchestrator.get_quote(NETWORK, wallets, btc, eth, Decimal("0.001"))

        result = await orchestrator.submit(NETWORK, wallets, quote, DESTINATION_EVM, "nonce-2", user_id=42)

        assert result.status == AWAITING_FUNDING
        assert result.awaiting_funding
        assert result.funding_address == "tb1pfundinghtlc"
        assert result.tx_hash is None
        assert fake_engine.initiated == []

        request = fake_engine.requests[0]
        btc_wallet = wallets[ChainFamily.BITCOIN]
        assert request.initiator_source_address == btc_wallet.client.x_only_public_key
        assert len(request.initiator_source_address) == 64
        assert request.additional_data["bitcoin_optional_recipient"] == btc_wallet.address

    @pytest.mark.asyncio
    async def test_starknet_source_uses_contract_relay(self, orchestrator, fake_engine, wallets):
        stark = get_asset("starknet_sepolia:ETH")
        eth = get_asset("ethereum_sepolia:ETH")
        quote = await orchestrator.get_quote(NETWORK, wallets, stark, eth, Decimal("0.01"))

        result = await orchestrator.submit(NETWORK, wallets, quote, DESTINATION_EVM, "nonce-3", user_id=42)

        assert result.tx_hash == "0xstarknetinitiated"
        assert fake_engine.initiated == [("contract", result.order_id)]

    @pytest.mark.asyncio
    async def test_missing_source_wallet(self, orchestrator, fake_engine, wallets):
        """Test that submitting without a source-family wallet fails before any order."""
        btc = get_asset("bitcoin_testnet:BTC")
        eth = get_asset("arbitrum_sepolia:ETH")
        quote = await orchestrator.get_quote(NETWORK, wallets, btc, eth, Decimal("0.001"))
        del wallets[ChainFamily.BITCOIN]

        with pytest.raises(NotFoundError):
            await orchestrator.submit(NETWORK, wallets, quote, DESTINATION_EVM, "nonce-4", user_id=42)
        assert fake_engine.requests == []

    @pytest.mark.asyncio
    async def test_submit_error_translated(self, orchestrator, fake_engine, correlator, wallets):
        eth = get_asset("ethereum_sepolia:ETH")
        btc = get_asset("bitcoin_testnet:BTC")
        quote = await orchestrator.get_quote(NETWORK, wallets, eth, btc, Decimal("0.01"))
        fake_engine.submit_error = ExternalEngineError("internal: solver 17 rejected attestation")

        with pytest.raises(ExternalEngineError) as exc_info:
            await orchestrator.submit(NETWORK, wallets, quote, DESTINATION_BTC, "nonce-5", user_id=42)

        assert str(exc_info.value) == GENERIC_ENGINE_ERROR
        assert await correlator.lookup("order-1") is None

    @pytest.mark.asyncio
    async def test_settlement_started(self, orchestrator, fake_engine, wallets):
        """Test that the settlement loop is started after submission."""
        eth = get_asset("ethereum_sepolia:ETH")
        btc = get_asset("bitcoin_testnet:BTC")
        quote = await orchestrator.get_quote(NETWORK, wallets, eth, btc, Decimal("0.01"))

        await orchestrator.submit(NETWORK, wallets, quote, DESTINATION_BTC, "nonce-6", user_id=42)
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert fake_engine.settlement_runs == 1
        assert orchestrator.running_settlements == 0

    @pytest.mark.asyncio
    async def test_engine_cached_per_wallet_selection(self, correlator, wallets):
        """Test that one engine is built per network and wallet selection."""
        built = []

        def factory(network, selection):
            engine = FakeSwapEngine()
            built.append((network, engine))
            return engine

        orchestrator = SwapOrchestrator(correlator, engine_factory=factory)

        first = orchestrator.engine_for(NETWORK, wallets)
        again = orchestrator.engine_for(NETWORK, dict(wallets))
        other = orchestrator.engine_for("ethereum_sepolia", wallets)

        assert first is again
        assert other is not first
        assert len(built) == 2

    @pytest.mark.asyncio
    async def test_idle_engines_evicted_and_closed(self, correlator, wallets):
        """Test that past the limit the least recently used idle engine is closed."""
        built = []

        def factory(network, selection):
            engine = FakeSwapEngine()
            built.append(engine)
            return engine

        orchestrator = SwapOrchestrator(correlator, engine_factory=factory, max_engines=2)
        evm_only = {ChainFamily.EVM: wallets[ChainFamily.EVM]}

        first = orchestrator.engine_for("ethereum_sepolia", wallets)
        second = orchestrator.engine_for(NETWORK, wallets)
        assert orchestrator.engine_for("ethereum_sepolia", wallets) is first
        third = orchestrator.engine_for(NETWORK, evm_only)
        await asyncio.sleep(0)

        assert second.closed
        assert not first.closed
        assert not third.closed
        assert orchestrator.engine_for("ethereum_sepolia", wallets) is first
        assert orchestrator.engine_for(NETWORK, wallets) is not second
        assert len(built) == 4

    @pytest.mark.asyncio
    async def test_engine_with_pending_orders_kept(self, correlator, wallets):
        """Test that an engine still settling orders is never evicted."""
        orchestrator = SwapOrchestrator(
            correlator, engine_factory=lambda network, selection: FakeSwapEngine(), max_engines=1
        )

        busy = orchestrator.engine_for("ethereum_sepolia", wallets)
        busy.pending.append("order-1")
        idle = orchestrator.engine_for(NETWORK, wallets)
        orchestrator.engine_for(NETWORK, {ChainFamily.EVM: wallets[ChainFamily.EVM]})
        await asyncio.sleep(0)

        assert not busy.closed
        assert idle.closed
        assert orchestrator.engine_for("ethereum_sepolia", wallets) is busy

    @pytest.mark.asyncio
    async def test_subscriptions_reach_new_engines(self, correlator, wallets):
        events = []
        engine = FakeSwapEngine()
        orchestrator = SwapOrchestrator(correlator, engine_factory=lambda network, selection: engine)
        orchestrator.subscribe("log", lambda order_id, message: events.append((order_id, message)))

        orchestrator.engine_for(NETWORK, wallets)
        await engine._emit("log", "order-1", "hello")

        assert events == [("order-1", "hello")]

    @pytest.mark.asyncio
    async def test_aclose(self, orchestrator, fake_engine, wallets):
        orchestrator.engine_for(NETWORK, wallets)

        await orchestrator.aclose()

        assert orchestrator.running_settlements == 0
