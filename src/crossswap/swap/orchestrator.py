"""Swap orchestrator.

Turns a complete swap intent into an order on the swap engine, then takes
the settlement path that matches the source chain family:

- bitcoin: the engine hands back a funding address; the user sends BTC
  to it from their own wallet and nothing is moved here.
- evm: the HTLC is initiated immediately through the account relay.
- starknet: the HTLC is initiated immediately through the contract
  account relay.

After submission the engine's settlement loop runs as a detached task
that redeems the destination side once the solver has locked funds.
"""

import asyncio
import logging
import re
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Mapping, NoReturn, Optional

from crossswap.chains import Asset, ChainFamily
from crossswap.config import get_settings
from crossswap.errors import (
    AmountOutOfRange,
    CrossSwapError,
    EngineUnavailable,
    ExternalEngineError,
    NotFoundError,
)
from crossswap.notifications.correlator import OrderCorrelator
from crossswap.swap.engine import EventHandler, Order, Quote, SwapEngine, SwapRequest
from crossswap.swap.garden import GardenEngine
from crossswap.wallets.base import WalletRecord
from crossswap.wallets.btc import BitcoinWalletClient

logger = logging.getLogger(__name__)

AWAITING_FUNDING = "awaiting_funding"
INITIATED = "initiated"

# idle engines beyond this are closed, least recently used first
MAX_ENGINES = 64

GENERIC_ENGINE_ERROR = "The swap service could not process this request. Please try again later."
EXACT_OUTPUT_GUIDANCE = (
    "The swap service could not price this amount. "
    "Try a slightly different amount or another asset pair."
)

_RANGE_MARKERS = ("amount outside acceptable range", "within the range of")
_RANGE_RE = re.compile(r"range\s+of\s+(\d+)\s+to\s+(\d+)", re.IGNORECASE)
_MIN_MAX_RE = re.compile(r"min(?:imum)?\D{0,10}(\d+).*?max(?:imum)?\D{0,10}(\d+)", re.IGNORECASE)

SessionWallets = Mapping[ChainFamily, WalletRecord]
EngineFactory = Callable[[str, SessionWallets], SwapEngine]


@dataclass
class SwapResult:
    """Outcome of a submitted swap."""

    order_id: str
    status: str
    from_asset: Asset
    to_asset: Asset
    send_amount: int
    receive_amount: int
    strategy_id: str
    funding_address: Optional[str] = None
    tx_hash: Optional[str] = None

    @property
    def awaiting_funding(self) -> bool:
        return self.status == AWAITING_FUNDING


def garden_engine_factory(settings=None) -> EngineFactory:
    """Factory that builds a Garden engine bound to the user's source wallets."""
    settings = settings or get_settings()

    def factory(network: str, wallets: SessionWallets) -> SwapEngine:
        evm = wallets.get(ChainFamily.EVM)
        starknet = wallets.get(ChainFamily.STARKNET)
        return GardenEngine.from_settings(
            settings,
            evm_client=evm.client if evm else None,
            starknet_client=starknet.client if starknet else None,
        )

    return factory


def translate_engine_error(error: Exception, asset: Asset, engine: Optional[SwapEngine] = None) -> CrossSwapError:
    """Turn a raw engine failure into a short user-facing error.

    Range errors carry the bounds converted to display units of `asset`.
    """
    if isinstance(error, (EngineUnavailable, AmountOutOfRange)):
        return error

    message = str(error)
    lowered = message.lower()

    if any(marker in lowered for marker in _RANGE_MARKERS):
        match = _RANGE_RE.search(message) or _MIN_MAX_RE.search(message)
        if match:
            raw_min, raw_max = int(match.group(1)), int(match.group(2))
        elif engine is not None:
            raw_min, raw_max = engine.amount_bounds(asset)
        else:
            raw_min, raw_max = asset.min_amount, asset.max_amount
        min_amount = asset.from_base_units(raw_min)
        max_amount = asset.from_base_units(raw_max)
        return AmountOutOfRange(
            f"Amount must be between {min_amount} and {max_amount} {asset.symbol}.",
            min_amount,
            max_amount,
        )

    if "exact output quote error" in lowered:
        return ExternalEngineError(EXACT_OUTPUT_GUIDANCE)

    return ExternalEngineError(GENERIC_ENGINE_ERROR)


class SwapOrchestrator:
    """Owns one engine per (network, wallet selection) and runs swaps on it."""

    def __init__(
        self,
        correlator: OrderCorrelator,
        engine_factory: Optional[EngineFactory] = None,
        max_engines: int = MAX_ENGINES,
    ):
        self.correlator = correlator
        self.max_engines = max_engines
        self._engine_factory = engine_factory or garden_engine_factory()
        self._engines: OrderedDict[tuple[str, ...], SwapEngine] = OrderedDict()
        self._subscriptions: list[tuple[str, EventHandler]] = []
        # settlement loop -> engine it runs on
        self._tasks: dict[asyncio.Task, SwapEngine] = {}
        self._closing: set[asyncio.Task] = set()

    def subscribe(self, event: str, handler: EventHandler) -> None:
        """Attach a handler to every engine, current and future."""
        self._subscriptions.append((event, handler))
        for engine in self._engines.values():
            engine.on(event, handler)

    def engine_for(self, network: str, wallets: SessionWallets) -> SwapEngine:
        """Engine for a network and the user's current wallet selection."""
        key = (network,) + tuple(
            f"{family.value}:{wallets[family].address}" for family in sorted(wallets, key=lambda f: f.value)
        )
        engine = self._engines.get(key)
        if engine is not None:
            self._engines.move_to_end(key)
            return engine

        engine = self._engine_factory(network, wallets)
        for event, handler in self._subscriptions:
            engine.on(event, handler)
        self._engines[key] = engine
        logger.info(f"Created swap engine for {network} ({len(wallets)} wallet(s))")
        self._evict_idle_engines()
        return engine

    def _is_busy(self, engine: SwapEngine) -> bool:
        return bool(engine.pending_orders) or engine in self._tasks.values()

    def _evict_idle_engines(self) -> None:
        """Close least recently used engines with nothing left to settle."""
        excess = len(self._engines) - self.max_engines
        # the newest engine is about to be used, never evict it
        for key in list(self._engines)[:-1]:
            if excess <= 0:
                break
            engine = self._engines[key]
            if self._is_busy(engine):
                continue
            del self._engines[key]
            excess -= 1
            task = asyncio.create_task(engine.aclose())
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)
            logger.info(f"Closed idle swap engine for {key[0]}")
        if excess > 0:
            logger.warning(f"{len(self._engines)} swap engines open, all with pending orders")

    async def get_quote(
        self,
        network: str,
        wallets: SessionWallets,
        from_asset: Asset,
        to_asset: Asset,
        amount: Decimal,
    ) -> Quote:
        """Quote a swap of `amount` (display units) of `from_asset`.

        Raises:
            AmountOutOfRange, EngineUnavailable, ExternalEngineError
        """
        engine = self.engine_for(network, wallets)
        try:
            quote = await engine.get_quote(from_asset, to_asset, from_asset.to_base_units(amount))
            quote.first_strategy()
        except Exception as e:
            logger.error(f"Quote failed for {from_asset.key} -> {to_asset.key} ({amount}): {e}", exc_info=True)
            self._raise_translated(e, from_asset, engine)
        return quote

    async def submit(
        self,
        network: str,
        wallets: SessionWallets,
        quote: Quote,
        destination_address: str,
        nonce: str,
        user_id: Optional[int] = None,
    ) -> SwapResult:
        """Create the order and take the source chain's settlement path.

        Raises:
            NotFoundError: No session wallet for the source chain family
            AmountOutOfRange, EngineUnavailable, ExternalEngineError
        """
        from_asset, to_asset = quote.from_asset, quote.to_asset
        source_wallet = wallets.get(from_asset.family)
        if source_wallet is None:
            raise NotFoundError(f"You need a {from_asset.family.label} wallet to send {from_asset.symbol}.")

        strategy_id, receive_amount = quote.first_strategy()
        request = SwapRequest(
            from_asset=from_asset,
            to_asset=to_asset,
            send_amount=quote.send_amount,
            receive_amount=receive_amount,
            nonce=nonce,
            strategy_id=strategy_id,
            initiator_source_address=self._initiator_address(source_wallet),
            additional_data=self._additional_data(source_wallet, from_asset, to_asset, destination_address),
        )

        engine = self.engine_for(network, wallets)
        try:
            order = await engine.submit_swap(request)
        except Exception as e:
            logger.error(f"Order submission failed for {from_asset.key} -> {to_asset.key}: {e}", exc_info=True)
            self._raise_translated(e, from_asset, engine)

        logger.info(f"Order {order.order_id} created: {from_asset.key} -> {to_asset.key}")
        await self.correlator.store(order.order_id, user_id)

        result = SwapResult(
            order_id=order.order_id,
            status=AWAITING_FUNDING,
            from_asset=from_asset,
            to_asset=to_asset,
            send_amount=request.send_amount,
            receive_amount=receive_amount,
            strategy_id=strategy_id,
        )

        if from_asset.family == ChainFamily.BITCOIN:
            result.funding_address = order.source_swap_id
            logger.info(f"Order {order.order_id} awaiting funding at {order.source_swap_id}")
        else:
            result.tx_hash = await self._initiate(engine, order, from_asset)
            result.status = INITIATED
            logger.info(f"Order {order.order_id} initiated, txHash: {result.tx_hash}")

        self._start_settlement(engine)
        return result

    @staticmethod
    def _raise_translated(error: Exception, asset: Asset, engine: SwapEngine) -> NoReturn:
        translated = translate_engine_error(error, asset, engine)
        if translated is error:
            raise error
        raise translated from error

    async def _initiate(self, engine: SwapEngine, order: Order, from_asset: Asset) -> str:
        try:
            if from_asset.family == ChainFamily.STARKNET:
                return await engine.initiate_via_contract_account_relay(order)
            return await engine.initiate_via_account_relay(order)
        except Exception as e:
            logger.error(f"Initiation failed for order {order.order_id}: {e}", exc_info=True)
            self._raise_translated(e, from_asset, engine)

    @staticmethod
    def _initiator_address(wallet: WalletRecord) -> str:
        if isinstance(wallet.client, BitcoinWalletClient):
            return wallet.client.x_only_public_key
        return wallet.address

    @staticmethod
    def _additional_data(
        source_wallet: WalletRecord, from_asset: Asset, to_asset: Asset, destination_address: str
    ) -> dict:
        data = {"destination_address": destination_address}
        if from_asset.family == ChainFamily.BITCOIN:
            data["bitcoin_optional_recipient"] = source_wallet.address
        elif to_asset.family == ChainFamily.BITCOIN:
            data["bitcoin_optional_recipient"] = destination_address
        return data

    def _start_settlement(self, engine: SwapEngine) -> None:
        task = asyncio.create_task(engine.run_settlement_loop())
        self._tasks[task] = engine
        task.add_done_callback(self._settlement_done)

    def _settlement_done(self, task: asyncio.Task) -> None:
        self._tasks.pop(task, None)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Settlement loop failed: {error}", exc_info=error)

    @property
    def running_settlements(self) -> int:
        return len(self._tasks)

    async def aclose(self) -> None:
        """Stop settlement loops and close engines."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)
        for engine in self._engines.values():
            await engine.aclose()
        self._engines.clear()
