"""Swap engine interface.

The engine quotes swaps, creates orders, initiates HTLCs through its
relays and runs the settlement loop that redeems once the counterparty
has locked funds. Implementations emit three events:

- error(order, error)
- log(order_id, message)
- success(order, action, tx_hash)
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from crossswap.chains import Asset

logger = logging.getLogger(__name__)

EVENTS = ("error", "log", "success")

EventHandler = Callable[..., Union[None, Awaitable[None]]]


@dataclass
class Quote:
    """Strategies offered for a swap, strategy id -> receive amount (base units)."""

    from_asset: Asset
    to_asset: Asset
    send_amount: int
    strategies: dict[str, int]

    def first_strategy(self) -> tuple[str, int]:
        """The strategy the bot uses: the first one offered."""
        if not self.strategies:
            raise ValueError("quote has no strategies")
        strategy_id = next(iter(self.strategies))
        return strategy_id, self.strategies[strategy_id]


@dataclass
class SwapRequest:
    """Canonical order request."""

    from_asset: Asset
    to_asset: Asset
    send_amount: int
    receive_amount: int
    nonce: str
    strategy_id: str
    initiator_source_address: str
    additional_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class Order:
    """An order created by the engine.

    `source_swap_id` is the HTLC id on the source chain; for a Bitcoin
    source it is the P2TR address the user has to fund.
    """

    order_id: str
    source_chain: str
    destination_chain: str
    source_amount: int
    destination_amount: int
    source_swap_id: Optional[str] = None
    destination_swap_id: Optional[str] = None
    redeemer: Optional[str] = None
    timelock: Optional[int] = None
    secret_hash: Optional[str] = None
    source_asset: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


class SwapEngine(ABC):
    """Abstract swap engine."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {name: [] for name in EVENTS}

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribe to an engine event. Handlers may be sync or async."""
        if event not in self._handlers:
            raise ValueError(f"Unknown engine event: {event}")
        self._handlers[event].append(handler)

    async def _emit(self, event: str, *args: Any) -> None:
        for handler in self._handlers[event]:
            try:
                result = handler(*args)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Engine '{event}' handler failed: {e}", exc_info=True)

    @property
    def pending_orders(self) -> list[str]:
        """Ids of orders this engine still has to settle."""
        return []

    def amount_bounds(self, asset: Asset) -> tuple[int, int]:
        """Advertised (min, max) send amount in base units."""
        return asset.min_amount, asset.max_amount

    @abstractmethod
    async def get_quote(
        self, from_asset: Asset, to_asset: Asset, amount: int, exact_output: bool = False
    ) -> Quote:
        """Quote a swap.

        Raises:
            ExternalEngineError: If the engine rejects the quote
        """

    @abstractmethod
    async def submit_swap(self, request: SwapRequest) -> Order:
        """Create an order and wait for it to be matched."""

    @abstractmethod
    async def initiate_via_account_relay(self, order: Order) -> str:
        """Initiate an EVM-source order through the relay. Returns the tx hash."""

    @abstractmethod
    async def initiate_via_contract_account_relay(self, order: Order) -> str:
        """Initiate a Starknet-source order through the relay. Returns the tx hash."""

    @abstractmethod
    async def run_settlement_loop(self) -> None:
        """Watch open orders and redeem them. Safe to call repeatedly."""

    async def aclose(self) -> None:
        """Release network resources."""
        return None
