"""Pytest configuration and fixtures."""

import asyncio
import os
from typing import Any, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["DEBUG"] = "false"

from crossswap.auth import AuthService
from crossswap.chains import Asset, ChainFamily
from crossswap.notifications.correlator import OrderCorrelator
from crossswap.storage.database import set_session_factory
from crossswap.storage.models import Base
from crossswap.storage.wallet_store import PersistentWalletStore
from crossswap.swap.engine import Order, Quote, SwapEngine, SwapRequest
from crossswap.swap.orchestrator import SwapOrchestrator
from crossswap.utils.locks import clear_user_locks
from crossswap.wallets.btc import BitcoinWalletAdapter
from crossswap.wallets.custody import WalletCustodyService
from crossswap.wallets.evm import EvmWalletAdapter
from crossswap.wallets.starknet import StarknetWalletAdapter

# Well-known test vectors
TEST_MNEMONIC = "abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon about"
TEST_MNEMONIC_EVM_ADDRESS = "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_PRIVATE_KEY_EVM_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

TEST_CLASS_HASH = "0x061dac032f228abef9c6626f995015233097ae253a7f72d68552db02f2971b8f"
TEST_PASSWORD = "correct-horse-battery"


class FakeStarknetAccount:
    """Stands in for a starknet-py Account."""

    def __init__(self, address: int, private_key: int):
        self.address = address
        self.private_key = private_key
        self.signed: list[dict] = []

    def sign_message(self, typed_data: dict) -> list[int]:
        self.signed.append(typed_data)
        return [self.private_key % 1000, self.address % 1000]


class FakeStarknetSdk:
    """Deterministic replacement for the starknet-py slice used by the adapter."""

    def __init__(self, deployed: bool = True):
        self.deployed = deployed
        self.deployment_error: Optional[Exception] = None
        self.deployment_checks: list[int] = []

    def public_key(self, private_key: int) -> int:
        return (private_key * 7 + 3) % 2**250

    def compute_address(self, public_key: int, class_hash: int) -> int:
        return (public_key ^ class_hash) % 2**250

    def account(self, address: int, private_key: int) -> Any:
        return FakeStarknetAccount(address, private_key)

    async def is_deployed(self, address: int) -> bool:
        self.deployment_checks.append(address)
        if self.deployment_error is not None:
            raise self.deployment_error
        return self.deployed


@pytest.fixture(autouse=True)
def reset_locks():
    """Clear per-user turn locks before each test."""
    clear_user_locks()
    yield
    clear_user_locks()


@pytest_asyncio.fixture
async def db_engine():
    """Create in-memory database engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db(db_engine):
    """Point get_db() at the in-memory database."""
    factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    set_session_factory(factory)
    yield factory
    set_session_factory(None)


@pytest.fixture
def starknet_sdk() -> FakeStarknetSdk:
    return FakeStarknetSdk()


@pytest.fixture
def custody(starknet_sdk) -> WalletCustodyService:
    """Custody service with testnet adapters and a fake Starknet SDK."""
    return WalletCustodyService(
        {
            ChainFamily.EVM: EvmWalletAdapter(),
            ChainFamily.BITCOIN: BitcoinWalletAdapter(testnet=True),
            ChainFamily.STARKNET: StarknetWalletAdapter(class_hash=TEST_CLASS_HASH, sdk=starknet_sdk),
        }
    )


@pytest.fixture
def wallet_store() -> PersistentWalletStore:
    return PersistentWalletStore()


@pytest.fixture
def auth(wallet_store, custody) -> AuthService:
    return AuthService(wallet_store, custody)


@pytest.fixture
def correlator() -> OrderCorrelator:
    return OrderCorrelator()


class FakeSwapEngine(SwapEngine):
    """In-memory engine that records what it was asked to do."""

    def __init__(self, receive_amount: int = 25_000, funding_address: str = "tb1pfundinghtlc"):
        super().__init__()
        self.receive_amount = receive_amount
        self.funding_address = funding_address
        self.quote_error: Optional[Exception] = None
        self.submit_error: Optional[Exception] = None
        self.quote_gate: Optional[asyncio.Event] = None
        self.quotes: list[tuple[Asset, Asset, int]] = []
        self.requests: list[SwapRequest] = []
        self.initiated: list[tuple[str, str]] = []
        self.settlement_runs = 0
        self.pending: list[str] = []
        self.closed = False

    @property
    def pending_orders(self) -> list[str]:
        return list(self.pending)

    async def get_quote(self, from_asset, to_asset, amount, exact_output=False) -> Quote:
        self.quotes.append((from_asset, to_asset, amount))
        if self.quote_gate is not None:
            await self.quote_gate.wait()
        if self.quote_error is not None:
            raise self.quote_error
        return Quote(from_asset, to_asset, amount, {"strategy-1": self.receive_amount})

    async def submit_swap(self, request: SwapRequest) -> Order:
        if self.submit_error is not None:
            raise self.submit_error
        self.requests.append(request)
        return Order(
            order_id=f"order-{len(self.requests)}",
            source_chain=request.from_asset.chain,
            destination_chain=request.to_asset.chain,
            source_amount=request.send_amount,
            destination_amount=request.receive_amount,
            source_swap_id=self.funding_address,
        )

    async def initiate_via_account_relay(self, order: Order) -> str:
        self.initiated.append(("account", order.order_id))
        return "0xinitiated"

    async def initiate_via_contract_account_relay(self, order: Order) -> str:
        self.initiated.append(("contract", order.order_id))
        return "0xstarknetinitiated"

    async def run_settlement_loop(self) -> None:
        self.settlement_runs += 1

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_engine() -> FakeSwapEngine:
    return FakeSwapEngine()


@pytest.fixture
def orchestrator(correlator, fake_engine) -> SwapOrchestrator:
    return SwapOrchestrator(correlator, engine_factory=lambda network, wallets: fake_engine)
