"""Bot initialization and runner."""

import asyncio
import logging
from dataclasses import dataclass

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage

from crossswap.auth import AuthService
from crossswap.bot.handlers import setup_routers
from crossswap.config import Settings, get_settings
from crossswap.notifications.correlator import OrderCorrelator
from crossswap.notifications.telegram import TelegramNotifier
from crossswap.session.conversation import SwapConversation
from crossswap.storage.database import close_db, init_db
from crossswap.storage.wallet_store import PersistentWalletStore
from crossswap.swap.orchestrator import SwapOrchestrator, garden_engine_factory
from crossswap.wallets.custody import WalletCustodyService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Long-lived services shared by all handlers."""

    auth: AuthService
    conversation: SwapConversation
    wallet_store: PersistentWalletStore
    orchestrator: SwapOrchestrator
    notifier: TelegramNotifier


def build_services(bot: Bot, settings: Settings) -> Services:
    """Wire custody, storage, orchestrator and notifications together."""
    custody = WalletCustodyService.default()
    wallet_store = PersistentWalletStore()
    auth = AuthService(wallet_store, custody)

    correlator = OrderCorrelator()
    notifier = TelegramNotifier(correlator, bot=bot)
    orchestrator = SwapOrchestrator(correlator, engine_factory=garden_engine_factory(settings))
    orchestrator.subscribe("success", notifier.on_engine_success)
    orchestrator.subscribe("error", notifier.on_engine_error)
    orchestrator.subscribe("log", notifier.on_engine_log)

    conversation = SwapConversation(
        auth=auth,
        custody=custody,
        wallet_store=wallet_store,
        orchestrator=orchestrator,
        lock_timeout=settings.turn_lock_timeout_seconds,
    )
    return Services(
        auth=auth,
        conversation=conversation,
        wallet_store=wallet_store,
        orchestrator=orchestrator,
        notifier=notifier,
    )


def create_bot() -> tuple[Bot, Dispatcher, Services]:
    """Create bot, dispatcher and services."""
    settings = get_settings()

    if not settings.telegram_bot_token:
        raise ValueError("TELEGRAM_BOT_TOKEN is not set")

    # No default parse_mode - each handler decides
    bot = Bot(token=settings.telegram_bot_token)
    services = build_services(bot, settings)

    # Conversation state lives in SwapConversation; aiogram's FSM storage is unused
    dp = Dispatcher(
        storage=MemoryStorage(),
        auth=services.auth,
        conversation=services.conversation,
        wallet_store=services.wallet_store,
    )
    dp.include_router(setup_routers())

    return bot, dp, services


def setup_logging(level: str = "INFO") -> None:
    """Configure logging - reduce noise from libraries."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("aiogram").setLevel(logging.INFO)


async def run_bot() -> None:
    """Run the bot in polling mode."""
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info("Starting CrossSwap bot...")
    logger.info(f"Configuration: {settings.get_safe_dict()}")

    await init_db()
    logger.info("Database initialized")

    bot, dp, services = create_bot()

    try:
        await bot.delete_webhook(drop_pending_updates=True)
        logger.info("Starting polling...")
        await dp.start_polling(bot)
    finally:
        await services.orchestrator.aclose()
        await close_db()
        await bot.session.close()


def main() -> None:
    """Entry point for the bot."""
    asyncio.run(run_bot())


if __name__ == "__main__":
    main()
