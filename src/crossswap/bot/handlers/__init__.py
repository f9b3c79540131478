"""Bot handlers module."""

from aiogram import Router

from crossswap.bot.handlers import auth, start, swap, wallet


def setup_routers() -> Router:
    """Create and configure all routers."""
    main_router = Router()

    # Commands first; the swap router holds the catch-all callback and text handlers
    main_router.include_router(start.router)
    main_router.include_router(auth.router)
    main_router.include_router(wallet.router)
    main_router.include_router(swap.router)

    return main_router
