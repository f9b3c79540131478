"""Telegram bot: runner, keyboards and handlers."""
