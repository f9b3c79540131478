"""Tests for Telegram rendering, handlers and service wiring."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from crossswap.bot.bot import build_services
from crossswap.bot.handlers import setup_routers
from crossswap.bot.handlers.swap import handle_conversation_callback, handle_conversation_text
from crossswap.bot.keyboards import inline_keyboard, registration_keyboard
from crossswap.config import Settings
from crossswap.session.conversation import Button, Reply


def make_message(text: str, user_id: int = 42) -> MagicMock:
    message = MagicMock()
    message.text = text
    message.from_user.id = user_id
    message.answer = AsyncMock()
    message.delete = AsyncMock()
    return message


class TestKeyboards:
    """Tests for reply rendering."""

    def test_inline_keyboard(self):
        reply = Reply("pick", [[Button("A", "a"), Button("B", "b")], [Button("C", "c")]])

        markup = inline_keyboard(reply)

        assert [[b.callback_data for b in row] for row in markup.inline_keyboard] == [["a", "b"], ["c"]]
        assert markup.inline_keyboard[0][0].text == "A"

    def test_no_buttons(self):
        assert inline_keyboard(Reply("plain")) is None

    def test_registration_keyboard(self):
        data = [b.callback_data for row in registration_keyboard().inline_keyboard for b in row]

        assert data == ["auth:register", "auth:login"]


class TestSwapHandlers:
    """Tests for the conversation handlers."""

    @pytest.mark.asyncio
    async def test_text_with_key_material_is_deleted(self):
        """Test that a message holding key material is removed from the chat."""
        message = make_message("0xsecret")
        conversation = MagicMock()
        conversation.handle_text = AsyncMock(return_value=Reply("imported", delete_input=True))

        await handle_conversation_text(message, conversation)

        conversation.handle_text.assert_awaited_once_with(42, "0xsecret")
        message.delete.assert_awaited_once()
        message.answer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_plain_text_is_kept(self):
        message = make_message("0.01")
        conversation = MagicMock()
        conversation.handle_text = AsyncMock(return_value=Reply("ok"))

        await handle_conversation_text(message, conversation)

        message.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_callback_answered_before_turn(self):
        """Test that the button press is acknowledged and the reply sent."""
        callback = MagicMock()
        callback.from_user.id = 42
        callback.data = "menu:main"
        callback.answer = AsyncMock()
        callback.message.answer = AsyncMock()
        conversation = MagicMock()
        conversation.handle_callback = AsyncMock(return_value=Reply("menu", [[Button("X", "x")]]))

        await handle_conversation_callback(callback, conversation)

        callback.answer.assert_awaited_once()
        assert conversation.handle_callback.call_args.args[:2] == (42, "menu:main")
        callback.message.answer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_discarded_reply_sends_nothing(self):
        callback = MagicMock()
        callback.from_user.id = 42
        callback.data = "confirm"
        callback.answer = AsyncMock()
        callback.message.answer = AsyncMock()
        conversation = MagicMock()
        conversation.handle_callback = AsyncMock(return_value=None)

        await handle_conversation_callback(callback, conversation)

        callback.message.answer.assert_not_awaited()

    def test_setup_routers(self):
        router = setup_routers()

        assert len(router.sub_routers) == 4


class TestServices:
    """Tests for service wiring."""

    def test_build_services(self):
        """Test that the orchestrator forwards engine events to the notifier."""
        settings = Settings(_env_file=None, telegram_bot_token="")
        services = build_services(AsyncMock(), settings)

        events = [event for event, _ in services.orchestrator._subscriptions]
        assert sorted(events) == ["error", "log", "success"]
        assert services.conversation.lock_timeout == settings.turn_lock_timeout_seconds
        assert services.conversation.auth is services.auth


class TestSettings:
    """Tests for configuration."""

    def test_safe_dict_redacts_secrets(self):
        settings = Settings(
            _env_file=None,
            telegram_bot_token="123:abc",
            garden_api_key="key",
            database_url="postgresql+asyncpg://user:pw@db/crossswap",
        )

        safe = settings.get_safe_dict()

        assert safe["telegram_bot_token"] == "***"
        assert safe["garden"]["api_key"] == "***"
        assert "pw" not in safe["database_url"]

    def test_testnet_by_default(self):
        assert not Settings(_env_file=None, environment="testnet").is_production
        assert Settings(_env_file=None, environment="mainnet").is_production
