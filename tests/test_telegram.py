"""Tests for the Telegram transport.

The aiogram Bot is replaced with a mock; these tests cover how channel
operations map onto Bot API calls and how inbound updates become events.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiogram.enums import ChatAction, ParseMode
from aiogram.exceptions import TelegramBadRequest

from scribe.chat.events import AIState, ChatEvent, EventType
from scribe.chat.telegram import (
    EMPTY_RESPONSE_TEXT,
    MAX_MESSAGE_LENGTH,
    PLACEHOLDER_TEXT,
    STOP_CALLBACK_DATA,
    TelegramTransport,
    fit_message,
    format_message_id,
    parse_message_id,
)


def bad_request(message: str) -> TelegramBadRequest:
    return TelegramBadRequest(method=MagicMock(), message=message)


@pytest.fixture
def telegram():
    with patch("scribe.chat.telegram.Bot"):
        transport = TelegramTransport(
            bot_token="test_token",
            allowed_users=["@alice", "42"],
        )
    bot = MagicMock()
    bot.send_message = AsyncMock(return_value=MagicMock(message_id=77))
    bot.edit_message_text = AsyncMock()
    bot.edit_message_reply_markup = AsyncMock()
    bot.send_chat_action = AsyncMock()
    bot.answer_callback_query = AsyncMock()
    transport._bot = bot
    return transport


def make_incoming(text="hello", user_id=42, username="alice", chat_id=100):
    message = MagicMock()
    message.text = text
    message.message_id = 5
    message.chat.id = chat_id
    message.chat.type = "private"
    message.from_user.id = user_id
    message.from_user.username = username
    message.from_user.is_bot = False
    return message


def recorder(transport: TelegramTransport, event_type: EventType) -> list[ChatEvent]:
    received: list[ChatEvent] = []

    async def handler(event: ChatEvent) -> None:
        received.append(event)

    transport.subscribe(event_type, handler)
    return received


class TestMessageIds:
    def test_round_trip_with_negative_chat_id(self):
        composite = format_message_id(-100123, 9)
        assert composite == "-100123:9"
        assert parse_message_id(composite) == (-100123, 9)

    def test_invalid_id(self):
        with pytest.raises(ValueError):
            parse_message_id("msg-1")

    def test_fit_message_truncates(self):
        text = "x" * (MAX_MESSAGE_LENGTH + 10)
        fitted = fit_message(text)
        assert len(fitted) == MAX_MESSAGE_LENGTH
        assert fitted.endswith("…")

    def test_fit_message_keeps_short_text(self):
        assert fit_message("short") == "short"


class TestOutbound:
    async def test_placeholder_has_stop_button(self, telegram):
        message = await telegram.send_message("100", "", ai_generated=True)

        assert message.id == "100:77"
        kwargs = telegram.bot.send_message.call_args.kwargs
        assert kwargs["chat_id"] == 100
        assert kwargs["text"] == PLACEHOLDER_TEXT
        button = kwargs["reply_markup"].inline_keyboard[0][0]
        assert button.callback_data == STOP_CALLBACK_DATA

    async def test_plain_message_has_no_keyboard(self, telegram):
        await telegram.send_message("100", "hi")

        assert telegram.bot.send_message.call_args.kwargs["reply_markup"] is None

    async def test_update_keeps_stop_button_while_generating(self, telegram):
        message = await telegram.send_message("100", "", ai_generated=True)

        await telegram.update_message_text(message.id, "Hello")

        kwargs = telegram.bot.edit_message_text.call_args.kwargs
        assert kwargs["chat_id"] == 100
        assert kwargs["message_id"] == 77
        assert kwargs["text"] == "Hello"
        assert kwargs["parse_mode"] == ParseMode.MARKDOWN
        assert kwargs["reply_markup"] is not None

    async def test_blank_update_is_skipped(self, telegram):
        await telegram.update_message_text("100:77", "   ")

        telegram.bot.edit_message_text.assert_not_called()

    async def test_markdown_failure_falls_back_to_plain_text(self, telegram):
        telegram.bot.edit_message_text.side_effect = [
            bad_request("Bad Request: can't parse entities"),
            None,
        ]

        await telegram.update_message_text("100:77", "a *broken")

        assert telegram.bot.edit_message_text.call_count == 2
        assert telegram.bot.edit_message_text.call_args.kwargs["parse_mode"] is None

    async def test_unchanged_message_is_not_an_error(self, telegram):
        telegram.bot.edit_message_text.side_effect = bad_request(
            "Bad Request: message is not modified"
        )

        await telegram.update_message_text("100:77", "same")

    async def test_other_edit_errors_propagate(self, telegram):
        telegram.bot.edit_message_text.side_effect = bad_request(
            "Bad Request: message to edit not found"
        )

        with pytest.raises(TelegramBadRequest):
            await telegram.update_message_text("100:77", "text")


class TestStatusEvents:
    @pytest.mark.parametrize("state", [AIState.THINKING, AIState.EXTERNAL_SOURCES])
    async def test_progress_states_show_typing(self, telegram, state):
        await telegram.send_event(ChatEvent.status_update(state, "100", "100:77"))

        telegram.bot.send_chat_action.assert_awaited_once_with(
            chat_id=100, action=ChatAction.TYPING
        )

    async def test_clear_removes_stop_button(self, telegram):
        message = await telegram.send_message("100", "", ai_generated=True)

        await telegram.send_event(ChatEvent.status_clear("100", message.id))
        await telegram.update_message_text(message.id, "final")

        telegram.bot.edit_message_reply_markup.assert_awaited_once_with(
            chat_id=100, message_id=77, reply_markup=None
        )
        assert telegram.bot.edit_message_text.call_args.kwargs["reply_markup"] is None

    async def test_error_removes_stop_button(self, telegram):
        message = await telegram.send_message("100", "", ai_generated=True)

        await telegram.send_event(
            ChatEvent.status_update(AIState.ERROR, "100", message.id)
        )

        telegram.bot.edit_message_reply_markup.assert_awaited_once()
        telegram.bot.send_chat_action.assert_not_called()

    async def test_blank_final_text_becomes_empty_marker(self, telegram):
        message = await telegram.send_message("100", "", ai_generated=True)

        await telegram.update_message_text(message.id, "")
        await telegram.send_event(ChatEvent.status_clear("100", message.id))

        telegram.bot.edit_message_text.assert_awaited_once_with(
            chat_id=100,
            message_id=77,
            text=EMPTY_RESPONSE_TEXT,
            parse_mode=None,
            reply_markup=None,
        )
        telegram.bot.edit_message_reply_markup.assert_not_called()

    async def test_blank_update_followed_by_text_keeps_text(self, telegram):
        message = await telegram.send_message("100", "", ai_generated=True)

        await telegram.update_message_text(message.id, " ")
        await telegram.update_message_text(message.id, "Done")
        await telegram.send_event(ChatEvent.status_clear("100", message.id))

        assert telegram.bot.edit_message_text.await_count == 1
        telegram.bot.edit_message_reply_markup.assert_awaited_once()

    async def test_clear_twice_edits_once(self, telegram):
        message = await telegram.send_message("100", "", ai_generated=True)

        await telegram.send_event(ChatEvent.status_clear("100", message.id))
        await telegram.send_event(ChatEvent.status_clear("100", message.id))

        assert telegram.bot.edit_message_reply_markup.await_count == 1


class TestInbound:
    async def test_allowed_user_message_is_dispatched(self, telegram):
        received = recorder(telegram, EventType.MESSAGE_NEW)

        await telegram.handle_text(make_incoming(text="Polish this"))

        assert len(received) == 1
        message = received[0].message
        assert message.id == "100:5"
        assert message.conversation_id == "100"
        assert message.text == "Polish this"
        assert message.user_id == "42"
        assert not message.ai_generated

    async def test_allowed_by_username(self, telegram):
        received = recorder(telegram, EventType.MESSAGE_NEW)

        await telegram.handle_text(make_incoming(user_id=7, username="alice"))

        assert len(received) == 1

    async def test_unknown_user_is_ignored(self, telegram):
        received = recorder(telegram, EventType.MESSAGE_NEW)

        await telegram.handle_text(make_incoming(user_id=999, username="mallory"))

        assert received == []

    async def test_open_bot_accepts_everyone(self):
        with patch("scribe.chat.telegram.Bot"):
            transport = TelegramTransport(bot_token="test_token")
        received = recorder(transport, EventType.MESSAGE_NEW)

        await transport.handle_text(make_incoming(user_id=999, username=None))

        assert len(received) == 1

    async def test_stop_button_dispatches_stop(self, telegram):
        received = recorder(telegram, EventType.AI_INDICATOR_STOP)
        callback = MagicMock()
        callback.id = "cb-1"
        callback.data = STOP_CALLBACK_DATA
        callback.message.chat.id = 100
        callback.message.message_id = 77

        await telegram.handle_callback(callback)

        assert [e.message_id for e in received] == ["100:77"]
        assert received[0].conversation_id == "100"
        telegram.bot.answer_callback_query.assert_awaited_once()

    async def test_other_callbacks_are_ignored(self, telegram):
        received = recorder(telegram, EventType.AI_INDICATOR_STOP)
        callback = MagicMock()
        callback.data = "something-else"

        await telegram.handle_callback(callback)

        assert received == []
