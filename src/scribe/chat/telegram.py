"""Telegram chat transport using aiogram.

Telegram has no native AI-status channel, so status events are mapped onto
what the Bot API offers:
- THINKING / EXTERNAL_SOURCES: a "typing" chat action
- ERROR / clear: the placeholder's "Stop" button is removed
- stop requests arrive as callback queries from that button

Message ids are composite (``"<chat_id>:<message_id>"``) because Telegram
message ids are only unique within a chat.
"""

from __future__ import annotations

import logging

from aiogram import Bot, Dispatcher, F
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ChatAction, ParseMode
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import (
    CallbackQuery,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
)
from aiogram.types import Message as TelegramMessage

from scribe.chat.base import ChatTransport
from scribe.chat.events import AIState, ChatEvent, ChatMessage, EventType

logger = logging.getLogger(__name__)

STOP_CALLBACK_DATA = "scribe:stop"
PLACEHOLDER_TEXT = "…"
EMPTY_RESPONSE_TEXT = "(empty response)"
MAX_MESSAGE_LENGTH = 4096
LOG_PREVIEW_MAX_LEN = 180


def format_message_id(chat_id: int | str, message_id: int | str) -> str:
    return f"{chat_id}:{message_id}"


def parse_message_id(composite: str) -> tuple[int, int]:
    """Split a composite message id into (chat_id, message_id).

    Raises:
        ValueError: If the id is not in "<chat_id>:<message_id>" form.
    """
    chat_part, sep, message_part = composite.rpartition(":")
    if not sep:
        raise ValueError(f"Invalid Telegram message id: {composite!r}")
    return int(chat_part), int(message_part)


def create_stop_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="Stop", callback_data=STOP_CALLBACK_DATA)]
        ]
    )


def fit_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Keep the tail-truncated text within Telegram's message limit."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"


def _truncate(text: str, max_len: int = LOG_PREVIEW_MAX_LEN) -> str:
    """Truncate text for logging (first line only, max length)."""
    first_line, *rest = text.split("\n", 1)
    truncated = len(first_line) > max_len or bool(rest)
    return first_line[:max_len] + "..." if truncated else first_line


class TelegramTransport(ChatTransport):
    """Telegram transport using aiogram 3.x."""

    def __init__(
        self,
        bot_token: str,
        allowed_users: list[str] | None = None,
    ):
        super().__init__()
        self._allowed_users = set(allowed_users or [])
        self._bot = Bot(
            token=bot_token,
            default=DefaultBotProperties(parse_mode=ParseMode.MARKDOWN),
        )
        self._dp = Dispatcher()
        self._running = False
        # Placeholders still showing the Stop button
        self._generating: set[str] = set()
        # Generating placeholders whose latest edit carried no visible text
        self._blank: set[str] = set()

    @property
    def name(self) -> str:
        return "telegram"

    @property
    def bot(self) -> Bot:
        return self._bot

    def _is_user_allowed(self, user_id: int, username: str | None) -> bool:
        if not self._allowed_users:
            return True
        return str(user_id) in self._allowed_users or (
            username is not None and f"@{username}" in self._allowed_users
        )

    def _to_chat_message(self, message: TelegramMessage) -> ChatMessage:
        """Convert a Telegram message to a ChatMessage."""
        user = message.from_user
        return ChatMessage(
            id=format_message_id(message.chat.id, message.message_id),
            conversation_id=str(message.chat.id),
            text=message.text or "",
            user_id=str(user.id) if user else None,
            ai_generated=bool(user and user.is_bot),
            custom={
                "chat_type": message.chat.type,
                "username": user.username if user else None,
            },
        )

    async def handle_text(self, message: TelegramMessage) -> None:
        """Handle an inbound text message."""
        if not message.text or not message.from_user:
            return

        user = message.from_user
        allowed = self._is_user_allowed(user.id, user.username)
        logger.info(
            "incoming_message",
            extra={
                "external_id": str(message.message_id),
                "chat_id": str(message.chat.id),
                "user_id": str(user.id),
                "was_processed": allowed,
                "input.preview": _truncate(message.text),
            },
        )
        if not allowed:
            return

        await self.dispatch(ChatEvent.new_message(self._to_chat_message(message)))

    async def handle_callback(self, callback_query: CallbackQuery) -> None:
        """Handle the Stop button on a generating placeholder."""
        if callback_query.data != STOP_CALLBACK_DATA:
            return
        message = callback_query.message
        if message is None:
            return

        message_id = format_message_id(message.chat.id, message.message_id)
        logger.info("stop_requested", extra={"messaging.message_id": message_id})
        await self._bot.answer_callback_query(callback_query.id, text="Stopping")
        await self.dispatch(ChatEvent.stop(message_id, str(message.chat.id)))

    def _setup_handlers(self) -> None:
        """Set up message handlers on the dispatcher."""
        self._dp.message.register(self.handle_text, F.text)
        self._dp.callback_query.register(self.handle_callback)

    async def start(self) -> None:
        """Start polling for updates. Returns when polling stops."""
        self._setup_handlers()
        self._running = True

        logger.info("telegram_bot_starting")
        await self._bot.delete_webhook(drop_pending_updates=False)
        # Disable aiogram's signal handling - let the app handle SIGINT/SIGTERM
        await self._dp.start_polling(
            self._bot,
            handle_signals=False,
            close_bot_session=False,  # We close it ourselves in stop()
        )

    async def stop(self) -> None:
        """Stop polling and close the bot session."""
        if not self._running:
            return
        self._running = False

        try:
            await self._dp.stop_polling()
        except Exception as e:
            logger.debug(f"Error stopping polling: {e}")

        try:
            await self._bot.session.close()
        except Exception as e:
            logger.debug(f"Error closing bot session: {e}")

        logger.info("telegram_bot_stopped")

    async def send_message(
        self,
        conversation_id: str,
        text: str,
        *,
        ai_generated: bool = False,
    ) -> ChatMessage:
        # Telegram rejects empty messages; placeholders start with an ellipsis
        reply_markup = create_stop_keyboard() if ai_generated else None
        sent = await self._bot.send_message(
            chat_id=int(conversation_id),
            text=fit_message(text) or PLACEHOLDER_TEXT,
            reply_markup=reply_markup,
            parse_mode=None,
        )
        message_id = format_message_id(conversation_id, sent.message_id)
        if ai_generated:
            self._generating.add(message_id)
        return ChatMessage(
            id=message_id,
            conversation_id=conversation_id,
            text=text,
            ai_generated=ai_generated,
        )

    async def _edit_with_fallback(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        reply_markup: InlineKeyboardMarkup | None,
    ) -> bool:
        """Edit a message with automatic plain-text fallback on parse errors."""
        try:
            await self._bot.edit_message_text(
                chat_id=chat_id,
                message_id=message_id,
                text=text,
                parse_mode=ParseMode.MARKDOWN,
                reply_markup=reply_markup,
            )
            return True
        except TelegramBadRequest as e:
            error_msg = str(e).lower()
            if "message is not modified" in error_msg:
                return True
            if "can't parse" in error_msg:
                logger.debug(f"Markdown parsing failed, editing as plain text: {e}")
                await self._bot.edit_message_text(
                    chat_id=chat_id,
                    message_id=message_id,
                    text=text,
                    parse_mode=None,
                    reply_markup=reply_markup,
                )
                return True
            raise

    async def update_message_text(self, message_id: str, text: str) -> None:
        # Telegram rejects blank edits; a blank final text is resolved on clear
        if not text.strip():
            if message_id in self._generating:
                self._blank.add(message_id)
            return
        self._blank.discard(message_id)
        chat_id, telegram_id = parse_message_id(message_id)
        reply_markup = (
            create_stop_keyboard() if message_id in self._generating else None
        )
        await self._edit_with_fallback(
            chat_id, telegram_id, fit_message(text), reply_markup
        )

    async def _finish_generating(self, message_id: str) -> None:
        """Remove the Stop button from a placeholder."""
        if message_id not in self._generating:
            return
        self._generating.discard(message_id)
        chat_id, telegram_id = parse_message_id(message_id)
        try:
            if message_id in self._blank:
                self._blank.discard(message_id)
                await self._bot.edit_message_text(
                    chat_id=chat_id,
                    message_id=telegram_id,
                    text=EMPTY_RESPONSE_TEXT,
                    parse_mode=None,
                    reply_markup=None,
                )
            else:
                await self._bot.edit_message_reply_markup(
                    chat_id=chat_id, message_id=telegram_id, reply_markup=None
                )
        except TelegramBadRequest as e:
            logger.debug(f"Failed to remove stop button: {e}")

    async def send_event(self, event: ChatEvent) -> None:
        if event.type == EventType.AI_INDICATOR_UPDATE:
            if event.ai_state == AIState.ERROR:
                if event.message_id:
                    await self._finish_generating(event.message_id)
            elif event.conversation_id:
                await self._bot.send_chat_action(
                    chat_id=int(event.conversation_id), action=ChatAction.TYPING
                )
        elif event.type == EventType.AI_INDICATOR_CLEAR:
            if event.message_id:
                await self._finish_generating(event.message_id)
        else:
            logger.debug(
                "unsupported_outbound_event", extra={"event.type": event.type.value}
            )
