import logging
from pathlib import Path
from typing import Protocol

from telegram import Bot, ReactionTypeEmoji, ReplyParameters
from telegram.error import TelegramError

from vbot_errors import DeliveryError

logger = logging.getLogger("video-bot.chat")


class ChatClient(Protocol):
    """Capabilities the delivery pipeline needs from a messaging platform."""

    async def send_text(self, chat_id: int, text: str, reply_to: int | None = None) -> int: ...

    async def send_file(self, chat_id: int, path: Path, reply_to: int | None = None) -> None: ...

    async def set_reaction(self, chat_id: int, message_id: int, emoji: str | None) -> None: ...

    async def edit_message(self, chat_id: int, message_id: int, text: str) -> None: ...

    async def delete_message(self, chat_id: int, message_id: int) -> None: ...


def _reply_parameters(reply_to: int | None) -> ReplyParameters | None:
    if reply_to is None:
        return None
    return ReplyParameters(message_id=reply_to, allow_sending_without_reply=True)


class TelegramChatClient:
    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_text(self, chat_id: int, text: str, reply_to: int | None = None) -> int:
        message = await self.bot.send_message(
            chat_id=chat_id,
            text=text,
            reply_parameters=_reply_parameters(reply_to),
            disable_notification=True,
        )
        return message.message_id

    async def send_file(self, chat_id: int, path: Path, reply_to: int | None = None) -> None:
        try:
            with Path(path).open("rb") as f:
                await self.bot.send_video(
                    chat_id=chat_id,
                    video=f,
                    supports_streaming=True,
                    reply_parameters=_reply_parameters(reply_to),
                )
        except (TelegramError, OSError) as err:
            raise DeliveryError(f"Could not send {path} to chat {chat_id}: {err}") from err
        logger.info("Video sent: chat_id=%s path=%s", chat_id, path)

    async def set_reaction(self, chat_id: int, message_id: int, emoji: str | None) -> None:
        reaction = ReactionTypeEmoji(emoji) if emoji else None
        await self.bot.set_message_reaction(chat_id=chat_id, message_id=message_id, reaction=reaction)

    async def edit_message(self, chat_id: int, message_id: int, text: str) -> None:
        await self.bot.edit_message_text(text=text, chat_id=chat_id, message_id=message_id)

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        await self.bot.delete_message(chat_id=chat_id, message_id=message_id)
