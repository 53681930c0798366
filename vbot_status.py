import logging

from vbot_chat import ChatClient
from vbot_models import ReplyTarget, StatusPhase

logger = logging.getLogger("video-bot.status")

REACTIONS = {
    StatusPhase.PENDING: "👀",
    StatusPhase.DONE: "👌",
    StatusPhase.FAILED: "💔",
}
PENDING_TEXT = "Downloading TikTok video..."
FAILED_TEXT = "Couldn't download this TikTok video."


class ReactionStatus:
    """Shows pipeline progress as a reaction on the originating message.

    Each reaction replaces the previous one. Platform errors are logged
    and swallowed.
    """

    def __init__(self, client: ChatClient, target: ReplyTarget):
        self.client = client
        self.target = target

    async def _react(self, emoji: str | None) -> None:
        try:
            await self.client.set_reaction(self.target.chat_id, self.target.message_id, emoji)
        except Exception as err:
            logger.info(
                "Could not set reaction: chat_id=%s message_id=%s err=%s",
                self.target.chat_id,
                self.target.message_id,
                err,
            )

    async def signal(self, phase: StatusPhase) -> None:
        await self._react(REACTIONS[phase])

    async def clear(self) -> None:
        await self._react(None)


class MessageStatus:
    """Shows pipeline progress as a reply message that is edited, then removed."""

    def __init__(self, client: ChatClient, target: ReplyTarget):
        self.client = client
        self.target = target
        self.status_message_id: int | None = None

    async def _delete(self) -> None:
        if self.status_message_id is None:
            return
        try:
            await self.client.delete_message(self.target.chat_id, self.status_message_id)
            self.status_message_id = None
        except Exception as delete_err:
            logger.info("Could not delete status message: %s", delete_err)

    async def signal(self, phase: StatusPhase) -> None:
        if phase is StatusPhase.PENDING:
            if self.status_message_id is not None:
                return
            try:
                self.status_message_id = await self.client.send_text(
                    self.target.chat_id, PENDING_TEXT, reply_to=self.target.message_id
                )
            except Exception as send_err:
                logger.info("Could not send status message: %s", send_err)
        elif phase is StatusPhase.DONE:
            await self._delete()
        elif self.status_message_id is not None:
            try:
                await self.client.edit_message(self.target.chat_id, self.status_message_id, FAILED_TEXT)
            except Exception as edit_err:
                logger.info("Could not edit status message: %s", edit_err)
        else:
            try:
                self.status_message_id = await self.client.send_text(
                    self.target.chat_id, FAILED_TEXT, reply_to=self.target.message_id
                )
            except Exception as send_err:
                logger.info("Could not send status message: %s", send_err)

    async def clear(self) -> None:
        await self._delete()


def status_factory(mode: str):
    if mode == "message":
        return MessageStatus
    if mode != "reaction":
        logger.warning("Unknown STATUS_MODE %r, using reactions", mode)
    return ReactionStatus
