"""
Usage (local):
  export BOT_TOKEN="..."
  export REDIS_URL="redis://localhost:6379/0"   # optional
  python bot.py
"""

import logging

from telegram import Update
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from delivery_flow import DeliveryOrchestrator, handle_message_event
from vbot_cache import CacheStore
from vbot_chat import TelegramChatClient
from vbot_config import BOT_TOKEN, HEARTBEAT_INTERVAL_SECONDS, LOG_LEVEL, STATUS_MODE
from vbot_downloader import MediaDownloader
from vbot_metadata import MetadataFetcher
from vbot_models import MessageEvent
from vbot_resolver import RedirectResolver
from vbot_status import status_factory

# -------------------------
# Logging
# -------------------------
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("video-bot")
logging.getLogger("telegram").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_orchestrator(cache: CacheStore) -> DeliveryOrchestrator:
    return DeliveryOrchestrator(
        resolver=RedirectResolver(cache),
        fetcher=MetadataFetcher(cache),
        downloader=MediaDownloader(),
        status_cls=status_factory(STATUS_MODE),
    )


def to_message_event(update: Update, client: TelegramChatClient) -> MessageEvent | None:
    message = update.effective_message
    if not message:
        return None
    return MessageEvent(
        text=message.text or message.caption,
        chat_id=message.chat_id,
        message_id=message.message_id,
        client=client,
    )


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    event = to_message_event(update, context.bot_data["chat_client"])
    if event is None:
        return
    logger.debug("New message from %s: %s", event.chat_id, event.text)
    await handle_message_event(event, context.bot_data["orchestrator"])


async def log_heartbeat(_: ContextTypes.DEFAULT_TYPE) -> None:
    logger.info("Bot is listening...")


async def post_init(app: Application) -> None:
    cache = CacheStore.from_env()
    if not cache.enabled:
        logger.info("REDIS_URL is not set, running without cache")
    app.bot_data["cache"] = cache
    app.bot_data["chat_client"] = TelegramChatClient(app.bot)
    app.bot_data["orchestrator"] = build_orchestrator(cache)


async def post_shutdown(app: Application) -> None:
    cache = app.bot_data.get("cache")
    if cache is not None:
        await cache.close()


# -------------------------
# Main
# -------------------------
def main() -> None:
    if not BOT_TOKEN:
        raise RuntimeError("BOT_TOKEN is required.")

    app = (
        Application.builder()
        .token(BOT_TOKEN)
        .concurrent_updates(True)
        .connect_timeout(60)
        .read_timeout(300)
        .write_timeout(300)
        .pool_timeout(60)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    app.add_handler(MessageHandler((filters.TEXT | filters.CAPTION) & ~filters.COMMAND, handle_message))

    app.job_queue.run_repeating(log_heartbeat, interval=HEARTBEAT_INTERVAL_SECONDS, first=0)
    logger.info("Bot started. Polling and waiting for updates...")
    app.run_polling(close_loop=False)


if __name__ == "__main__":
    main()
