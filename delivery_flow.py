import asyncio
import logging
from pathlib import Path

from vbot_chat import ChatClient
from vbot_config import ALLOWED_CHAT_IDS, MAX_ATTEMPTS, RETRY_DELAY_SECONDS
from vbot_downloader import MediaDownloader
from vbot_errors import DeliveryError, DownloadError, MetadataError, ResolutionError, RetriesExhaustedError
from vbot_links import extract_links
from vbot_metadata import MetadataFetcher
from vbot_models import NO_VIDEO, DeliveryAttempt, DeliveryOutcome, MessageEvent, ReplyTarget, StatusPhase
from vbot_resolver import RedirectResolver
from vbot_status import ReactionStatus

logger = logging.getLogger("video-bot.delivery")

RETRIEVAL_ERRORS = (ResolutionError, MetadataError, DownloadError)


class DeliveryOrchestrator:
    """Drives one TikTok link from resolution to a video reply in the chat.

    ``run`` is called once per candidate link and never raises: failures
    end as a FAILED status marker and a log line. Retrieval (resolve,
    metadata, download) and delivery (retrieve, then send) are retried
    independently, both with a fixed pause between attempts.
    """

    def __init__(
        self,
        resolver: RedirectResolver,
        fetcher: MetadataFetcher,
        downloader: MediaDownloader,
        status_cls=ReactionStatus,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SECONDS,
    ):
        self.resolver = resolver
        self.fetcher = fetcher
        self.downloader = downloader
        self.status_cls = status_cls
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay

    async def _retrieve(self, url: str):
        """Resolve, look up and download ``url``; returns a leased path or ``NO_VIDEO``."""
        last_error: Exception | None = None
        for attempt_no in range(1, self.max_attempts + 1):
            if attempt_no > 1:
                await asyncio.sleep(self.retry_delay)
            try:
                canonical_url = await self.resolver.resolve(url)
                # A stale cached descriptor (expired signed URL) is a likely
                # cause of a failed download, so only the first try may use it.
                descriptor = await self.fetcher.fetch(canonical_url, use_cache=attempt_no == 1)
                if descriptor is NO_VIDEO:
                    return NO_VIDEO
                return await self.downloader.download(descriptor)
            except RETRIEVAL_ERRORS as err:
                last_error = err
                if isinstance(err, DownloadError) and err.path is not None:
                    self.downloader.release(err.path)
                logger.warning(
                    "Download failed, retrying... (%s/%s) url=%s err=%s",
                    attempt_no,
                    self.max_attempts,
                    url,
                    err,
                )
        raise RetriesExhaustedError(
            f"Failed to download TikTok video after {self.max_attempts} attempts", self.max_attempts
        ) from last_error

    async def _send(self, client: ChatClient, path: Path, target: ReplyTarget) -> None:
        try:
            await client.send_file(target.chat_id, path, reply_to=target.message_id)
        except DeliveryError:
            raise
        except Exception as err:
            raise DeliveryError(f"Could not send {path}: {err}") from err

    async def run(self, url: str, reply_target: ReplyTarget, client: ChatClient) -> DeliveryOutcome:
        status = self.status_cls(client, reply_target)
        await status.signal(StatusPhase.PENDING)
        attempt = DeliveryAttempt(url=url, reply_target=reply_target, attempts_remaining=self.max_attempts)

        while attempt.attempts_remaining > 0:
            if attempt.attempts_remaining < self.max_attempts:
                await asyncio.sleep(self.retry_delay)
            attempt.attempts_remaining -= 1
            file_path: Path | None = None
            try:
                retrieved = await self._retrieve(url)
                if retrieved is NO_VIDEO:
                    await status.clear()
                    logger.info("Nothing to deliver for slideshow: %s", url)
                    return DeliveryOutcome.SKIPPED
                file_path = retrieved
                await self._send(client, file_path, reply_target)
                self.downloader.release(file_path)
                file_path = None
                await status.signal(StatusPhase.DONE)
                logger.info("TikTok video sent successfully: %s", url)
                return DeliveryOutcome.DELIVERED
            except RetriesExhaustedError as err:
                attempt.last_error = err
                break
            except Exception as err:
                attempt.last_error = err
                # A failed send is most likely a bad file chunk; drop the
                # file so the next attempt downloads it again.
                if file_path is not None:
                    self.downloader.release(file_path)
                    file_path = None
                logger.warning(
                    "Retrying to send video... (%s/%s) url=%s err=%s",
                    self.max_attempts - attempt.attempts_remaining,
                    self.max_attempts,
                    url,
                    err,
                )

        logger.error(
            "Failed to send video after multiple attempts: url=%s err=%s",
            url,
            attempt.last_error,
            exc_info=attempt.last_error,
        )
        await status.signal(StatusPhase.FAILED)
        return DeliveryOutcome.FAILED


async def handle_message_event(
    event: MessageEvent,
    orchestrator: DeliveryOrchestrator,
    allowed_chat_ids: set[int] = ALLOWED_CHAT_IDS,
) -> list[DeliveryOutcome]:
    """Start one delivery per unique TikTok link in ``event`` and wait for all of them."""
    if event.client is None:
        raise ValueError("Chat client is not available in the event.")
    if not event.text or event.chat_id is None:
        return []
    if allowed_chat_ids and event.chat_id not in allowed_chat_ids:
        logger.debug("Chat ID %s is not whitelisted.", event.chat_id)
        return []

    urls = extract_links(event.text)
    if not urls:
        return []
    logger.info("Found TikTok URLs: chat_id=%s urls=%s", event.chat_id, ", ".join(urls))

    target = ReplyTarget(chat_id=event.chat_id, message_id=event.message_id)
    return list(await asyncio.gather(*(orchestrator.run(url, target, event.client) for url in urls)))
