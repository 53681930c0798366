import asyncio
import logging
import weakref
from pathlib import Path

import requests

from vbot_config import CHROME_USER_AGENT, DOWNLOAD_DIR, HTTP_TIMEOUT_SECONDS, MAX_BOT_FILE_BYTES
from vbot_errors import DownloadError
from vbot_models import MediaDescriptor

logger = logging.getLogger("video-bot.downloader")

CHUNK_SIZE = 64 * 1024


class MediaDownloader:
    """Streams media binaries into ``download_dir/{id}.{ext}``.

    Concurrent deliveries of the same media id share one file. Each
    successful ``download`` hands out a lease on the path; ``release``
    returns it, and the file is unlinked once nobody holds a lease.
    Writers to the same id are serialized with a per-id lock.
    """

    def __init__(
        self,
        download_dir: Path = DOWNLOAD_DIR,
        max_bytes: int = MAX_BOT_FILE_BYTES,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.download_dir = Path(download_dir)
        self.max_bytes = max_bytes
        self.timeout = timeout
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self._leases: dict[Path, int] = {}

    def path_for(self, descriptor: MediaDescriptor) -> Path:
        return self.download_dir / f"{descriptor.id}.{descriptor.ext}"

    def _lock_for(self, media_id: str) -> asyncio.Lock:
        lock = self._locks.get(media_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[media_id] = lock
        return lock

    def _acquire_lease(self, path: Path) -> Path:
        self._leases[path] = self._leases.get(path, 0) + 1
        return path

    def _stream_to_file(self, descriptor: MediaDescriptor, destination: Path) -> None:
        headers = {"User-Agent": CHROME_USER_AGENT, **descriptor.http_headers}
        try:
            with requests.get(descriptor.playable_url, headers=headers, timeout=self.timeout, stream=True) as response:
                if not response.ok:
                    raise DownloadError(
                        f"Failed to download video: {response.status_code} {response.reason}",
                        path=destination if destination.exists() else None,
                    )
                with destination.open("wb") as output:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        output.write(chunk)
                        if output.tell() > self.max_bytes:
                            raise DownloadError("media is too large for Telegram", path=destination)
        except requests.RequestException as err:
            raise DownloadError(f"Error fetching video: {err}", path=destination if destination.exists() else None) from err
        except OSError as err:
            raise DownloadError(f"Error writing file: {err}", path=destination if destination.exists() else None) from err

    async def download(self, descriptor: MediaDescriptor) -> Path:
        if not descriptor.playable_url:
            raise DownloadError(f"No playable URL for media {descriptor.id}")
        file_path = self.path_for(descriptor)
        async with self._lock_for(descriptor.id):
            if file_path.exists():
                logger.debug("File '%s' already exists. Skipping", file_path)
                return self._acquire_lease(file_path)

            try:
                self.download_dir.mkdir(parents=True, exist_ok=True)
            except OSError as err:
                raise DownloadError(f"Could not create download directory {self.download_dir}: {err}") from err
            await asyncio.to_thread(self._stream_to_file, descriptor, file_path)
            logger.info("Video downloaded successfully: %s", file_path)
            return self._acquire_lease(file_path)

    def release(self, path: Path) -> None:
        """Drop one lease on ``path`` and delete the file if it was the last.

        Also used for partial files that were never leased. Never raises.
        """
        path = Path(path)
        remaining = self._leases.get(path, 0) - 1
        if remaining > 0:
            self._leases[path] = remaining
            logger.debug("File '%s' still in use by %s deliveries", path, remaining)
            return
        self._leases.pop(path, None)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("File '%s' already removed", path)
        except OSError as err:
            logger.error("Error deleting video file %s: %s", path, err)
