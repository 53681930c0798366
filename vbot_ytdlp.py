import asyncio
import logging
from http.cookies import CookieError, SimpleCookie
from pathlib import Path
from urllib.parse import urlparse

import yt_dlp

from vbot_config import CHROME_USER_AGENT, MAX_BOT_FILE_BYTES, TIKTOK_COOKIES

logger = logging.getLogger("video-bot.ytdlp")

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "gif", "bmp"}


def _base_ydl_opts(cookiefile: Path | None = TIKTOK_COOKIES) -> dict:
    ydl_opts = {
        "noplaylist": False,
        "skip_download": True,
        "retries": 2,
        "extractor_retries": 2,
        "user_agent": CHROME_USER_AGENT,
        "http_headers": {
            "User-Agent": CHROME_USER_AGENT,
            "Referer": "https://www.tiktok.com/",
        },
        "quiet": True,
        "no_warnings": True,
    }
    if cookiefile and cookiefile.exists():
        ydl_opts["cookiefile"] = str(cookiefile)
    elif cookiefile:
        logger.warning("Cookies file is missing for tiktok: %s", cookiefile)
    return ydl_opts


def _is_photo_url(url: str) -> bool:
    return "/photo/" in urlparse(url or "").path


def _has_video(fmt: dict) -> bool:
    return bool(fmt.get("vcodec")) and fmt.get("vcodec") != "none"


def _is_progressive(fmt: dict) -> bool:
    if not _has_video(fmt):
        return False
    if fmt.get("acodec") == "none":
        return False
    if (fmt.get("ext") or "").lower() in IMAGE_EXTENSIONS:
        return False
    url = fmt.get("url") or ""
    return url.startswith("http://") or url.startswith("https://")


def _format_rank(fmt: dict) -> tuple:
    vcodec = (fmt.get("vcodec") or "").lower()
    h264 = vcodec.startswith("h264") or vcodec.startswith("avc")
    size = fmt.get("filesize") or fmt.get("filesize_approx") or 0
    fits = not size or size <= MAX_BOT_FILE_BYTES
    return (fits, h264, fmt.get("height") or 0, fmt.get("tbr") or 0)


def pick_playable_format(info: dict) -> dict | None:
    formats = [fmt for fmt in info.get("formats") or [] if isinstance(fmt, dict) and _is_progressive(fmt)]
    if formats:
        return max(formats, key=_format_rank)
    if info.get("url") and _is_progressive(info):
        return info
    return None


def _cookie_header(raw_cookies: str | None) -> str | None:
    if not raw_cookies:
        return None
    jar = SimpleCookie()
    try:
        jar.load(raw_cookies)
    except CookieError as err:
        logger.info("Could not parse format cookies: %s", err)
        return None
    pairs = [f"{name}={morsel.value}" for name, morsel in jar.items()]
    return "; ".join(pairs) or None


def is_slideshow_info(info: dict, canonical_url: str) -> bool:
    if _is_photo_url(canonical_url) or _is_photo_url(info.get("webpage_url") or ""):
        return True
    if info.get("entries"):
        return True
    formats = info.get("formats") or []
    if formats and not any(_has_video(fmt) for fmt in formats if isinstance(fmt, dict)):
        return True
    return not formats and bool(info.get("thumbnails")) and not _has_video(info)


def build_media_payload(info: dict, canonical_url: str) -> dict:
    """Normalize a yt-dlp info dict into a descriptor payload."""
    payload = {
        "id": info.get("id"),
        "playable_url": None,
        "is_slideshow": is_slideshow_info(info, canonical_url),
        "ext": "mp4",
        "http_headers": {},
    }
    if payload["is_slideshow"]:
        return payload

    fmt = pick_playable_format(info)
    if fmt is None:
        return payload

    headers = dict(fmt.get("http_headers") or info.get("http_headers") or {})
    cookie = _cookie_header(fmt.get("cookies"))
    if cookie:
        headers["Cookie"] = cookie
    payload.update(
        playable_url=fmt.get("url"),
        ext=(fmt.get("ext") or "mp4").lower(),
        http_headers=headers,
    )
    return payload


def _photo_post_id(url: str) -> str | None:
    parts = [part for part in urlparse(url).path.split("/") if part]
    if "photo" in parts:
        idx = parts.index("photo")
        if idx + 1 < len(parts):
            return parts[idx + 1]
    return None


async def fetch_media_info(canonical_url: str) -> dict:
    """Query yt-dlp for the video behind ``canonical_url``.

    Raises ``yt_dlp.utils.DownloadError`` (or whatever the extractor
    raises) on failure; the caller owns error translation.
    """
    ydl_opts = _base_ydl_opts()

    def _run_extract() -> dict:
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            return ydl.extract_info(canonical_url, download=False)

    try:
        info = await asyncio.to_thread(_run_extract)
    except yt_dlp.utils.DownloadError as err:
        photo_id = _photo_post_id(canonical_url)
        if photo_id and "unsupported" in str(err).lower():
            logger.info("Extractor does not support photo post, treating as slideshow: %s", canonical_url)
            return {"id": photo_id, "playable_url": None, "is_slideshow": True}
        raise

    if not isinstance(info, dict):
        raise yt_dlp.utils.DownloadError(f"yt-dlp returned unexpected result for {canonical_url}")
    return build_media_payload(info, canonical_url)
