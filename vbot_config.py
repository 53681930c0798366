import os
from pathlib import Path


def _parse_int_set(raw: str) -> set[int]:
    out: set[int] = set()
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            out.add(int(part))
        except ValueError:
            continue
    return out


# -------------------------
# Telegram
# -------------------------
BOT_TOKEN = os.getenv("BOT_TOKEN", "").strip()
ALLOWED_CHAT_IDS = _parse_int_set(os.getenv("ALLOWED_CHAT_IDS", ""))
STATUS_MODE = os.getenv("STATUS_MODE", "reaction").strip().lower()
MAX_BOT_FILE_BYTES = int(os.getenv("MAX_BOT_FILE_BYTES", str(50 * 1024 * 1024)))
HEARTBEAT_INTERVAL_SECONDS = int(os.getenv("HEARTBEAT_INTERVAL_SECONDS", "300"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

# -------------------------
# Retry
# -------------------------
MAX_ATTEMPTS = int(os.getenv("MAX_ATTEMPTS", "10"))
RETRY_DELAY_SECONDS = float(os.getenv("RETRY_DELAY_SECONDS", "2"))

# -------------------------
# Network
# -------------------------
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))
REDIRECT_MAX_HOPS = int(os.getenv("REDIRECT_MAX_HOPS", "10"))
CHROME_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
COOKIES_DIR = Path(os.getenv("COOKIES_DIR", "cookies"))
TIKTOK_COOKIES = Path(os.getenv("TIKTOK_COOKIES", str(COOKIES_DIR / "tiktok.txt")))

# -------------------------
# Cache
# -------------------------
REDIS_URL = os.getenv("REDIS_URL", "").strip()
CACHE_KEY_PREFIX = os.getenv("CACHE_KEY_PREFIX", "")
REDIRECT_CACHE_TTL_SECONDS = int(os.getenv("REDIRECT_CACHE_TTL_SECONDS", str(60 * 60 * 24)))
METADATA_CACHE_TTL_SECONDS = int(os.getenv("METADATA_CACHE_TTL_SECONDS", str(60 * 10)))

# -------------------------
# Scratch storage
# -------------------------
DOWNLOAD_DIR = Path(os.getenv("DOWNLOAD_DIR", "downloads"))
