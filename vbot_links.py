import re

TIKTOK_URL_REGEX = re.compile(r"https?://(?:(?:vm|vt|www|m)\.)?tiktok\.com/[^\s]+", re.IGNORECASE)
TRAILING_PUNCTUATION = ".,;:!?)]}>"


def extract_links(text: str | None) -> list[str]:
    """Return unique TikTok links from ``text`` in order of first occurrence."""
    raw_links = TIKTOK_URL_REGEX.findall(text or "")
    links = [link.rstrip(TRAILING_PUNCTUATION) for link in raw_links]
    return list(dict.fromkeys(link for link in links if link))
