import dataclasses
import enum
import json
from typing import Any


@dataclasses.dataclass(frozen=True)
class MediaDescriptor:
    id: str
    playable_url: str | None
    is_slideshow: bool = False
    ext: str = "mp4"
    http_headers: dict[str, str] = dataclasses.field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(dataclasses.asdict(self), ensure_ascii=False)


@dataclasses.dataclass(frozen=True)
class Unparseable:
    reason: str


class _NoVideo:
    def __repr__(self) -> str:
        return "NO_VIDEO"

    def __bool__(self) -> bool:
        return False


# Returned instead of a descriptor when the post is a photo slideshow.
NO_VIDEO = _NoVideo()


def parse_descriptor(payload: Any) -> MediaDescriptor | Unparseable:
    """Validate a descriptor payload of uncertain shape.

    Accepts either a dict or its JSON text (as stored in the cache).
    Never raises: malformed input comes back as ``Unparseable``.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as err:
            return Unparseable(f"invalid json: {err}")
    if not isinstance(payload, dict):
        return Unparseable(f"expected an object, got {type(payload).__name__}")

    media_id = payload.get("id")
    if media_id is None or str(media_id).strip() == "":
        return Unparseable("missing id")
    media_id = str(media_id).strip()
    if "/" in media_id or media_id in {".", ".."}:
        return Unparseable(f"unsafe id: {media_id!r}")

    playable_url = payload.get("playable_url")
    if playable_url is not None and not isinstance(playable_url, str):
        return Unparseable("playable_url is not a string")

    ext = str(payload.get("ext") or "mp4").lower().lstrip(".")
    if not ext.isalnum():
        return Unparseable(f"unsafe extension: {ext!r}")

    headers = payload.get("http_headers") or {}
    if not isinstance(headers, dict):
        return Unparseable("http_headers is not an object")

    return MediaDescriptor(
        id=media_id,
        playable_url=playable_url or None,
        is_slideshow=bool(payload.get("is_slideshow")),
        ext=ext,
        http_headers={str(k): str(v) for k, v in headers.items()},
    )


@dataclasses.dataclass(frozen=True)
class ReplyTarget:
    chat_id: int
    message_id: int


@dataclasses.dataclass
class MessageEvent:
    text: str | None
    chat_id: int | None
    message_id: int
    client: Any


@dataclasses.dataclass
class DeliveryAttempt:
    url: str
    reply_target: ReplyTarget
    attempts_remaining: int
    last_error: Exception | None = None


class StatusPhase(enum.Enum):
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"


class DeliveryOutcome(enum.Enum):
    DELIVERED = "delivered"
    SKIPPED = "skipped"
    FAILED = "failed"
