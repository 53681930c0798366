from __future__ import annotations

from pathlib import Path

from redis.exceptions import ConnectionError as RedisConnectionError

from vbot_errors import DeliveryError


class FakeRedis:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.get_calls = 0
        self.set_calls = 0

    async def get(self, key: str):
        self.get_calls += 1
        if self.fail:
            raise RedisConnectionError("connection refused")
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None):
        self.set_calls += 1
        if self.fail:
            raise RedisConnectionError("connection refused")
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def aclose(self):
        return None


class FakeChatClient:
    def __init__(self, send_failures: int = 0):
        self.send_failures = send_failures
        self.sent_files: list[tuple[int, Path, int | None]] = []
        self.sent_payloads: list[bytes] = []
        self.send_attempts = 0
        self.reactions: list[tuple[int, int, str | None]] = []
        self.texts: list[tuple[int, str, int | None]] = []
        self.edits: list[tuple[int, int, str]] = []
        self.deleted: list[tuple[int, int]] = []
        self._next_message_id = 1000

    async def send_text(self, chat_id, text, reply_to=None):
        self.texts.append((chat_id, text, reply_to))
        self._next_message_id += 1
        return self._next_message_id

    async def send_file(self, chat_id, path, reply_to=None):
        self.send_attempts += 1
        if self.send_failures > 0:
            self.send_failures -= 1
            raise DeliveryError("upload interrupted")
        self.sent_payloads.append(Path(path).read_bytes())
        self.sent_files.append((chat_id, Path(path), reply_to))

    async def set_reaction(self, chat_id, message_id, emoji):
        self.reactions.append((chat_id, message_id, emoji))

    async def edit_message(self, chat_id, message_id, text):
        self.edits.append((chat_id, message_id, text))

    async def delete_message(self, chat_id, message_id):
        self.deleted.append((chat_id, message_id))


class BrokenChatClient(FakeChatClient):
    async def send_text(self, chat_id, text, reply_to=None):
        raise RuntimeError("Bad Request: chat not found")

    async def set_reaction(self, chat_id, message_id, emoji):
        raise RuntimeError("Bad Request: REACTION_INVALID")

    async def edit_message(self, chat_id, message_id, text):
        raise RuntimeError("Bad Request: message to edit not found")

    async def delete_message(self, chat_id, message_id):
        raise RuntimeError("Bad Request: message to delete not found")


def video_payload(media_id: str = "7350000000000000001", url: str = "https://cdn.example/v.mp4") -> dict:
    return {"id": media_id, "playable_url": url, "is_slideshow": False, "ext": "mp4", "http_headers": {}}


def slideshow_payload(media_id: str = "7350000000000000002") -> dict:
    return {"id": media_id, "playable_url": None, "is_slideshow": True}
