from __future__ import annotations

import unittest
from unittest import mock

import yt_dlp

from vbot_models import MediaDescriptor, parse_descriptor
from vbot_ytdlp import build_media_payload, fetch_media_info, is_slideshow_info, pick_playable_format

VIDEO_URL = "https://www.tiktok.com/@someone/video/7350000000000000001"
PHOTO_URL = "https://www.tiktok.com/@someone/photo/7350000000000000002"


def _info() -> dict:
    return {
        "id": "7350000000000000001",
        "webpage_url": VIDEO_URL,
        "formats": [
            {"format_id": "audio", "vcodec": "none", "acodec": "aac", "url": "https://cdn/a.m4a", "ext": "m4a"},
            {
                "format_id": "bytevc1_1080",
                "vcodec": "h265",
                "acodec": "aac",
                "height": 1080,
                "url": "https://cdn/h265.mp4",
                "ext": "mp4",
            },
            {
                "format_id": "h264_720",
                "vcodec": "h264",
                "acodec": "aac",
                "height": 720,
                "url": "https://cdn/h264.mp4",
                "ext": "mp4",
                "http_headers": {"Referer": "https://www.tiktok.com/"},
                "cookies": "tt_chain_token=abc123; Domain=.tiktok.com; Path=/",
            },
        ],
    }


class MediaPayloadTests(unittest.TestCase):
    def test_prefers_h264_progressive_format(self) -> None:
        fmt = pick_playable_format(_info())
        self.assertEqual(fmt["format_id"], "h264_720")

    def test_payload_carries_headers_and_cookies(self) -> None:
        payload = build_media_payload(_info(), VIDEO_URL)
        self.assertEqual(payload["playable_url"], "https://cdn/h264.mp4")
        self.assertFalse(payload["is_slideshow"])
        self.assertEqual(payload["http_headers"]["Referer"], "https://www.tiktok.com/")
        self.assertEqual(payload["http_headers"]["Cookie"], "tt_chain_token=abc123")
        self.assertIsInstance(parse_descriptor(payload), MediaDescriptor)

    def test_slideshow_detection(self) -> None:
        self.assertTrue(is_slideshow_info({"id": "2"}, PHOTO_URL))
        self.assertTrue(is_slideshow_info({"id": "2", "entries": [{"id": "img1"}]}, VIDEO_URL))
        self.assertTrue(
            is_slideshow_info({"id": "2", "formats": [{"vcodec": "none", "acodec": "mp3", "url": "https://cdn/m.mp3"}]}, VIDEO_URL)
        )
        self.assertFalse(is_slideshow_info(_info(), VIDEO_URL))

    def test_no_playable_format_leaves_url_empty(self) -> None:
        info = {"id": "1", "formats": [{"vcodec": "h264", "acodec": "aac", "url": "rtmp://live/x"}]}
        payload = build_media_payload(info, VIDEO_URL)
        self.assertIsNone(payload["playable_url"])


class FetchMediaInfoTests(unittest.IsolatedAsyncioTestCase):
    async def test_runs_extractor_without_download(self) -> None:
        ydl = mock.MagicMock()
        ydl.__enter__.return_value = ydl
        ydl.extract_info.return_value = _info()
        with mock.patch("vbot_ytdlp.yt_dlp.YoutubeDL", return_value=ydl) as ctor:
            payload = await fetch_media_info(VIDEO_URL)
        ydl.extract_info.assert_called_once_with(VIDEO_URL, download=False)
        self.assertTrue(ctor.call_args.args[0]["skip_download"])
        self.assertEqual(payload["id"], "7350000000000000001")

    async def test_unsupported_photo_post_is_a_slideshow(self) -> None:
        ydl = mock.MagicMock()
        ydl.__enter__.return_value = ydl
        ydl.extract_info.side_effect = yt_dlp.utils.DownloadError("ERROR: Unsupported URL: " + PHOTO_URL)
        with mock.patch("vbot_ytdlp.yt_dlp.YoutubeDL", return_value=ydl):
            payload = await fetch_media_info(PHOTO_URL)
        self.assertTrue(payload["is_slideshow"])
        self.assertEqual(payload["id"], "7350000000000000002")

    async def test_other_extractor_errors_propagate(self) -> None:
        ydl = mock.MagicMock()
        ydl.__enter__.return_value = ydl
        ydl.extract_info.side_effect = yt_dlp.utils.DownloadError("ERROR: HTTP Error 403")
        with mock.patch("vbot_ytdlp.yt_dlp.YoutubeDL", return_value=ydl):
            with self.assertRaises(yt_dlp.utils.DownloadError):
                await fetch_media_info(VIDEO_URL)


if __name__ == "__main__":
    unittest.main()
