from __future__ import annotations

import unittest

from vbot_links import extract_links


class ExtractLinksTests(unittest.TestCase):
    def test_single_short_link_surrounded_by_text(self) -> None:
        links = extract_links("check this https://vt.tiktok.com/ZSk12qr6C out")
        self.assertEqual(links, ["https://vt.tiktok.com/ZSk12qr6C"])

    def test_duplicates_collapse_in_first_occurrence_order(self) -> None:
        text = (
            "https://www.tiktok.com/@a/video/1 and https://vm.tiktok.com/ZMabc/ "
            "again https://www.tiktok.com/@a/video/1"
        )
        self.assertEqual(
            extract_links(text),
            ["https://www.tiktok.com/@a/video/1", "https://vm.tiktok.com/ZMabc/"],
        )

    def test_domain_match_is_case_insensitive_and_url_kept_verbatim(self) -> None:
        links = extract_links("look HTTPS://VT.TikTok.com/ZSk12QR6C")
        self.assertEqual(links, ["HTTPS://VT.TikTok.com/ZSk12QR6C"])

    def test_trailing_punctuation_is_stripped(self) -> None:
        links = extract_links("(see https://vt.tiktok.com/ZSk12qr6C).")
        self.assertEqual(links, ["https://vt.tiktok.com/ZSk12qr6C"])

    def test_empty_or_missing_text(self) -> None:
        self.assertEqual(extract_links(None), [])
        self.assertEqual(extract_links(""), [])

    def test_other_domains_are_ignored(self) -> None:
        text = "https://youtube.com/shorts/abc https://nottiktok.com/x https://example.com/tiktok.com/x"
        self.assertEqual(extract_links(text), [])


if __name__ == "__main__":
    unittest.main()
