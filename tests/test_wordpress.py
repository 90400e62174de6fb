"""
Tests for the WordPress REST client used for site search, keyword history and drafts.
"""

import json
import unittest
from unittest.mock import patch, MagicMock

import requests

from content_studio.clients.wordpress import REPORT_META_KEY, WordPressClient
from content_studio.models import ContentRecord, ImagePrompt, Link, ValidationReport


def wp_response(status_code: int, body=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.text = json.dumps(body)
    return response


def wp_post(post_id: int, title: str, slug: str = "") -> dict:
    return {
        "id": post_id,
        "title": {"rendered": title},
        "link": f"https://example.com/{slug or post_id}/",
    }


class TestWordPressClient(unittest.TestCase):

    def setUp(self):
        self.client = WordPressClient("https://example.com/", "admin", "app pass")

    def test_auth_header_and_url(self):
        self.assertEqual(self.client.wp_url, "https://example.com")
        self.assertTrue(self.client.headers["Authorization"].startswith("Basic "))

        with patch.object(self.client.session, "request", return_value=wp_response(200, [])) as mock_request:
            self.client.fetch_posts()
        args, kwargs = mock_request.call_args
        self.assertEqual(args, ("GET", "https://example.com/wp-json/wp/v2/posts"))
        self.assertEqual(kwargs["params"], {"per_page": 20})
        self.assertEqual(kwargs["timeout"], 30)

    @patch("time.sleep")
    def test_connection_errors_are_retried(self, mock_sleep):
        responses = [requests.ConnectionError("reset"), wp_response(200, [wp_post(1, "Hello")])]
        with patch.object(self.client.session, "request", side_effect=responses) as mock_request:
            posts = self.client.fetch_posts()
        self.assertEqual(len(posts), 1)
        self.assertEqual(mock_request.call_count, 2)

    @patch("time.sleep")
    def test_persistent_failure_returns_empty(self, mock_sleep):
        with patch.object(self.client.session, "request", side_effect=requests.Timeout("slow")) as mock_request:
            self.assertEqual(self.client.fetch_posts(), [])
            self.assertIsNone(self.client.get_post(5))
        self.assertEqual(mock_request.call_count, 6)

    def test_missing_url_skips_requests(self):
        client = WordPressClient(None, None, None)
        with patch.object(client.session, "request") as mock_request:
            self.assertEqual(client.fetch_posts(), [])
            self.assertIsNone(client.create_post({"title": "x"}))
            self.assertFalse(client.update_post(1, {}))
        mock_request.assert_not_called()

    def test_find_related_dedupes_and_ranks(self):
        topic_results = [wp_post(1, "Grinder reviews", "grinders"), wp_post(2, "Coffee brewing at home", "home")]
        keyword_results = [wp_post(2, "Coffee brewing at home", "home"), wp_post(3, "Pour over basics", "pour-over")]
        with patch.object(self.client.session, "request",
                          side_effect=[wp_response(200, topic_results), wp_response(200, keyword_results)]) as mock_request:
            related = self.client.find_related("coffee brewing", "pour over", max_results=5)

        self.assertEqual(mock_request.call_count, 2)
        self.assertEqual(mock_request.call_args_list[1][1]["params"]["search"], "pour over")
        self.assertEqual(related[0], {"title": "Coffee brewing at home", "url": "https://example.com/home/"})
        self.assertEqual(len(related), 3)

    def test_was_used_before(self):
        results = [wp_post(1, "Coffee Brewing &amp; you")]
        with patch.object(self.client.session, "request", return_value=wp_response(200, results)):
            self.assertTrue(self.client.was_used_before("coffee brewing"))
            self.assertFalse(self.client.was_used_before("espresso"))
        self.assertFalse(self.client.was_used_before(""))

    def test_create_draft(self):
        record = ContentRecord(title="Coffee brewing guide", content="<p>Body</p>", slug="coffee-brewing",
                               excerpt="Short", meta_description="Meta", focus_keyword="coffee brewing",
                               provider="groq")
        report = ValidationReport(provider="groq", auto_fix_applied=True)
        with patch.object(self.client.session, "request", return_value=wp_response(201, {"id": 42})) as mock_request:
            post_id = self.client.create_draft(record, report)

        self.assertEqual(post_id, 42)
        args, kwargs = mock_request.call_args
        self.assertEqual(args, ("POST", "https://example.com/wp-json/wp/v2/posts"))
        payload = kwargs["json"]
        self.assertEqual(payload["status"], "draft")
        self.assertEqual(payload["slug"], "coffee-brewing")
        self.assertEqual(payload["meta"]["_yoast_wpseo_focuskw"], "coffee brewing")
        self.assertEqual(payload["meta"]["_yoast_wpseo_metadesc"], "Meta")
        self.assertEqual(json.loads(payload["meta"][REPORT_META_KEY])["provider"], "groq")

    def test_create_draft_failure(self):
        record = ContentRecord(title="T", content="<p>Body</p>")
        with patch.object(self.client.session, "request", return_value=wp_response(400, {"code": "rest_invalid"})):
            self.assertIsNone(self.client.create_draft(record))

    def test_record_from_post(self):
        post = {
            "id": 9,
            "slug": "coffee-brewing",
            "title": {"raw": "Coffee brewing guide", "rendered": "Coffee brewing guide"},
            "content": {"raw": "<p>Body</p>", "rendered": "<p>Body</p>\n"},
            "excerpt": {"rendered": "<p>Short summary</p>"},
            "meta": {
                "_yoast_wpseo_focuskw": "coffee brewing",
                "_acs_image_prompts": [{"prompt": "cup", "alt": "coffee brewing cup"}],
                "_acs_internal_links": [{"url": "/a", "anchor": "A"}],
                REPORT_META_KEY: ValidationReport(provider="openai").model_dump_json(),
            },
        }
        record = self.client.record_from_post(post)
        self.assertEqual(record.title, "Coffee brewing guide")
        self.assertEqual(record.content, "<p>Body</p>")
        self.assertEqual(record.excerpt, "Short summary")
        self.assertEqual(record.meta_description, "Short summary")
        self.assertEqual(record.focus_keyword, "coffee brewing")
        self.assertEqual(record.image_prompts[0].alt, "coffee brewing cup")
        self.assertEqual(record.internal_links[0].url, "/a")
        self.assertEqual(record.provider, "openai")

    def test_record_from_post_with_broken_report(self):
        post = {"id": 3, "title": {"rendered": "T"}, "content": {"rendered": "<p>x</p>"},
                "meta": {REPORT_META_KEY: "{not json"}}
        record = self.client.record_from_post(post)
        self.assertEqual(record.provider, "")

    def test_save_record(self):
        record = ContentRecord(
            title="Coffee brewing guide", content="<p>Body</p>", focus_keyword="coffee brewing",
            image_prompts=[ImagePrompt(prompt="cup", alt="coffee brewing cup")],
            internal_links=[Link(url="/a", anchor="A")],
        )
        with patch.object(self.client.session, "request", return_value=wp_response(200, {"id": 9})) as mock_request:
            self.assertTrue(self.client.save_record(9, record))

        args, kwargs = mock_request.call_args
        self.assertEqual(args[1], "https://example.com/wp-json/wp/v2/posts/9")
        self.assertEqual(kwargs["json"]["meta"]["_acs_internal_links"], [{"url": "/a", "anchor": "A"}])
        self.assertNotIn(REPORT_META_KEY, kwargs["json"]["meta"])

    def test_save_record_with_report(self):
        record = ContentRecord(title="Coffee brewing guide", content="<p>Body</p>", focus_keyword="coffee brewing")
        report = ValidationReport(provider="groq", retry=True)
        with patch.object(self.client.session, "request", return_value=wp_response(200, {"id": 9})) as mock_request:
            self.assertTrue(self.client.save_record(9, record, report))

        meta = mock_request.call_args[1]["json"]["meta"]
        self.assertEqual(ValidationReport.model_validate_json(meta[REPORT_META_KEY]), report)


if __name__ == '__main__':
    unittest.main()
