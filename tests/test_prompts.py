"""
Tests for prompt building.
"""

import unittest

from content_studio.config import SEORules
from content_studio.models import GenerationRequest
from content_studio.prompts import ContentPromptBuilder, word_count_target


class TestWordCountTarget(unittest.TestCase):

    def test_buckets_and_numbers(self):
        self.assertEqual(word_count_target("short"), 500)
        self.assertEqual(word_count_target("Medium"), 1000)
        self.assertEqual(word_count_target("long"), 1500)
        self.assertEqual(word_count_target("detailed"), 2000)
        self.assertEqual(word_count_target("1200"), 1200)
        self.assertEqual(word_count_target(750), 750)
        self.assertEqual(word_count_target("800-1200"), 1000)
        self.assertEqual(word_count_target("lots"), 1000)
        self.assertEqual(word_count_target(None), 1000)


class TestContentPromptBuilder(unittest.TestCase):

    def setUp(self):
        self.builder = ContentPromptBuilder(SEORules())

    def test_extract_focus_keyword(self):
        self.assertEqual(self.builder.extract_focus_keyword("How to brew the best coffee at home"), "brew best")
        self.assertEqual(self.builder.extract_focus_keyword("AI"), "AI")

    def test_focus_keyword_prefers_request_keywords(self):
        request = GenerationRequest(topic="Brewing at home", keywords="coffee brewing, pour over")
        self.assertEqual(request.keywords, ["coffee brewing", "pour over"])
        self.assertEqual(self.builder.resolve_focus_keyword(request), "coffee brewing")

    def test_build_prompt(self):
        request = GenerationRequest(topic="Coffee brewing at home", keywords=["coffee brewing", "pour over"],
                                    word_count="long")
        candidates = [{"title": f"Post {i}", "url": f"https://example.com/post-{i}"} for i in range(7)]
        prompt = self.builder.build_prompt(request, candidates)

        self.assertIn("TOPIC: Coffee brewing at home", prompt)
        self.assertIn("FOCUS KEYWORD: coffee brewing", prompt)
        self.assertIn("SECONDARY KEYWORDS: pour over", prompt)
        self.assertIn("about 1500 words", prompt)
        self.assertIn("- Title: Post 0, URL: https://example.com/post-0", prompt)
        self.assertIn("- Title: Post 4, URL: https://example.com/post-4", prompt)
        self.assertNotIn("Post 5", prompt)
        self.assertIn("at most 8 times", prompt)
        for field in ("meta_description", "image_prompts", "internal_links", "outbound_links"):
            self.assertIn(f"- {field}:", prompt)

    def test_build_prompt_for_used_keyword(self):
        request = GenerationRequest(topic="Coffee brewing", keywords=["coffee brewing"])
        prompt = self.builder.build_prompt(request, keyword_used_before=True)
        self.assertIn("at most 1 times", prompt)
        self.assertNotIn("INTERNAL LINK CANDIDATES", prompt)

    def test_build_retry_prompt(self):
        retry = self.builder.build_retry_prompt("ORIGINAL", ["First issue.", "Second issue."])
        self.assertTrue(retry.startswith("ORIGINAL\n\nPlease correct the following issues"))
        self.assertIn("return ONLY a valid JSON object", retry)
        self.assertTrue(retry.endswith("- First issue.\n- Second issue."))


if __name__ == '__main__':
    unittest.main()
