"""
Tests for environment driven configuration.
"""

import os
import unittest
from unittest.mock import patch

from content_studio.config import SEORules, Settings


class TestSettings(unittest.TestCase):

    @patch.dict(os.environ, {
        "DEFAULT_PROVIDER": "OpenAI",
        "BACKUP_PROVIDERS": "groq, openai, bogus, gemini",
        "OPENAI_API_KEY": "sk-test",
        "GROQ_API_KEY": "gsk-test",
        "GEMINI_API_KEY": "",
        "GROQ_MODEL": "llama-test",
        "MAX_TOKENS": "2048",
        "TEMPERATURE": "not-a-number",
    }, clear=True)
    def test_from_env(self):
        settings = Settings.from_env()
        self.assertEqual(settings.provider_order(), ["openai", "groq", "gemini"])
        self.assertEqual(settings.usable_providers(), ["openai", "groq"])
        self.assertEqual(settings.providers["groq"].model, "llama-test")
        self.assertEqual(settings.providers["openai"].model, "gpt-4o-mini")
        self.assertEqual(settings.max_tokens, 2048)
        self.assertEqual(settings.temperature, 0.7)

    @patch.dict(os.environ, {"GROQ_API_KEY": "gsk-test", "GROQ_ENABLED": "false"}, clear=True)
    def test_disabled_provider_is_not_usable(self):
        self.assertEqual(Settings.from_env().usable_providers(), [])

    @patch.dict(os.environ, {"MOCK_PROVIDER_ENABLED": "true", "DEFAULT_PROVIDER": "mock"}, clear=True)
    def test_mock_provider(self):
        self.assertEqual(Settings.from_env().usable_providers(), ["mock"])

    def test_requested_order_overrides_configuration(self):
        settings = Settings(default_provider="groq", backup_providers=["openai"])
        self.assertEqual(settings.provider_order(["anthropic", "Anthropic", "groq"]), ["anthropic", "groq"])


class TestSEORules(unittest.TestCase):

    @patch.dict(os.environ, {
        "SITE_URL": "https://blog.example.com/",
        "KEYWORD_SYNONYMS": "coffee making, the brew",
        "FALLBACK_OUTBOUND_URL": "https://www.sca.coffee/",
    }, clear=True)
    def test_from_env(self):
        rules = SEORules.from_env()
        self.assertEqual(rules.synonyms, ["coffee making", "the brew"])
        self.assertEqual(rules.fallback_outbound_url, "https://www.sca.coffee/")
        self.assertEqual(rules.site_url, "https://blog.example.com")
        self.assertEqual(rules.fallback_internal_links[0], ("https://blog.example.com/related-topics", "Related topics"))

    def test_defaults(self):
        rules = SEORules()
        self.assertEqual((rules.title_max_length, rules.meta_max_length), (60, 155))
        self.assertEqual((rules.density_max_new, rules.density_max_used), (8, 1))
        self.assertEqual((rules.keep_first_new, rules.keep_first_used), (3, 1))
        self.assertIn("nevertheless", rules.transition_words)


if __name__ == '__main__':
    unittest.main()
