"""
Tests for the JSON repairer.
"""

import json
import unittest

from content_studio.repair import (
    close_truncated_json,
    escape_control_chars_in_strings,
    repair_json_text,
    strip_code_fence,
)


class TestRepairSteps(unittest.TestCase):

    def test_strip_code_fence_with_language(self):
        self.assertEqual(strip_code_fence('```json\n{"a": 1}\n```'), '{"a": 1}')

    def test_strip_code_fence_without_closing_fence(self):
        self.assertEqual(strip_code_fence('```\n{"a": 1}'), '{"a": 1}')

    def test_strip_code_fence_leaves_plain_text(self):
        self.assertEqual(strip_code_fence('{"a": 1}'), '{"a": 1}')

    def test_escape_only_inside_strings(self):
        text = '{\n"a": "line one\nline two"\n}'
        self.assertEqual(escape_control_chars_in_strings(text), '{\n"a": "line one\\nline two"\n}')

    def test_escape_honours_escaped_quotes(self):
        text = '{"a": "say \\"hi\\"\tnow"}'
        self.assertEqual(escape_control_chars_in_strings(text), '{"a": "say \\"hi\\"\\tnow"}')

    def test_close_truncated_string_and_braces(self):
        self.assertEqual(close_truncated_json('{"a": ["x", "y'), '{"a": ["x", "y"]}')

    def test_close_drops_dangling_comma(self):
        self.assertEqual(close_truncated_json('{"a": [1, 2,'), '{"a": [1, 2]}')

    def test_close_key_without_value(self):
        self.assertEqual(json.loads(close_truncated_json('{"a": 1, "b')), {"a": 1, "b": None})

    def test_close_trailing_colon(self):
        self.assertEqual(json.loads(close_truncated_json('{"a":')), {"a": None})


class TestRepairJsonText(unittest.TestCase):

    def test_valid_json_is_untouched(self):
        raw = '{\n  "title": "Coffee",\n  "tags": ["a", "b"]\n}'
        self.assertEqual(repair_json_text(raw), raw)

    def test_markdown_fenced_response(self):
        raw = '```json\n{"title": "Coffee tips", "content": "<p>Hi</p>"}\n```'
        self.assertEqual(json.loads(repair_json_text(raw))["title"], "Coffee tips")

    def test_pretty_printed_strings_with_literal_newlines(self):
        raw = '{"title": "Coffee", "content": "<p>One</p>\n<p>Two</p>"}'
        data = json.loads(repair_json_text(raw))
        self.assertEqual(data["content"], "<p>One</p>\n<p>Two</p>")

    def test_stray_control_characters(self):
        raw = '{"title": "Coffee"}\x07'
        self.assertEqual(json.loads(repair_json_text(raw)), {"title": "Coffee"})

    def test_truncated_response(self):
        raw = '{"title":"Coffee tips","content":"<p>Coffee is great'
        data = json.loads(repair_json_text(raw))
        self.assertEqual(data["title"], "Coffee tips")
        self.assertEqual(data["content"], "<p>Coffee is great")

    def test_truncated_fenced_response(self):
        raw = '```json\n{"title": "Coffee tips", "tags": ["a", "b'
        data = json.loads(repair_json_text(raw))
        self.assertEqual(data["tags"], ["a", "b"])

    def test_truncated_after_escape(self):
        raw = '{"title": "x\\'
        self.assertEqual(json.loads(repair_json_text(raw)), {"title": "x"})

    def test_irreparable_input_is_returned_unchanged(self):
        for raw in ["not json at all", "{]", ""]:
            self.assertEqual(repair_json_text(raw), raw)

    def test_repair_is_idempotent(self):
        samples = [
            '{"a": 1}',
            '```json\n{"a": "b\nc"}\n```',
            '{"title":"Coffee tips","content":"<p>Coffee is great',
            '{"a": [1, 2,',
            'plain words',
            '{"a": "x"}\x01\x02',
            '[{"a": {"b": ["c"',
        ]
        for raw in samples:
            once = repair_json_text(raw)
            self.assertEqual(repair_json_text(once), once, raw)

    def test_repair_keeps_valid_json_value(self):
        samples = ['{"a": "x\\ny"}', '[1, 2, {"b": null}]', '"text"', '42']
        for raw in samples:
            self.assertEqual(json.loads(repair_json_text(raw)), json.loads(raw))


if __name__ == '__main__':
    unittest.main()
