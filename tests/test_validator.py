"""
Tests for the SEO/readability validator.
"""

import unittest

from content_studio.config import SEORules
from content_studio.models import ContentRecord, ImagePrompt, Link
from content_studio.utils.text import Sentence, analyze
from content_studio.validator import SEOValidator

COMPLIANT_CONTENT = (
    "<p>Coffee brewing is easy to learn at home. This guide covers the basics.</p>\n"
    "<h2>Why coffee brewing matters</h2>\n"
    "<p>Good beans make a difference. However, the method matters too. Fresh water helps.</p>\n"
    "<p>Moreover, grind size changes the taste. Therefore, measure each dose. "
    "Read the <a href=\"https://en.wikipedia.org/wiki/Coffee_preparation\">preparation guide</a> for details.</p>"
)


def make_record(**overrides) -> ContentRecord:
    data = dict(
        title="Coffee brewing: A Practical Guide",
        meta_description="Learn coffee brewing basics with simple steps.",
        slug="coffee-brewing",
        content=COMPLIANT_CONTENT,
        excerpt="A short guide to coffee brewing.",
        focus_keyword="coffee brewing",
        image_prompts=[ImagePrompt(prompt="A pour over setup", alt="coffee brewing setup")],
        internal_links=[Link(url="/coffee-beans", anchor="Choosing beans"), Link(url="/grinders", anchor="Grinder guide")],
        provider="groq",
    )
    data.update(overrides)
    return ContentRecord(**data)


class TestSEOValidator(unittest.TestCase):

    def setUp(self):
        self.validator = SEOValidator(SEORules())

    def test_compliant_record_passes(self):
        self.assertEqual(self.validator.validate(make_record()), [])

    def test_validation_is_deterministic(self):
        record = make_record(title="Guide", content="<p><b>Bold</b> text without the keyword.</p>")
        self.assertEqual(self.validator.validate(record), self.validator.validate(record))

    def test_missing_fields(self):
        errors = self.validator.validate(ContentRecord(title="T", content="<p>Body.</p>"))
        self.assertIn("Missing or empty required field: meta_description.", errors)
        self.assertIn("Missing or empty required field: focus_keyword.", errors)
        self.assertIn("Missing or empty required field: internal_links.", errors)
        self.assertNotIn("Missing or empty required field: title.", errors)

    def test_title_must_start_with_keyword(self):
        errors = self.validator.validate(make_record(title="A Practical Guide to coffee brewing"))
        self.assertEqual(errors, ["SEO title must begin with the focus keyword."])

    def test_title_length(self):
        errors = self.validator.validate(make_record(title="Coffee brewing " + "x" * 60))
        self.assertEqual(errors, ["SEO title is too long (max 60 characters)."])

    def test_density_when_keyword_used_before(self):
        errors = self.validator.validate(make_record(), keyword_used_before=True)
        self.assertEqual(errors, ["Focus keyword appears 2 times in the content (max 1)."])

    def test_density_for_new_keyword(self):
        extra = "".join("<p>Coffee brewing again.</p>" for _ in range(7))
        errors = self.validator.validate(make_record(content=COMPLIANT_CONTENT + extra))
        self.assertIn("Focus keyword appears 9 times in the content (max 8).", errors)

    def test_keyword_counted_as_whole_words(self):
        record = make_record(focus_keyword="coffee", title="Coffee brewing: A Practical Guide",
                             image_prompts=[ImagePrompt(prompt="p", alt="coffee cup")])
        content = COMPLIANT_CONTENT.replace("Good beans", "Coffeehouse beans")
        self.assertEqual(self.validator.validate(record.model_copy(update={"content": content}),
                                                 keyword_used_before=True),
                         ["Focus keyword appears 2 times in the content (max 1)."])

    def test_heading_must_include_keyword_or_synonym(self):
        content = COMPLIANT_CONTENT.replace("Why coffee brewing matters", "Why it matters")
        errors = self.validator.validate(make_record(content=content))
        self.assertEqual(errors, ["At least one H2 or H3 subheading must include the focus keyword or a close synonym."])

        validator = SEOValidator(SEORules(synonyms=["coffee making"]))
        content = COMPLIANT_CONTENT.replace("Why coffee brewing matters", "Coffee making at home")
        self.assertEqual(validator.validate(make_record(content=content)), [])

    def test_first_paragraph_must_include_keyword(self):
        content = COMPLIANT_CONTENT.replace("Coffee brewing is easy", "Brewing is easy")
        errors = self.validator.validate(make_record(content=content))
        self.assertEqual(errors, ["First paragraph must include the focus keyword."])

    def test_internal_links(self):
        errors = self.validator.validate(make_record(internal_links=[Link(url="/a", anchor="Coffee Brewing")]))
        self.assertEqual(errors, [
            "Internal link anchors should not be the exact focus keyphrase.",
            "At least two suggested internal links are required.",
        ])

    def test_image_prompts(self):
        errors = self.validator.validate(make_record(image_prompts=[ImagePrompt(prompt="cup", alt="a cup")]))
        self.assertEqual(errors, ["Image alt text must include the focus keyword or a close synonym."])

        errors = self.validator.validate(make_record(image_prompts=[]))
        self.assertIn("Missing or empty required field: image_prompts.", errors)
        self.assertIn("At least one image prompt is required.", errors)

    def test_meta_and_excerpt_length(self):
        errors = self.validator.validate(make_record(meta_description="m" * 156, excerpt="e" * 151))
        self.assertEqual(errors, [
            "Meta description is too long (max 155 characters).",
            "Excerpt is too long (max 150 characters).",
        ])

    def test_readability(self):
        long_sentence = " ".join(["steady"] * 30)
        content = (
            f"<p>Coffee brewing {long_sentence}.</p><h2>Why coffee brewing matters</h2>"
            f"<p>However, {long_sentence}.</p>"
        )
        errors = self.validator.validate(make_record(content=content))
        self.assertIn("Average sentence length is too high (target <=20 words).", errors)
        self.assertIn("Too many long sentences (more than 15% exceed 25 words).", errors)
        self.assertNotIn("Not enough transition words (target >=30% of sentences).", errors)

    def test_transition_words(self):
        content = COMPLIANT_CONTENT.replace("However, the", "The").replace("Moreover, grind", "Grind")
        errors = self.validator.validate(make_record(content=content))
        self.assertEqual(errors, ["Not enough transition words (target >=30% of sentences)."])

    def test_bold_tags(self):
        content = COMPLIANT_CONTENT.replace("Good beans", "<strong class=\"x\">Good</strong> beans")
        errors = self.validator.validate(make_record(content=content))
        self.assertEqual(errors, ["Content must not contain bold or strong tags."])

    def test_outbound_link_required(self):
        content = COMPLIANT_CONTENT.replace(
            "<a href=\"https://en.wikipedia.org/wiki/Coffee_preparation\">preparation guide</a>", "preparation guide")
        errors = self.validator.validate(make_record(content=content))
        self.assertEqual(errors, ["Content should include at least one reputable outbound link."])

    def test_links_to_own_site_are_not_outbound(self):
        validator = SEOValidator(SEORules(site_url="https://en.wikipedia.org"))
        errors = validator.validate(make_record())
        self.assertEqual(errors, ["Content should include at least one reputable outbound link."])

    def test_content_is_analyzed_per_call(self):
        self.assertIsNot(analyze(COMPLIANT_CONTENT), analyze(COMPLIANT_CONTENT))
        sentence = analyze("<h2>Heading</h2><p>One short line.</p>").sentences[0]
        self.assertEqual(sentence, Sentence("One short line."))
        self.assertEqual(sentence.word_count, 3)


if __name__ == '__main__':
    unittest.main()
