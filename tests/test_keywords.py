import unittest

from meetnotes.linking.keywords import STOP_WORDS, extract_keywords


class TestExtractKeywords(unittest.TestCase):
    def test_drops_stop_words_and_short_tokens(self):
        self.assertEqual(
            extract_keywords("The team will review the plan on Monday"),
            {"team", "review", "plan", "monday"},
        )

    def test_punctuation_splits_tokens(self):
        self.assertEqual(extract_keywords("Q3-budget: finance/ops!"), {"budget", "finance", "ops"})

    def test_duplicates_collapse_and_case_is_ignored(self):
        self.assertEqual(extract_keywords("Roadmap roadmap ROADMAP"), {"roadmap"})

    def test_empty_text(self):
        self.assertEqual(extract_keywords(""), set())
        self.assertEqual(extract_keywords("a an to of"), set())

    def test_stop_list_is_lower_case(self):
        self.assertTrue(all(w == w.lower() for w in STOP_WORDS))
        self.assertIn("will", STOP_WORDS)


if __name__ == "__main__":
    unittest.main()
