import unittest

from domain.auto_match import compute_match_score, evaluate_auto_match, significant_tokens


class AutoMatchTestCase(unittest.TestCase):
    def test_significant_tokens_ignore_short_words(self) -> None:
        self.assertEqual(significant_tokens("the lord of the rings"), ["the", "lord", "the", "rings"])

    def test_exact_title_is_accepted(self) -> None:
        decision = evaluate_auto_match("Inception", "Inception")
        self.assertTrue(decision.accepted)
        self.assertEqual(decision.reason, "substring")
        self.assertEqual(decision.match_score, 1.0)

    def test_query_contained_in_title_is_accepted(self) -> None:
        decision = evaluate_auto_match("dark knight", "The Dark Knight Rises")
        self.assertTrue(decision.accepted)
        self.assertEqual(decision.reason, "substring")

    def test_half_of_words_is_enough(self) -> None:
        decision = evaluate_auto_match("batman begins", "Batman Forever")
        self.assertEqual(decision.match_score, 0.5)
        self.assertTrue(decision.accepted)
        self.assertEqual(decision.reason, "word_overlap")

    def test_typo_is_not_auto_selected(self) -> None:
        decision = evaluate_auto_match("transformrs", "Transformers")
        self.assertEqual(decision.match_score, 0.0)
        self.assertFalse(decision.accepted)
        self.assertEqual(decision.reason, "low_confidence")

    def test_empty_title_is_not_accepted_as_a_substring(self) -> None:
        # "" est contenu dans toute chaîne : un titre vide ne doit pas passer le test d'inclusion
        decision = evaluate_auto_match("Inception", "")
        self.assertFalse(decision.accepted)
        self.assertEqual(decision.reason, "low_confidence")

    def test_score_counts_partial_words(self) -> None:
        # "star" est contenu dans "stars"
        self.assertAlmostEqual(compute_match_score("star wars saga", "Stars"), 1 / 3)


if __name__ == "__main__":
    unittest.main()
