"""
Similarity module behavioral tests (distance, thresholds, suggestions).

Scope
- Validate levenshtein() metric properties (identity, symmetry, triangle inequality).
- Validate suggestion thresholds for short and long tokens.
- Validate find_most_similar()/find_similar() ranking and tie-breaking.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import itertools
import unittest
from unittest import TestCase

from helmsman import levenshtein, threshold, find_most_similar, find_similar


class TestLevenshtein(TestCase):
    """Behavioral tests for the distance itself."""

    words = ("kitten", "sitting", "build", "buld", "deploy", "", "Deploy", "a", "abc")

    def testKittenSitting(self):
        self.assertEqual(levenshtein("kitten", "sitting"), 3)

    def testIdentityAndCaseInsensitivity(self):
        for word in self.words:
            self.assertEqual(levenshtein(word, word), 0)
        self.assertEqual(levenshtein("Build", "build"), 0)

    def testEmptyOperands(self):
        self.assertEqual(levenshtein("", "abc"), 3)
        self.assertEqual(levenshtein("abc", ""), 3)

    def testSymmetry(self):
        for first, second in itertools.product(self.words, repeat=2):
            self.assertEqual(levenshtein(first, second), levenshtein(second, first))

    def testTriangleInequality(self):
        for a, b, c in itertools.product(self.words, repeat=3):
            self.assertLessEqual(levenshtein(a, c), levenshtein(a, b) + levenshtein(b, c))

    def testNonStringsRejected(self):
        with self.assertRaises(TypeError):
            levenshtein("a", 1)


class TestSuggestions(TestCase):
    """Behavioral tests for thresholds and suggestion ranking."""

    def testThresholdGrowsWithLength(self):
        self.assertEqual(threshold("abc"), 2)
        self.assertEqual(threshold("abcdefgh"), 2)
        self.assertEqual(threshold("abcdefghijkl"), 3)
        self.assertEqual(threshold("a" * 16), 4)

    def testSingleEditSuggestion(self):
        self.assertEqual(find_most_similar("buld", ["build", "test", "deploy"]), "build")

    def testNothingCloseEnough(self):
        self.assertIsNone(find_most_similar("xyz", ["build", "test", "deploy"]))

    def testEmptyCandidates(self):
        self.assertIsNone(find_most_similar("build", []))
        self.assertEqual(find_similar("build", []), [])

    def testTieKeepsFirstOccurrence(self):
        self.assertEqual(find_most_similar("cat", ["bat", "hat"]), "bat")

    def testLargeCommandSet(self):
        candidates = ["large-cmd-%d" % index for index in range(100)]
        self.assertEqual(find_most_similar("large-cnd-50", candidates), "large-cmd-50")

    def testFindSimilarOrderAndLimit(self):
        found = find_similar("stat", ["start", "status", "stop", "state", "xyz"])
        self.assertEqual(found, ["start", "state", "status"])
        self.assertEqual(find_similar("stat", ["start", "state"], limit=1), ["start"])


if __name__ == "__main__":
    unittest.main()
