# Tests for slug derivation and the per-run name registry
from __future__ import annotations

import re
import sys
import unittest
from pathlib import Path
from urllib.parse import unquote

ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(ROOT))

from slugs import (
    DIGEST_HEX_LENGTH,
    MAX_EXACT_FILENAME_BYTES,
    MAX_SLUG_BYTES,
    NameRegistry,
    base_slug,
    exact_match_filename,
    normalize_title,
    title_digest,
)

SLUG_RE = re.compile(r"^[a-z0-9_]+$")


class TestNormalizeTitle(unittest.TestCase):
    def test_basic(self):
        self.assertEqual(normalize_title("Hello World"), "hello_world")
        self.assertEqual(normalize_title("Test-123"), "test_123")
        self.assertEqual(normalize_title("  C++ (programming language)  "), "c_programming_language")

    def test_diacritics(self):
        self.assertEqual(normalize_title("François Mitterrand"), "francois_mitterrand")
        self.assertEqual(normalize_title("José María"), "jose_maria")
        self.assertEqual(normalize_title("Björk"), "bjork")
        self.assertEqual(normalize_title("Straße"), "strasse")
        self.assertEqual(normalize_title("Łódź"), "lodz")

    def test_underscores_are_kept_and_trimmed(self):
        self.assertEqual(normalize_title("_snake_case_"), "snake_case")

    def test_non_latin_title_gets_digest_slug(self):
        slug = base_slug("東京")
        self.assertEqual(slug, f"t_{title_digest('東京')}")


class TestLongTitles(unittest.TestCase):
    def test_overlong_title_is_truncated_with_digest(self):
        title = "A" * 300
        slug = base_slug(title)
        prefix, digest = slug.rsplit("_", 1)
        self.assertEqual(len(slug.encode("utf-8")), MAX_SLUG_BYTES)
        self.assertEqual(len(digest), DIGEST_HEX_LENGTH)
        self.assertEqual(digest, title_digest(title))
        self.assertTrue(("a" * 300).startswith(prefix))

    def test_titles_sharing_a_long_prefix_differ(self):
        first = "x" * 250 + " one"
        second = "x" * 250 + " two"
        self.assertNotEqual(base_slug(first), base_slug(second))

    def test_reencoding_long_title_is_stable(self):
        registry = NameRegistry()
        title = "Very long title " * 20
        self.assertEqual(registry.encode(title), registry.encode(title))


class TestNameRegistry(unittest.TestCase):
    def test_collision_gets_counter_suffix(self):
        registry = NameRegistry()
        self.assertEqual(registry.encode("Café"), "cafe")
        self.assertEqual(registry.encode("cafe "), "cafe_2")
        self.assertEqual(registry.encode("CAFE"), "cafe_3")
        # Titles keep the slug they were given first
        self.assertEqual(registry.encode("cafe "), "cafe_2")
        self.assertEqual(registry.slug_for("Café"), "cafe")
        self.assertEqual(len(registry), 3)

    def test_counter_skips_naturally_taken_slugs(self):
        registry = NameRegistry()
        self.assertEqual(registry.encode("cafe 2"), "cafe_2")
        self.assertEqual(registry.encode("Cafe"), "cafe")
        self.assertEqual(registry.encode("café"), "cafe_3")

    def test_distinct_titles_get_distinct_slugs(self):
        registry = NameRegistry()
        titles = [
            "Paris", "paris", "PARIS", "Paris!", "Pâris", "Paris (band)", "Paris band",
            "Paris_band", "Paris  band", "東京", "大阪", "Paris 2", "Paris_2",
        ]
        slugs = [registry.encode(title) for title in titles]
        self.assertEqual(len(set(slugs)), len(titles))
        for slug in slugs:
            self.assertRegex(slug, SLUG_RE)
            self.assertLessEqual(len(slug), MAX_SLUG_BYTES)

    def test_registries_are_independent(self):
        first = NameRegistry()
        second = NameRegistry()
        first.encode("Rome")
        self.assertEqual(second.encode("rome"), "rome")
        self.assertNotIn("rome_2", second)


class TestExactMatchFilename(unittest.TestCase):
    def test_reversible_for_normal_titles(self):
        for title in ["AC/DC", "Café", "What?", "C++", "50% off"]:
            with self.subTest(title=title):
                name = exact_match_filename(title)
                self.assertNotIn("/", name)
                self.assertEqual(unquote(name), title)

    def test_case_is_preserved(self):
        self.assertNotEqual(exact_match_filename("Paris"), exact_match_filename("paris"))

    def test_long_titles_are_shortened(self):
        title = "é" * 200
        name = exact_match_filename(title)
        self.assertLessEqual(len(name), MAX_EXACT_FILENAME_BYTES)
        self.assertTrue(name.endswith(title_digest(title)))
        self.assertNotRegex(name, r"%.?_")


if __name__ == "__main__":
    unittest.main()
