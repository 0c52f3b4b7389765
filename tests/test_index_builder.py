# Tests for pagination and category accumulation
from __future__ import annotations

import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(ROOT))

from index_builder import IndexBuilder, paginate


class TestIndexBuilder(unittest.TestCase):
    def test_pages_are_full_except_last(self):
        builder = IndexBuilder(page_size=3)
        for n in range(7):
            builder.add(f"slug_{n}", f"Title {n}", "")
        pagination, _ = builder.finalize()

        self.assertEqual(pagination.total_pages, 3)
        self.assertEqual(pagination.total_articles, 7)
        self.assertEqual([len(page) for page in pagination.pages], [3, 3, 1])
        self.assertEqual(pagination.page(3)[0].slug, "slug_6")
        with self.assertRaises(IndexError):
            pagination.page(4)

    def test_sorted_by_title_then_slug(self):
        builder = IndexBuilder(page_size=10)
        builder.add("zebra", "Zebra", "")
        builder.add("apple_2", "Apple", "")
        builder.add("apple", "Apple", "")
        builder.add("eclair", "Éclair", "")
        builder.add("banana", "banana", "")
        pagination, _ = builder.finalize()
        self.assertEqual(
            [summary.slug for summary in pagination.page(1)],
            ["apple", "apple_2", "zebra", "banana", "eclair"],
        )

    def test_empty(self):
        pagination, categories = IndexBuilder().finalize()
        self.assertEqual(pagination.total_pages, 0)
        self.assertEqual(pagination.total_articles, 0)
        self.assertEqual(categories.labels, [])

    def test_categories(self):
        builder = IndexBuilder(page_size=2)
        builder.add("rome", "Rome", "", categories={"history", "cities"})
        builder.add("atom", "Atom", "", categories=["science"])
        builder.add("athens", "Athens", "", categories=["cities", "history"])
        builder.add("plain", "Plain", "")
        _, categories = builder.finalize()

        self.assertEqual(categories.labels, ["cities", "history", "science"])
        self.assertEqual([s.slug for s in categories.articles("history")], ["athens", "rome"])
        self.assertEqual([s.slug for s in categories.articles("science")], ["atom"])
        self.assertEqual(categories.articles("unknown"), [])

    def test_add_after_finalize(self):
        builder = IndexBuilder()
        builder.finalize()
        with self.assertRaises(RuntimeError):
            builder.add("late", "Late", "")

    def test_rejects_bad_page_size(self):
        with self.assertRaises(ValueError):
            IndexBuilder(page_size=0)

    def test_paginate(self):
        self.assertEqual(paginate(list(range(5)), 2), [[0, 1], [2, 3], [4]])
        self.assertEqual(paginate([], 2), [])


if __name__ == "__main__":
    unittest.main()
