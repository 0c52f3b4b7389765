# Accumulates accepted articles into paged listings and category memberships
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from config import DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class ArticleSummary:
    slug: str
    title: str
    excerpt: str


def sort_key(summary: ArticleSummary) -> Tuple[str, str]:
    # Code point order of str matches UTF-8 byte order; slug breaks title ties
    return summary.title, summary.slug


@dataclass
class PaginationIndex:
    page_size: int
    pages: List[List[ArticleSummary]] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    @property
    def total_articles(self) -> int:
        return sum(len(page) for page in self.pages)

    def page(self, number: int) -> List[ArticleSummary]:
        """1-based page lookup."""
        if number < 1 or number > len(self.pages):
            raise IndexError(f"Page {number} out of range (1-{len(self.pages)})")
        return self.pages[number - 1]


@dataclass
class CategoryIndex:
    members: Dict[str, List[ArticleSummary]] = field(default_factory=dict)

    @property
    def labels(self) -> List[str]:
        return sorted(self.members)

    def articles(self, label: str) -> List[ArticleSummary]:
        return self.members.get(label, [])


def paginate(summaries: List[ArticleSummary], page_size: int) -> List[List[ArticleSummary]]:
    return [summaries[i:i + page_size] for i in range(0, len(summaries), page_size)]


class IndexBuilder:
    """Collects summaries while articles stream by; ordering is fixed at finalize()."""

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.page_size = page_size
        self._summaries: List[ArticleSummary] = []
        self._categories: Dict[str, List[ArticleSummary]] = {}
        self._finalized = False

    def __len__(self) -> int:
        return len(self._summaries)

    def add(self, slug: str, title: str, excerpt: str, categories: Iterable[str] = ()) -> ArticleSummary:
        if self._finalized:
            raise RuntimeError("IndexBuilder is already finalized")
        summary = ArticleSummary(slug=slug, title=title, excerpt=excerpt)
        self._summaries.append(summary)
        for label in set(categories):
            self._categories.setdefault(label, []).append(summary)
        return summary

    def finalize(self) -> Tuple[PaginationIndex, CategoryIndex]:
        self._finalized = True
        ordered = sorted(self._summaries, key=sort_key)
        pagination = PaginationIndex(page_size=self.page_size, pages=paginate(ordered, self.page_size))
        categories = CategoryIndex(
            members={
                label: sorted(members, key=sort_key)
                for label, members in self._categories.items()
            }
        )
        return pagination, categories
