# Serializes articles and aggregate listings into the static bundle layout
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from cleaner import CleanedArticle
from errors import WriteError
from index_builder import CategoryIndex, PaginationIndex
from slugs import exact_match_filename
from topics import TopicFilter

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_VERSION = "1.0.0"

ARTICLE_DIR = "get_article"
PAGES_DIR = "list_articles"
CATEGORY_DIR = "categories"
EXACT_MATCH_DIR = "exact_matches"
RESOURCES_DIR = "resources"


def article_payload(article: CleanedArticle, categories: Iterable[str]) -> Dict:
    return {
        "title": article.title,
        "content": article.plain_text,
        "excerpt": article.excerpt,
        "categories": sorted(categories),
    }


def build_manifest(server_name: str) -> Dict:
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "serverInfo": {"name": server_name, "version": SERVER_VERSION},
        "capabilities": {
            "resources": [
                {
                    "uri": "wikipedia://stats",
                    "name": "Wikipedia Statistics",
                    "description": "Statistics about the Wikipedia dump",
                    "mimeType": "application/json",
                },
                {
                    "uri": "wikipedia://articles",
                    "name": "Article List",
                    "description": "List of all available Wikipedia articles",
                    "mimeType": "application/json",
                },
            ],
            "tools": [
                {
                    "name": "get_article",
                    "description": "Get the full content of a specific Wikipedia article",
                    "inputSchema": {
                        "type": "object",
                        "properties": {"title": {"type": "string", "description": "Article title"}},
                        "required": ["title"],
                    },
                },
                {
                    "name": "list_articles",
                    "description": "List available Wikipedia articles with pagination",
                    "inputSchema": {
                        "type": "object",
                        "properties": {
                            "page": {
                                "type": "integer",
                                "description": "Page number (1-based, default: 1)",
                                "minimum": 1,
                            }
                        },
                        "required": [],
                    },
                },
                {
                    "name": "list_categories",
                    "description": "List available article categories",
                    "inputSchema": {"type": "object", "properties": {}, "required": []},
                },
                {
                    "name": "categories",
                    "description": "Get articles from a specific category",
                    "inputSchema": {
                        "type": "object",
                        "properties": {"category": {"type": "string", "description": "Category name"}},
                        "required": ["category"],
                    },
                },
            ],
        },
    }


class BundleWriter:
    """Writes bundle files under one output directory.

    Files from an earlier run at the same location are overwritten when their
    names repeat and otherwise left in place.
    """

    def __init__(self, output_path: Union[str, Path]):
        self.root = Path(output_path)
        self.files_written = 0

    def prepare(self) -> None:
        for sub in (ARTICLE_DIR, PAGES_DIR, CATEGORY_DIR, RESOURCES_DIR):
            self._mkdir(self.root / sub)

    def _mkdir(self, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WriteError(f"Cannot create directory {path}: {exc}") from exc

    def _write_json(self, path: Path, payload) -> Path:
        try:
            with open(path, "w", encoding="utf-8") as out_file:
                json.dump(payload, out_file, ensure_ascii=False, indent=2)
        except OSError as exc:
            raise WriteError(f"Cannot write {path}: {exc}") from exc
        self.files_written += 1
        return path

    def write_article(self, slug: str, article: CleanedArticle, categories: Iterable[str] = ()) -> Path:
        return self._write_json(self.root / ARTICLE_DIR / f"{slug}.json", article_payload(article, categories))

    def write_exact_match(self, article: CleanedArticle, categories: Iterable[str] = ()) -> Path:
        directory = self.root / EXACT_MATCH_DIR
        self._mkdir(directory)
        filename = exact_match_filename(article.title)
        return self._write_json(directory / f"{filename}.json", article_payload(article, categories))

    def write_pages(self, pagination: PaginationIndex) -> None:
        total = pagination.total_pages
        for number, page in enumerate(pagination.pages, start=1):
            payload = {
                "page": number,
                "totalPages": total,
                "articles": [
                    {"slug": s.slug, "title": s.title, "excerpt": s.excerpt}
                    for s in page
                ],
            }
            self._write_json(self.root / PAGES_DIR / f"page_{number}.json", payload)

        if total:
            message = f"Use /list_articles/page_{{n}}.json to get specific pages (1-{total})"
        else:
            message = "No articles available"
        self._write_json(
            self.root / "list_articles.json",
            {
                "totalPages": total,
                "perPage": pagination.page_size,
                "totalArticles": pagination.total_articles,
                "message": message,
            },
        )

    def write_articles_resource(self, pagination: PaginationIndex) -> Path:
        """All article titles in listing order, served as the wikipedia://articles resource."""
        titles = [summary.title for page in pagination.pages for summary in page]
        return self._write_json(self.root / RESOURCES_DIR / "articles.json", titles)

    def write_categories(self, categories: CategoryIndex) -> Dict[str, str]:
        """Write the category listing and one file per label; returns label -> file stem."""
        labels = categories.labels
        self._write_json(self.root / "list_categories.json", {"categories": labels})

        # Percent-encoded label, so categories/<label>.json resolves from the listing
        files = {}
        for label in labels:
            stem = exact_match_filename(label)
            files[label] = stem
            payload = {
                "category": label,
                "articles": [{"slug": s.slug, "title": s.title} for s in categories.articles(label)],
            }
            self._write_json(self.root / CATEGORY_DIR / f"{stem}.json", payload)
        return files

    def write_manifest(self, topic_filter: TopicFilter, language: str) -> Path:
        return self._write_json(self.root / "mcp.json", build_manifest(topic_filter.server_name(language)))

    def write_stats(
        self,
        summary,
        language: str,
        topic_filter: TopicFilter,
        generated_at: Optional[datetime] = None,
    ) -> Path:
        generated_at = generated_at or datetime.now(timezone.utc)
        stats = {
            "total_articles": summary.accepted,
            "total_redirects": summary.redirects,
            "rejected": summary.rejected,
            "skipped_malformed": summary.skipped_malformed,
            "language": language,
            "topic_filter": None if topic_filter is TopicFilter.NONE else topic_filter.description(),
            "generated_at": generated_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
        }
        return self._write_json(self.root / RESOURCES_DIR / "stats.json", stats)
