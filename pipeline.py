# Orchestrates one run: dump -> articles -> filter/categorize/encode -> bundle files
from __future__ import annotations

import logging
import queue
import threading
import time
from contextlib import closing
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Iterator, Optional

from categorizer import ArticleCategorizer, NoCategorizer
from cleaner import CleanedArticle, clean_article
from config import RunConfig
from errors import BundleError
from index_builder import IndexBuilder
from parser import ExtractionStats, iter_articles
from reader import iter_decompressed
from slugs import NameRegistry
from writer import BundleWriter

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 1000
# How long a blocked producer waits before re-checking for cancellation
_PUT_TIMEOUT = 0.1


class Stage(Enum):
    IDLE = 'idle'
    READING = 'reading'
    EXTRACTING = 'extracting'
    CLEANING = 'cleaning'
    FILTERING = 'filtering'
    CATEGORIZING = 'categorizing'
    ENCODING = 'encoding'
    ACCUMULATING = 'accumulating'
    FINALIZING = 'finalizing'
    DONE = 'done'
    FAILED = 'failed'


@dataclass
class RunSummary:
    accepted: int = 0
    rejected: int = 0
    skipped_malformed: int = 0
    duplicates: int = 0
    redirects: int = 0
    non_article: int = 0
    pages_written: int = 0
    categories_written: int = 0
    stage: Stage = Stage.IDLE
    last_completed: Stage = Stage.IDLE
    elapsed: float = 0.0
    categories: dict = field(default_factory=dict, repr=False)

    def as_dict(self) -> dict:
        data = asdict(self)
        data.pop('categories')
        data['stage'] = self.stage.value
        data['last_completed'] = self.last_completed.value
        return data


class _ProducerFailure:
    def __init__(self, exc: BaseException):
        self.exc = exc


_END_OF_STREAM = object()


class BundleGenerator:
    """Runs the pipeline for one RunConfig.

    The registry, index builder and writer belong to the thread calling run();
    with `pipelined` enabled only reading, extraction and cleaning move to a
    producer thread.
    """

    def __init__(self, config: RunConfig, categorizer: Optional[ArticleCategorizer] = None):
        self.config = config
        self.categorizer = categorizer or NoCategorizer()
        self.registry = NameRegistry()
        self.index = IndexBuilder(config.page_size)
        self.writer = BundleWriter(config.output_path)
        self.stats = ExtractionStats()
        self.summary = RunSummary()
        self._redirects = 0

    def _enter(self, stage: Stage) -> None:
        self.summary.stage = stage

    def _complete(self, stage: Stage) -> None:
        self.summary.last_completed = stage

    def _cap_reached(self) -> bool:
        cap = self.config.max_articles
        return cap is not None and self.summary.accepted >= cap

    def _cleaned_articles(self, track: bool = True) -> Iterator[CleanedArticle]:
        """Read, extract and clean; redirects are counted and dropped here."""
        chunks = iter_decompressed(self.config.input_path)
        with closing(iter_articles(chunks, self.stats)) as records:
            for record in records:
                if track:
                    self._complete(Stage.EXTRACTING)
                if record.redirect is not None:
                    self._redirects += 1
                    continue
                article = clean_article(record, self.config.language)
                if track:
                    self._complete(Stage.CLEANING)
                yield article

    def _pipelined_articles(self) -> Iterator[CleanedArticle]:
        """Same stream as _cleaned_articles, produced by a thread through a bounded queue."""
        items = queue.Queue(maxsize=self.config.queue_size)
        stop = threading.Event()

        def put(item) -> bool:
            while not stop.is_set():
                try:
                    items.put(item, timeout=_PUT_TIMEOUT)
                    return True
                except queue.Full:
                    continue
            return False

        def produce() -> None:
            try:
                with closing(self._cleaned_articles(track=False)) as articles:
                    for article in articles:
                        if not put(article):
                            return
            except Exception as exc:
                put(_ProducerFailure(exc))
                return
            put(_END_OF_STREAM)

        producer = threading.Thread(target=produce, name='bundle-producer', daemon=True)
        producer.start()
        try:
            while True:
                item = items.get()
                if item is _END_OF_STREAM:
                    break
                if isinstance(item, _ProducerFailure):
                    raise item.exc
                self._complete(Stage.CLEANING)
                yield item
        finally:
            stop.set()
            producer.join()

    def process(self, article: CleanedArticle) -> bool:
        """Filter, categorize, encode, write and index one article; True if accepted."""
        self._enter(Stage.FILTERING)
        if not self.config.topic_filter.is_relevant(article.title, article.plain_text):
            self.summary.rejected += 1
            self._complete(Stage.FILTERING)
            return False
        self._complete(Stage.FILTERING)

        if self.registry.slug_for(article.title) is not None:
            self.summary.duplicates += 1
            logger.warning("Skipping duplicate page for title %r", article.title)
            return False

        self._enter(Stage.CATEGORIZING)
        categories = frozenset(self.categorizer.categorize(article.title, article.plain_text))
        self._complete(Stage.CATEGORIZING)

        self._enter(Stage.ENCODING)
        slug = self.registry.encode(article.title)
        self._complete(Stage.ENCODING)

        self._enter(Stage.ACCUMULATING)
        self.writer.write_article(slug, article, categories)
        if self.config.exact_matches:
            self.writer.write_exact_match(article, categories)
        self.index.add(slug, article.title, article.excerpt, categories)
        self.summary.accepted += 1
        self._complete(Stage.ACCUMULATING)

        if self.summary.accepted % PROGRESS_EVERY == 0:
            logger.info("Processed %d articles...", self.summary.accepted)
        return True

    def finalize(self) -> None:
        self._enter(Stage.FINALIZING)
        pagination, categories = self.index.finalize()
        self.writer.write_pages(pagination)
        self.writer.write_articles_resource(pagination)
        self.summary.categories = self.writer.write_categories(categories)
        self.summary.pages_written = pagination.total_pages
        self.summary.categories_written = len(categories.labels)
        self._collect_counts()
        self.writer.write_manifest(self.config.topic_filter, self.config.language)
        self.writer.write_stats(self.summary, self.config.language, self.config.topic_filter)
        self._complete(Stage.FINALIZING)

    def _collect_counts(self) -> None:
        self.summary.skipped_malformed = self.stats.malformed
        self.summary.non_article = self.stats.non_article
        self.summary.redirects = self._redirects

    def run(self) -> RunSummary:
        started = time.time()
        try:
            self._enter(Stage.READING)
            self.writer.prepare()
            source = self._pipelined_articles() if self.config.pipelined else self._cleaned_articles()
            with closing(source) as articles:
                for article in articles:
                    self.process(article)
                    if self._cap_reached():
                        logger.info("Reached max_articles=%d, stopping early", self.config.max_articles)
                        break
                    self._enter(Stage.READING)
            self.finalize()
        except Exception as exc:
            self._collect_counts()
            failed_in = self.summary.stage
            self.summary.stage = Stage.FAILED
            if isinstance(exc, BundleError):
                exc.last_stage = self.summary.last_completed.value
            logger.error(
                "Run failed during %s (last completed stage: %s): %s",
                failed_in.value, self.summary.last_completed.value, exc,
            )
            raise
        finally:
            self.summary.elapsed = time.time() - started

        self.summary.stage = Stage.DONE
        self._complete(Stage.DONE)
        logger.info(
            "Generated bundle in %s: %d accepted, %d rejected, %d malformed",
            self.config.output_path, self.summary.accepted, self.summary.rejected,
            self.summary.skipped_malformed,
        )
        return self.summary


def generate(config: RunConfig, categorizer: Optional[ArticleCategorizer] = None) -> RunSummary:
    """Generate the bundle described by `config`."""
    return BundleGenerator(config, categorizer).run()
