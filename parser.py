# Streaming extraction of article records from a MediaWiki XML dump
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from contextlib import closing
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple

from errors import ParseError
from reader import CHUNK_SIZE, Source, iter_decompressed

logger = logging.getLogger(__name__)

ARTICLE_NAMESPACE = 0

PAGE_OPEN = b'<page'
PAGE_CLOSE = b'</page>'
ROOT_OPEN = b'<mediawiki'
ROOT_CLOSE = b'</mediawiki>'
# Bytes kept between chunks so that a marker split across two chunks is still found
_TAIL = len(ROOT_CLOSE)
_TAG_DELIMITERS = b'> \t\r\n/'

# Pages in these namespaces sometimes show up without a usable <ns> element
EXCLUDED_TITLE_PREFIXES = (
    'File:',
    'Category:',
    'Template:',
    'User:',
    'Talk:',
    'Wikipedia:',
    'Help:',
    'Portal:',
    'MediaWiki:',
    'Module:',
)


@dataclass(frozen=True)
class RawArticleRecord:
    page_id: int
    namespace: int
    title: str
    raw_text: str
    redirect: Optional[str] = None


@dataclass
class ExtractionStats:
    pages: int = 0
    malformed: int = 0
    non_article: int = 0


def _local_tag(tag) -> str:
    """Tag name without the '{namespace}' prefix."""
    return tag.rsplit('}', 1)[-1] if isinstance(tag, str) else ''


def _find_start_tag(buf: bytearray, tag: bytes, start: int) -> Tuple[int, bool]:
    """Find `tag` used as a start tag; the flag is False when more bytes are needed to decide."""
    pos = buf.find(tag, start)
    while pos != -1:
        end = pos + len(tag)
        if end >= len(buf):
            return pos, False
        if buf[end] in _TAG_DELIMITERS:
            return pos, True
        pos = buf.find(tag, pos + 1)
    return -1, True


def iter_page_fragments(chunks: Iterable[bytes], stats: Optional[ExtractionStats] = None) -> Iterator[bytes]:
    """Cut the byte stream into complete <page>...</page> fragments.

    Only the page currently being assembled is buffered. A page whose end
    marker never arrives before the next <page> start is dropped and counted
    as malformed. Ending the stream inside a page, or without closing an
    opened <mediawiki> root, is fatal.
    """
    stats = stats if stats is not None else ExtractionStats()
    buf = bytearray()
    in_page = False
    scan_from = 0
    root_opened = root_closed = False

    def note_root(region) -> None:
        nonlocal root_opened, root_closed
        if ROOT_OPEN in region:
            root_opened = True
        if ROOT_CLOSE in region:
            root_closed = True

    for chunk in chunks:
        buf += chunk
        while True:
            if not in_page:
                pos, decided = _find_start_tag(buf, PAGE_OPEN, 0)
                if pos == -1:
                    note_root(buf)
                    del buf[:max(0, len(buf) - _TAIL)]
                    break
                note_root(buf[:pos])
                del buf[:pos]
                if not decided:
                    break
                in_page = True
                scan_from = len(PAGE_OPEN)
                continue

            close = buf.find(PAGE_CLOSE, scan_from)
            reopen, decided = _find_start_tag(buf, PAGE_OPEN, scan_from)
            if reopen != -1 and (close == -1 or reopen < close):
                if not decided:
                    scan_from = reopen
                    break
                stats.pages += 1
                stats.malformed += 1
                logger.warning("Skipping page #%d: <page> opened again before </page>", stats.pages)
                del buf[:reopen]
                scan_from = len(PAGE_OPEN)
                continue
            if close == -1:
                scan_from = max(len(PAGE_OPEN), len(buf) - len(PAGE_CLOSE))
                break

            end = close + len(PAGE_CLOSE)
            fragment = bytes(buf[:end])
            del buf[:end]
            in_page = False
            yield fragment

    if in_page:
        raise ParseError("Dump ended inside a <page> element", fatal=True)
    note_root(buf)
    if root_opened and not root_closed:
        raise ParseError("Dump ended without closing the <mediawiki> root element", fatal=True)


def find_namespace(source: Source, compression: Optional[str] = None, chunk_size: int = 4096) -> Optional[str]:
    """Return the default namespace URI declared on the dump's root element.

    Only the start of the dump is read. Returns None for a root element without
    a default namespace.
    """
    # start-ns events for an element arrive before its start event
    parser = ET.XMLPullParser(['start-ns', 'start'])
    with closing(iter_decompressed(source, compression, chunk_size)) as chunks:
        try:
            for chunk in chunks:
                parser.feed(chunk)
                for event, value in parser.read_events():
                    if event == 'start-ns' and value[0] == '':
                        return value[1]
                    if event == 'start':
                        return None
        except ET.ParseError as exc:
            raise ParseError(f"Cannot read the dump header: {exc}", fatal=True) from exc
    raise ParseError("Dump has no root element", fatal=True)


def _child(elem, name):
    for child in elem:
        if _local_tag(child.tag) == name:
            return child
    return None


def _child_text(elem, name) -> Optional[str]:
    child = _child(elem, name)
    return child.text if child is not None else None


def parse_page(fragment: bytes) -> RawArticleRecord:
    """Parse one <page> fragment; raises a non-fatal ParseError when it is malformed."""
    parser = ET.XMLPullParser(['end'])
    page = None
    try:
        parser.feed(fragment)
        parser.close()
        for _event, elem in parser.read_events():
            if _local_tag(elem.tag) == 'page':
                page = elem
    except ET.ParseError as exc:
        raise ParseError(f"Malformed page XML: {exc}") from exc

    if page is None:
        raise ParseError("Fragment does not contain a <page> element")

    title = _child_text(page, 'title')
    if not title or not title.strip():
        raise ParseError("Page has no title")

    ns_text = _child_text(page, 'ns')
    id_text = _child_text(page, 'id')
    try:
        namespace = int(ns_text) if ns_text and ns_text.strip() else ARTICLE_NAMESPACE
        page_id = int(id_text) if id_text and id_text.strip() else 0
    except ValueError as exc:
        raise ParseError(f"Page '{title}' has a non-numeric id or namespace") from exc

    redirect_elem = _child(page, 'redirect')
    redirect = None
    if redirect_elem is not None:
        redirect = redirect_elem.get('title') or (redirect_elem.text or '').strip() or title

    # Full-history dumps carry several revisions; the last one is current
    text = None
    for child in page:
        if _local_tag(child.tag) == 'revision':
            text = _child_text(child, 'text')

    return RawArticleRecord(
        page_id=page_id,
        namespace=namespace,
        title=title.strip(),
        raw_text=text or '',
        redirect=redirect,
    )


def is_article_title(title: str) -> bool:
    return not title.startswith(EXCLUDED_TITLE_PREFIXES)


def iter_articles(chunks: Iterable[bytes], stats: Optional[ExtractionStats] = None) -> Iterator[RawArticleRecord]:
    """Yield main-namespace records lazily, skipping malformed pages."""
    stats = stats if stats is not None else ExtractionStats()
    for fragment in iter_page_fragments(chunks, stats):
        stats.pages += 1
        try:
            record = parse_page(fragment)
        except ParseError as exc:
            stats.malformed += 1
            logger.warning("Skipping malformed page #%d: %s", stats.pages, exc)
            continue

        if record.namespace != ARTICLE_NAMESPACE or not is_article_title(record.title):
            stats.non_article += 1
            continue
        yield record


class WikipediaParser:
    """Single-pass producer of RawArticleRecord values for one dump."""

    def __init__(self, source: Source, compression: Optional[str] = None, chunk_size: int = CHUNK_SIZE):
        self.source = source
        self.compression = compression
        self.chunk_size = chunk_size
        self.stats = ExtractionStats()
        self._started = False

    def __iter__(self) -> Iterator[RawArticleRecord]:
        if self._started:
            raise RuntimeError("WikipediaParser can only be iterated once")
        self._started = True
        chunks = iter_decompressed(self.source, self.compression, self.chunk_size)
        return iter_articles(chunks, self.stats)
