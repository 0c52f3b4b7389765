# Turns raw wikitext into plain text and a short excerpt
from __future__ import annotations

import html
import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import List, Tuple

import mwparserfromhell

from parser import RawArticleRecord

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 200
# Templates nested deeper than this are removed together with their outermost template
MAX_TEMPLATE_DEPTH = 20

COMMENT_RE = re.compile(r'<!--.*?(?:-->|\Z)', re.DOTALL)
NOWIKI_RE = re.compile(r'<nowiki\s*>.*?</nowiki\s*>|<nowiki\s*/>', re.DOTALL | re.IGNORECASE)
REF_RE = re.compile(r'<ref\b[^>]*/\s*>|<ref\b[^>]*>.*?</ref\s*>', re.DOTALL | re.IGNORECASE)
REFERENCES_RE = re.compile(
    r'<references\b[^>]*/\s*>|<references\b[^>]*>.*?</references\s*>', re.DOTALL | re.IGNORECASE
)
BEHAVIOR_SWITCH_RE = re.compile(r'__[A-Z]+__')
# [http://example.org] has no label, keep the URL visible
BARE_EXTERNAL_LINK_RE = re.compile(r'\[((?:https?|ftp)://[^\s\[\]]+)\]')
TEMPLATE_TOKEN_RE = re.compile(r'(?P<open>\{\{)|(?P<close>\}\})')
TABLE_TOKEN_RE = re.compile(r'^[ \t]*(?:(?P<open>\{\|)|(?P<close>\|\}))', re.MULTILINE)
LINK_TOKEN_RE = re.compile(r'(?P<open>\[\[)|(?P<close>\]\])')
LEFTOVER_EMPHASIS_RE = re.compile(r"'{2,}")
HSPACE_RE = re.compile(r'[^\S\n]+')

# Fallback used only if mwparserfromhell gives up on a page
FALLBACK_PATTERNS = [
    (re.compile(r'\[\[[^\]|]*\|([^\]]*)\]\]'), r'\1'),
    (re.compile(r'\[\[([^\]]*)\]\]'), r'\1'),
    (re.compile(r'\[(?:https?|ftp)://[^\s\]]+\s+([^\]]*)\]'), r'\1'),
    (re.compile(r"'''([^']*?)'''"), r'\1'),
    (re.compile(r"''([^']*?)''"), r'\1'),
    (re.compile(r'<[^>]*>'), ''),
    (re.compile(r'={2,6}([^=\n]*?)={2,6}'), r'\1'),
]

# Canonical (English) prefixes are valid on every wiki, local ones are added per language
MEDIA_PREFIXES = ('File', 'Image', 'Category', 'Media')
LOCAL_MEDIA_PREFIXES = {
    'de': ('Datei', 'Bild', 'Kategorie'),
    'fr': ('Fichier', 'Catégorie'),
    'es': ('Archivo', 'Imagen', 'Categoría'),
    'it': ('Immagine', 'Categoria'),
    'nl': ('Bestand', 'Afbeelding', 'Categorie'),
    'pt': ('Arquivo', 'Ficheiro', 'Imagem', 'Categoria'),
    'pl': ('Plik', 'Grafika', 'Kategoria'),
    'sv': ('Fil', 'Bild', 'Kategori'),
    'ru': ('Файл', 'Изображение', 'Категория'),
}
# Interlanguage links such as [[de:Berlin]] or [[zh-yue:...]]
INTERLANGUAGE_PREFIX = r'[a-z]{2,3}(?:-[a-z]+)*'

_media_link_cache = {}


@dataclass(frozen=True)
class CleanedArticle:
    title: str
    plain_text: str
    excerpt: str
    page_id: int = 0


def _media_link_re(language: str):
    """Regex matching the inside of a [[...]] declaration that renders nothing."""
    pattern = _media_link_cache.get(language)
    if pattern is None:
        names = MEDIA_PREFIXES + LOCAL_MEDIA_PREFIXES.get(language, ())
        alternatives = '|'.join(re.escape(name) for name in names)
        pattern = re.compile(
            rf'\s*(?:(?i:{alternatives})|{INTERLANGUAGE_PREFIX})\s*:'
        )
        _media_link_cache[language] = pattern
    return pattern


def _balanced_spans(text: str, token_re, max_depth: int) -> Tuple[List[Tuple[int, int]], List[Tuple[int, int]]]:
    """Return (matched pairs, unmatched markers) for an open/close token pair.

    Openers past `max_depth` are not tracked individually; their closers are
    absorbed so that the whole construct belongs to its outermost pair.
    """
    pairs = []
    stray = []
    stack = []
    overflow = 0
    for match in token_re.finditer(text):
        if match.group('open') is not None:
            if len(stack) < max_depth:
                stack.append(match)
            else:
                overflow += 1
        elif overflow:
            overflow -= 1
        elif stack:
            opener = stack.pop()
            pairs.append((opener.start('open'), match.end('close')))
        else:
            stray.append((match.start('close'), match.end('close')))
    stray.extend((m.start('open'), m.end('open')) for m in stack)
    return pairs, stray


def _remove_spans(text: str, spans) -> str:
    """Cut out spans, ignoring those already covered by an earlier (outer) one."""
    if not spans:
        return text
    pieces = []
    last = 0
    for start, end in sorted(spans):
        if start < last:
            continue
        pieces.append(text[last:start])
        last = end
    pieces.append(text[last:])
    return ''.join(pieces)


def strip_templates(text: str, max_depth: int = MAX_TEMPLATE_DEPTH) -> str:
    """Remove {{...}} constructs, including their parameters."""
    if '{{' not in text and '}}' not in text:
        return text
    pairs, stray = _balanced_spans(text, TEMPLATE_TOKEN_RE, max_depth)
    return _remove_spans(text, pairs + stray)


def strip_tables(text: str) -> str:
    if '{|' not in text:
        return text
    pairs, stray = _balanced_spans(text, TABLE_TOKEN_RE, MAX_TEMPLATE_DEPTH)
    return _remove_spans(text, pairs + stray)


def strip_media_links(text: str, language: str = 'en') -> str:
    """Remove category, file, image and interlanguage declarations, captions included."""
    if '[[' not in text:
        return text
    declaration = _media_link_re(language)
    pairs, _stray = _balanced_spans(text, LINK_TOKEN_RE, MAX_TEMPLATE_DEPTH)
    spans = [(start, end) for start, end in pairs if declaration.match(text, start + 2)]
    return _remove_spans(text, spans)


def collapse_whitespace(text: str) -> str:
    lines = (HSPACE_RE.sub(' ', line).strip() for line in text.splitlines())
    return '\n'.join(line for line in lines if line)


def decode_entities(text: str) -> str:
    """Decode HTML entities until nothing changes (handles &amp;lt; and friends)."""
    # Every successful round shortens the text, so this terminates
    while True:
        decoded = html.unescape(text)
        if decoded == text:
            return text
        text = decoded


def _fallback_strip(text: str) -> str:
    for pattern, replacement in FALLBACK_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def clean_wikitext(raw: str, language: str = 'en') -> str:
    """Return the visible plain text of a wikitext fragment. Never raises."""
    if not raw:
        return ''
    # Entities are decoded up front so that escaped markup is handled by the
    # same passes as literal markup and the output carries nothing to decode
    text = decode_entities(raw)
    text = COMMENT_RE.sub('', text)
    text = NOWIKI_RE.sub('', text)
    text = REF_RE.sub('', text)
    text = REFERENCES_RE.sub('', text)
    text = BEHAVIOR_SWITCH_RE.sub('', text)
    text = strip_templates(text)
    text = strip_tables(text)
    text = strip_media_links(text, language)
    text = BARE_EXTERNAL_LINK_RE.sub(r'\1', text)

    try:
        text = mwparserfromhell.parse(text).strip_code(normalize=False, collapse=True)
    except Exception as exc:  # mwparserfromhell can fail on pathological input
        logger.debug("mwparserfromhell failed (%s), using regex fallback", exc)
        text = _fallback_strip(text)

    text = LEFTOVER_EMPHASIS_RE.sub('', text)
    return collapse_whitespace(text)


def make_excerpt(text: str, length: int = EXCERPT_LENGTH) -> str:
    """Prefix of at most `length` characters, cut at a word boundary when possible."""
    flat = ' '.join(text.split())
    if len(flat) <= length:
        return flat
    cut = flat.rfind(' ', 0, length + 1)
    if cut <= 0:
        # One long word: cut on characters, but not between a letter and its accent
        cut = length
        while cut > 0 and unicodedata.combining(flat[cut]):
            cut -= 1
    return flat[:cut].rstrip()


def clean_article(record: RawArticleRecord, language: str = 'en') -> CleanedArticle:
    plain_text = clean_wikitext(record.raw_text, language)
    return CleanedArticle(
        title=record.title,
        plain_text=plain_text,
        excerpt=make_excerpt(plain_text),
        page_id=record.page_id,
    )
