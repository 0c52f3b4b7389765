# Filesystem/URL safe names for articles, unique within one run
from __future__ import annotations

import hashlib
import re
import unicodedata
from typing import Dict, Optional
from urllib.parse import quote

from errors import EncodingExhaustion

MAX_SLUG_BYTES = 200
DIGEST_HEX_LENGTH = 16
# Room left for '_' + digest when a slug has to be shortened
_PREFIX_LENGTH = MAX_SLUG_BYTES - DIGEST_HEX_LENGTH - 1
MAX_COUNTER_ATTEMPTS = 10000

# Exact-match files keep the raw title, percent-encoded; long ones are shortened
MAX_EXACT_FILENAME_BYTES = 240

# Letters with no decomposition to an ASCII base letter
_TRANSLITERATION = str.maketrans({
    'ß': 'ss',
    'æ': 'ae',
    'Æ': 'ae',
    'ø': 'o',
    'Ø': 'o',
    'ł': 'l',
    'Ł': 'l',
    'đ': 'd',
    'Đ': 'd',
    'œ': 'oe',
    'Œ': 'oe',
    'þ': 'th',
    'Þ': 'th',
    'ð': 'd',
    'Ð': 'd',
    'ı': 'i',
})
_UNSAFE_RUN_RE = re.compile(r'[^a-z0-9_]+')


def title_digest(title: str) -> str:
    """Fixed-width hex digest of the full title."""
    return hashlib.sha256(title.encode('utf-8')).hexdigest()[:DIGEST_HEX_LENGTH]


def strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize('NFKD', text.translate(_TRANSLITERATION))
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_title(title: str) -> str:
    """Lowercase ASCII form of a title: runs of other characters become a single '_'."""
    ascii_form = strip_diacritics(title).lower()
    return _UNSAFE_RUN_RE.sub('_', ascii_form).strip('_')


def base_slug(title: str) -> str:
    """Slug candidate before collision handling."""
    normalized = normalize_title(title)
    if not normalized:
        # Nothing transliterable (e.g. a title in a non-Latin script)
        return f"t_{title_digest(title)}"
    if len(normalized) > MAX_SLUG_BYTES:
        return f"{normalized[:_PREFIX_LENGTH]}_{title_digest(title)}"
    return normalized


def _with_suffix(base: str, suffix: str) -> str:
    # Slugs are ASCII, so characters and bytes coincide
    room = MAX_SLUG_BYTES - len(suffix) - 1
    return f"{base[:room]}_{suffix}"


class NameRegistry:
    """Slug assignments for a single run.

    Create one per run and pass it to whoever encodes names; two registries
    never share state.
    """

    def __init__(self):
        self._counts: Dict[str, int] = {}
        self._by_title: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._by_title)

    def __contains__(self, slug: str) -> bool:
        return slug in self._counts

    def slug_for(self, title: str) -> Optional[str]:
        return self._by_title.get(title)

    def occurrences(self, slug: str) -> int:
        """How many titles asked for this slug as their first choice."""
        return self._counts.get(slug, 0)

    def encode(self, title: str) -> str:
        """Return the slug for `title`, assigning a new unique one on first sight."""
        existing = self._by_title.get(title)
        if existing is not None:
            return existing

        candidate = base_slug(title)
        if candidate not in self._counts:
            self._register(title, candidate)
            return candidate

        base = candidate
        count = self._counts[base]
        for _ in range(MAX_COUNTER_ATTEMPTS):
            count += 1
            candidate = _with_suffix(base, str(count))
            if candidate not in self._counts:
                self._counts[base] = count
                self._register(title, candidate)
                return candidate

        candidate = _with_suffix(base, title_digest(title))
        if candidate not in self._counts:
            self._register(title, candidate)
            return candidate
        raise EncodingExhaustion(f"Could not find a free slug for title {title!r}")

    def _register(self, title: str, slug: str) -> None:
        self._counts.setdefault(slug, 1)
        self._by_title[title] = slug


def exact_match_filename(title: str) -> str:
    """Reversible, filesystem-safe name derived from the raw title."""
    encoded = quote(title, safe='')
    if len(encoded) <= MAX_EXACT_FILENAME_BYTES:
        return encoded
    prefix = encoded[:MAX_EXACT_FILENAME_BYTES - DIGEST_HEX_LENGTH - 1]
    # Do not leave a dangling partial %XX escape
    cut = prefix.rfind('%', len(prefix) - 2)
    if cut != -1:
        prefix = prefix[:cut]
    return f"{prefix}_{title_digest(title)}"
