# Streaming reader that turns a (possibly compressed) dump into decompressed byte chunks
from __future__ import annotations

import bz2
import gzip
import logging
import lzma
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

from errors import InputError

logger = logging.getLogger(__name__)

# Fixed read size; memory use does not grow with the size of the dump
CHUNK_SIZE = 1024 * 1024

COMPRESSION_BY_SUFFIX = {
    '.bz2': 'bz2',
    '.gz': 'gzip',
    '.xz': 'xz',
    '.xml': 'none',
}

_OPENERS = {
    'bz2': bz2.open,
    'gzip': gzip.open,
    'xz': lzma.open,
}

Source = Union[str, Path, BinaryIO]


def _is_path(source) -> bool:
    return isinstance(source, (str, Path))


def _describe(source) -> str:
    if _is_path(source):
        return str(source)
    return getattr(source, 'name', repr(source))


def detect_compression(path: Union[str, Path]) -> str:
    """Pick the compression scheme from the file extension."""
    suffix = Path(path).suffix.lower()
    try:
        return COMPRESSION_BY_SUFFIX[suffix]
    except KeyError:
        raise InputError(
            f"Unsupported file format '{suffix or path}'. Use .xml, .bz2, .gz or .xz files."
        ) from None


def open_source(source: Source, compression: Optional[str] = None) -> BinaryIO:
    """Open a path or wrap a binary file object so that reads return decompressed bytes."""
    if compression is None:
        compression = detect_compression(source) if _is_path(source) else 'none'
    if compression != 'none' and compression not in _OPENERS:
        raise InputError(f"Unknown compression scheme: {compression}")

    try:
        if compression == 'none':
            return open(source, 'rb') if _is_path(source) else source
        return _OPENERS[compression](source, 'rb')
    except OSError as exc:
        raise InputError(f"Cannot open dump {_describe(source)}: {exc}") from exc


def iter_decompressed(
    source: Source,
    compression: Optional[str] = None,
    chunk_size: int = CHUNK_SIZE,
) -> Iterator[bytes]:
    """Yield decompressed chunks of at most `chunk_size` bytes.

    Single pass: the generator cannot be restarted. Corrupt headers and
    truncated streams surface as InputError on the read that detects them.
    """
    name = _describe(source)
    stream = open_source(source, compression)
    # Caller-owned file objects read without decompression are left open
    owned = stream is not source
    total = 0
    try:
        while True:
            try:
                chunk = stream.read(chunk_size)
            except EOFError as exc:
                raise InputError(f"Dump {name} is truncated after {total} bytes: {exc}") from exc
            except (OSError, lzma.LZMAError) as exc:
                raise InputError(f"Dump {name} is corrupt or unreadable: {exc}") from exc
            if not chunk:
                break
            total += len(chunk)
            yield chunk
    finally:
        if owned:
            stream.close()
    logger.debug("Read %d decompressed bytes from %s", total, name)
