# Error types raised by the bundle generator
from __future__ import annotations

from typing import Optional


class BundleError(Exception):
    """Base class for every error raised while generating a bundle."""

    # Set by the pipeline when the error aborts a run
    last_stage: Optional[str] = None


class InputError(BundleError):
    """The dump cannot be read: missing file, corrupt header or truncated stream."""


class ParseError(BundleError):
    """Malformed dump structure.

    A non-fatal ParseError concerns a single page and the page is skipped.
    A fatal one means the stream cannot be resynchronised and the run stops.
    """

    def __init__(self, message: str, fatal: bool = False):
        super().__init__(message)
        self.fatal = fatal


class WriteError(BundleError):
    """A bundle file could not be written."""


class EncodingExhaustion(BundleError):
    """No unique slug could be produced for a title."""
