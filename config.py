# Run configuration for a single bundle generation
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from topics import TopicFilter

DEFAULT_LANGUAGE = os.getenv("WIKIBUNDLE_LANGUAGE", "en")
DEFAULT_PAGE_SIZE = 50
DEFAULT_QUEUE_SIZE = 256


@dataclass(frozen=True)
class RunConfig:
    """Immutable settings for one run; build a new one with dataclasses.replace()."""

    input_path: Union[str, Path]
    output_path: Union[str, Path]
    language: str = DEFAULT_LANGUAGE
    topic_filter: TopicFilter = TopicFilter.NONE
    exact_matches: bool = False
    max_articles: Optional[int] = None
    pipelined: bool = False
    queue_size: int = DEFAULT_QUEUE_SIZE
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self):
        # Normalise paths and accept filter names given as strings
        object.__setattr__(self, "input_path", Path(self.input_path))
        object.__setattr__(self, "output_path", Path(self.output_path))
        if self.topic_filter is None:
            object.__setattr__(self, "topic_filter", TopicFilter.NONE)
        elif isinstance(self.topic_filter, str):
            object.__setattr__(self, "topic_filter", TopicFilter.from_name(self.topic_filter))

        if not self.language or not self.language.strip():
            raise ValueError("language must be a non-empty language code")
        if self.max_articles is not None and self.max_articles < 1:
            raise ValueError(f"max_articles must be a positive integer, got {self.max_articles}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.queue_size < 1:
            raise ValueError(f"queue_size must be positive, got {self.queue_size}")
