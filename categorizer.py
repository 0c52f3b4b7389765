# Pluggable article categorizers
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Protocol, Union, runtime_checkable

import joblib

from errors import InputError

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.5  # probability a class needs before it becomes a label
DEFAULT_MODEL_PATH = Path(__file__).resolve().parent / "categorizer.joblib"
# Only the start of an article is embedded
MAX_EMBED_CHARS = 2000

EMPTY: FrozenSet[str] = frozenset()


@runtime_checkable
class ArticleCategorizer(Protocol):
    """Maps an article to a set of category labels.

    Implementations must give the same answer for the same input no matter
    how many articles they have seen before.
    """

    def categorize(self, title: str, content: str) -> FrozenSet[str]:
        ...


class NoCategorizer:
    """Default categorizer: no article belongs to any category."""

    def categorize(self, title: str, content: str) -> FrozenSet[str]:
        return EMPTY


class KeywordCategorizer:
    """Assigns a label whenever one of its patterns matches the title or content.

    Patterns are regular expressions matched on word boundaries, ignoring case.
    """

    def __init__(self, patterns: Mapping[str, Iterable[str]], search_content: bool = True):
        self.search_content = search_content
        self._compiled: Dict[str, re.Pattern] = {}
        for label, label_patterns in patterns.items():
            label_patterns = list(label_patterns)
            if not label_patterns:
                continue
            self._compiled[label] = re.compile(
                r'\b(?:' + '|'.join(label_patterns) + r')\b',
                re.IGNORECASE,
            )

    @property
    def labels(self) -> FrozenSet[str]:
        return frozenset(self._compiled)

    def categorize(self, title: str, content: str) -> FrozenSet[str]:
        found = set()
        for label, pattern in self._compiled.items():
            if pattern.search(title) or (self.search_content and pattern.search(content)):
                found.add(label)
        return frozenset(found)


class ClassifierCategorizer:
    """Labels articles with a trained (embedder, classifier) pair.

    The pair is the one saved by train_categorizer.py. The model is loaded
    lazily on first use and kept on the instance.
    """

    def __init__(
        self,
        model_path: Union[str, Path] = DEFAULT_MODEL_PATH,
        threshold: float = DEFAULT_THRESHOLD,
        model=None,
    ):
        self.model_path = Path(model_path)
        self.threshold = threshold
        self._embedder = None
        self._clf = None
        if model is not None:
            self._embedder, self._clf = model

    def _load_model(self) -> None:
        if self._embedder is not None and self._clf is not None:
            return
        logger.info("Loading categorizer model from %s", self.model_path)
        try:
            self._embedder, self._clf = joblib.load(self.model_path)
        except Exception as exc:  # joblib surfaces unpickling failures under many types
            raise InputError(f"Unable to load categorizer model at {self.model_path}: {exc}") from exc

    def categorize(self, title: str, content: str) -> FrozenSet[str]:
        self._load_model()
        text = f"{title}\n{content[:MAX_EMBED_CHARS]}"
        X = self._embedder.encode([text], show_progress_bar=False)
        probs = self._clf.predict_proba(X)[0]
        return frozenset(
            str(label)
            for label, p in zip(self._clf.classes_, probs)
            if p >= self.threshold
        )


def load_categorizer(kind: str, model_path: Optional[str] = None, labels: Optional[Iterable[str]] = None, **kwargs) -> ArticleCategorizer:
    """Build a categorizer from a command line style name."""
    if kind in (None, '', 'none'):
        return NoCategorizer()
    if kind == 'model':
        return ClassifierCategorizer(model_path or DEFAULT_MODEL_PATH, **kwargs)
    if kind == 'keywords':
        labels = list(labels or [])
        if not labels:
            raise ValueError("The keyword categorizer needs at least one label")
        return KeywordCategorizer({label: [re.escape(label)] for label in labels})
    if kind == 'llm':
        from llm_categorizer import OllamaCategorizer

        labels = list(labels or [])
        if not labels:
            raise ValueError("The LLM categorizer needs at least one label")
        return OllamaCategorizer(labels, **kwargs)
    raise ValueError(f"Unknown categorizer: {kind}")
