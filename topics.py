# Keyword based topic filters used to gate which articles enter the bundle
from __future__ import annotations

from enum import Enum
from typing import Tuple

# Keywords are matched as lowercase substrings of the title or the cleaned content.
HISTORY_KEYWORDS = (
    'history',
    'historical',
    'war',
    'battle',
    'empire',
    'kingdom',
    'dynasty',
    'revolution',
    'ancient',
    'medieval',
    'century',
    'civilization',
    'monarch',
    'emperor',
    'treaty',
    'archaeolog',
    'colonial',
    'reign',
    'siege',
)

SCIENCE_KEYWORDS = (
    'science',
    'scientific',
    'physics',
    'chemistry',
    'biology',
    'astronomy',
    'geology',
    'ecology',
    'genetics',
    'molecule',
    'atom',
    'evolution',
    'experiment',
    'quantum',
    'species',
)

TECHNOLOGY_KEYWORDS = (
    'technology',
    'computer',
    'software',
    'hardware',
    'programming',
    'internet',
    'algorithm',
    'engineering',
    'electronic',
    'robot',
    'database',
    'semiconductor',
    'telecommunication',
    'artificial intelligence',
    'machine learning',
    'operating system',
)

MATHEMATICS_KEYWORDS = (
    'mathematics',
    'mathematical',
    'theorem',
    'algebra',
    'geometry',
    'calculus',
    'equation',
    'topology',
    'number theory',
    'probability',
    'statistics',
    'lemma',
    'integral',
    'polynomial',
    'matrix',
)


class TopicFilter(Enum):
    NONE = 'none'
    HISTORY = 'history'
    SCIENCE = 'science'
    TECHNOLOGY = 'technology'
    MATHEMATICS = 'mathematics'

    @classmethod
    def from_name(cls, name: str) -> 'TopicFilter':
        """Look up a filter by its (case-insensitive) name, e.g. 'History'."""
        key = (name or 'none').strip().lower()
        for member in cls:
            if member.value == key:
                return member
        choices = ', '.join(member.value for member in cls)
        raise ValueError(f"Unknown topic filter '{name}' (expected one of: {choices})")

    def keywords(self) -> Tuple[str, ...]:
        return _KEYWORDS[self]

    def is_relevant(self, title: str, content: str) -> bool:
        """True when any keyword occurs in the title or content, ignoring case."""
        if self is TopicFilter.NONE:
            return True
        title_lower = (title or '').lower()
        content_lower = (content or '').lower()
        for keyword in self.keywords():
            if keyword in title_lower or keyword in content_lower:
                return True
        return False

    def description(self) -> str:
        return _DESCRIPTIONS[self]

    def server_name(self, language: str) -> str:
        if self is TopicFilter.NONE:
            return f"Wikipedia {language.upper()} StaticMCP"
        return f"Wikipedia {language.upper()} {self.value.capitalize()} StaticMCP"


_KEYWORDS = {
    TopicFilter.NONE: (),
    TopicFilter.HISTORY: HISTORY_KEYWORDS,
    TopicFilter.SCIENCE: SCIENCE_KEYWORDS,
    TopicFilter.TECHNOLOGY: TECHNOLOGY_KEYWORDS,
    TopicFilter.MATHEMATICS: MATHEMATICS_KEYWORDS,
}

_DESCRIPTIONS = {
    TopicFilter.NONE: "All Articles",
    TopicFilter.HISTORY: "Historical Events, Figures, and Civilizations",
    TopicFilter.SCIENCE: "Scientific Disciplines and Discoveries",
    TopicFilter.TECHNOLOGY: "Computing, Engineering, and Technology",
    TopicFilter.MATHEMATICS: "Mathematical Concepts and Theorems",
}
