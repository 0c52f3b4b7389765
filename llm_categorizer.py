# Categorizer that asks a local LLM (via ollama) to pick labels for an article
from __future__ import annotations

import json
import logging
import os
import re
from typing import FrozenSet, Iterable, List, Optional

from ollama import Client

logger = logging.getLogger(__name__)

LLM_CATEGORIZER_MODEL = os.getenv("LLM_CATEGORIZER_MODEL", "llama3.1:8b")
OLLAMA_HOST = os.getenv("OLLAMA_HOST", "http://127.0.0.1:11434")
# Prompt only carries the start of the article
MAX_PROMPT_CHARS = 3000

_JSON_BLOCK_RE = re.compile(r"(\{.*\}|\[.*\])", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([\}\]])")


def _build_prompt(title: str, content: str, labels: List[str]) -> str:
    label_block = "\n".join(f"- {label}" for label in labels)
    return (
        "You will receive an encyclopedia article. "
        "Choose every category from the list below that the article clearly belongs to. "
        "Respond ONLY with a JSON list of category names copied exactly from the list; "
        "respond with [] if none apply.\n"
        f"Categories:\n{label_block}\n"
        f"Title: {title}\nArticle:\n{content[:MAX_PROMPT_CHARS]}"
    )


def _extract_json_block(content: str) -> str:
    """Extract the first JSON-looking object/array from a longer response."""
    match = _JSON_BLOCK_RE.search(content)
    return match.group(0) if match else content


def _clean_json_payload(raw: str):
    """Attempt to load JSON; strip trailing commas if needed."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass

    try:
        return json.loads(_TRAILING_COMMA_RE.sub(r"\1", raw))
    except json.JSONDecodeError:
        return None


def _labels_from_payload(parsed) -> List[str]:
    # accept a plain list, {"categories": [...]} or a single name
    if isinstance(parsed, dict):
        parsed = parsed.get("categories", parsed.get("labels", []))
    if isinstance(parsed, str):
        parsed = [parsed]
    if not isinstance(parsed, list):
        return []
    return [str(item).strip() for item in parsed if isinstance(item, (str, int, float))]


class OllamaCategorizer:
    """Picks labels from a fixed set with a deterministic (temperature 0) LLM call.

    Replies naming labels outside the allowed set are ignored, and a failed
    request yields no labels rather than stopping the run.
    """

    def __init__(
        self,
        labels: Iterable[str],
        model: str = LLM_CATEGORIZER_MODEL,
        client: Optional[Client] = None,
        host: str = OLLAMA_HOST,
    ):
        self.labels = sorted(set(labels))
        if not self.labels:
            raise ValueError("OllamaCategorizer needs at least one label")
        self.model = model
        self._client = client
        self._host = host
        self._by_lower = {label.lower(): label for label in self.labels}

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client(host=self._host)
        return self._client

    def categorize(self, title: str, content: str) -> FrozenSet[str]:
        try:
            response = self.client.chat(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": "You are a precise document classification assistant.",
                    },
                    {
                        "role": "user",
                        "content": _build_prompt(title, content, self.labels),
                    },
                ],
                options={"temperature": 0},
            )
        except Exception as exc:  # transport errors vary by ollama/httpx version
            logger.warning("LLM categorization failed for %r: %s", title, exc)
            return frozenset()

        try:
            content = response["message"]["content"]
        except (KeyError, TypeError):
            return frozenset()

        parsed = _clean_json_payload(_extract_json_block(content))
        if parsed is None:
            return frozenset()
        chosen = set()
        for name in _labels_from_payload(parsed):
            label = self._by_lower.get(name.lower())
            if label is not None:
                chosen.add(label)
        return frozenset(chosen)
