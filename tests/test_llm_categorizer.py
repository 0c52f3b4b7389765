# Tests for the ollama-backed categorizer, with the client mocked out
from __future__ import annotations

import sys
import unittest
from pathlib import Path
from unittest import mock

ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(ROOT))

from llm_categorizer import OllamaCategorizer, _build_prompt, _clean_json_payload, _extract_json_block


def reply(content: str):
    return {"message": {"content": content}}


class TestPayloadParsing(unittest.TestCase):
    def test_extract_json_block(self):
        self.assertEqual(_extract_json_block('Sure! ["war"] hope it helps'), '["war"]')
        self.assertEqual(_extract_json_block("no json"), "no json")

    def test_clean_json_payload_strips_trailing_commas(self):
        self.assertEqual(_clean_json_payload('["war", "science",]'), ["war", "science"])
        self.assertIsNone(_clean_json_payload("not json"))

    def test_prompt_lists_labels(self):
        prompt = _build_prompt("Rome", "x" * 10000, ["history", "science"])
        self.assertIn("- history\n- science", prompt)
        self.assertLess(len(prompt), 10000)


class TestOllamaCategorizer(unittest.TestCase):
    def make(self, content=None, side_effect=None):
        client = mock.Mock()
        if side_effect is not None:
            client.chat.side_effect = side_effect
        else:
            client.chat.return_value = reply(content)
        return OllamaCategorizer(["history", "science"], model="test-model", client=client), client

    def test_returns_allowed_labels_only(self):
        categorizer, client = self.make('["History", "cooking"]')
        self.assertEqual(categorizer.categorize("Rome", "An empire"), frozenset({"history"}))

        kwargs = client.chat.call_args.kwargs
        self.assertEqual(kwargs["model"], "test-model")
        self.assertEqual(kwargs["options"], {"temperature": 0})

    def test_accepts_keyed_object(self):
        categorizer, _ = self.make('{"categories": ["science"]}')
        self.assertEqual(categorizer.categorize("Atom", "physics"), frozenset({"science"}))

    def test_unparseable_reply(self):
        categorizer, _ = self.make("I am not sure.")
        self.assertEqual(categorizer.categorize("Atom", "physics"), frozenset())

    def test_transport_error_yields_no_labels(self):
        categorizer, _ = self.make(side_effect=ConnectionError("ollama is down"))
        self.assertEqual(categorizer.categorize("Atom", "physics"), frozenset())

    def test_requires_labels(self):
        with self.assertRaises(ValueError):
            OllamaCategorizer([], client=mock.Mock())


if __name__ == "__main__":
    unittest.main()
