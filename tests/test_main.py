# Tests for the command line entry point
from __future__ import annotations

import contextlib
import io
import json
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(ROOT))

from main import main

DUMP = """<mediawiki>
  <page><title>Photosynthesis</title><ns>0</ns><id>1</id>
    <revision><text>A process studied in biology.</text></revision></page>
  <page><title>Bread</title><ns>0</ns><id>2</id>
    <revision><text>Flour.</text></revision></page>
</mediawiki>
"""


class TestMain(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self.tmpdir.name)
        self.dump = self.tmp_path / "dump.xml"
        self.dump.write_text(DUMP, encoding="utf-8")
        self.out = self.tmp_path / "bundle"

    def tearDown(self):
        self.tmpdir.cleanup()

    def run_main(self, *args):
        stdout, stderr = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            code = main([str(arg) for arg in args])
        return code, stdout.getvalue(), stderr.getvalue()

    def test_success(self):
        code, stdout, _ = self.run_main(
            self.dump, self.out, "--topic", "science", "--categorizer", "keywords", "--labels", "biology",
        )
        self.assertEqual(code, 0)
        self.assertIn("Accepted 1 articles, rejected 1", stdout)
        with open(self.out / "categories" / "biology.json", encoding="utf-8") as in_file:
            self.assertEqual(json.load(in_file)["articles"][0]["title"], "Photosynthesis")

    def test_invalid_configuration(self):
        code, _, stderr = self.run_main(self.dump, self.out, "--max-articles", "0")
        self.assertEqual(code, 2)
        self.assertIn("max_articles", stderr)

        code, _, _ = self.run_main(self.dump, self.out, "--categorizer", "keywords")
        self.assertEqual(code, 2)

    def test_unreadable_input(self):
        code, _, stderr = self.run_main(self.tmp_path / "dump.txt", self.out)
        self.assertEqual(code, 1)
        self.assertIn("Unsupported file format", stderr)
        self.assertIn("Last completed stage", stderr)

    def test_missing_model(self):
        code, _, stderr = self.run_main(
            self.dump, self.out, "--categorizer", "model", "--model-path", self.tmp_path / "missing.joblib",
        )
        self.assertEqual(code, 1)
        self.assertIn("Unable to load categorizer model", stderr)
        self.assertIn("Last completed stage: filtering", stderr)

    def test_corrupt_model(self):
        model_path = self.tmp_path / "broken.joblib"
        model_path.write_bytes(b"not a joblib file")
        code, _, stderr = self.run_main(self.dump, self.out, "--categorizer", "model", "--model-path", model_path)
        self.assertEqual(code, 1)
        self.assertIn("Unable to load categorizer model", stderr)


if __name__ == "__main__":
    unittest.main()
