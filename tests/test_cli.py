import io
import json
import logging
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest import mock

from stream_meta import cli


class TestCli(unittest.TestCase):
    def _run(self, *argv: str) -> str:
        buffer = io.StringIO()
        with mock.patch("sys.argv", ["stream-meta", *argv]), redirect_stdout(buffer):
            cli.main()
        return buffer.getvalue()

    def test_add_enrich_show(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            config = tmp / "config.yaml"
            config.write_text(f"store:\n  path: {tmp / 'media.sqlite3'}\n", encoding="utf-8")
            missing = tmp / "missing.mp3"

            out = self._run("--config", str(config), "--log-level", "CRITICAL", "add", str(missing))
            media_id = int(out.strip().split("\t")[0])

            out = self._run("--config", str(config), "--log-level", "CRITICAL", "enrich", str(media_id), "--active", "0")
            self.assertIn(f"[0] media {media_id}: failed", out)
            self.assertIn("Batch completed", out)

            out = self._run("--config", str(config), "--log-level", "CRITICAL", "show", str(media_id))
            record = json.loads(out)
            self.assertEqual(record["uri"], str(missing))
            self.assertIsNone(record["title"])

    def test_log_level_and_thread_name_in_format(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        self.addCleanup(setattr, root, "level", saved_level)
        self.addCleanup(setattr, root, "handlers", saved_handlers)

        cli._configure_logging("warning")

        self.assertEqual(root.level, logging.WARNING)
        self.assertEqual(len(root.handlers), 1)
        self.assertIn("%(threadName)s", root.handlers[0].formatter._fmt)

    def test_enrich_requires_integer_ids(self) -> None:
        with self.assertRaises(SystemExit):
            cli.build_parser().parse_args(["enrich", "abc"])


if __name__ == "__main__":
    unittest.main()
