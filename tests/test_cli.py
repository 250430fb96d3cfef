from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, patch

from webpage_pdf_batch import cli
from webpage_pdf_batch.browser.chromium import BrowserLaunchError
from webpage_pdf_batch.ledger.writer import TextLedgerWriter, XlsxLedgerWriter
from webpage_pdf_batch.models import RunSummary


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.dir = Path(tmp.name)
        self.csv = self.dir / "urls.csv"
        self.csv.write_text("URL\nhttps://a.example\nhttps://b.example\n", encoding="utf-8")

    def test_missing_input_file_exits_before_browser_launch(self) -> None:
        with patch.object(cli, "BatchRunner") as runner_cls:
            code = cli.main(["--input", str(self.dir / "missing.csv"), "--output-dir", str(self.dir)])

        self.assertEqual(code, 1)
        runner_cls.assert_not_called()

    def test_successful_run_exits_zero(self) -> None:
        run = AsyncMock(return_value=RunSummary(saved=1, errored=1))
        with patch.object(cli.BatchRunner, "run", run):
            code = cli.main(["--input", str(self.csv), "--output-dir", str(self.dir / "out")])

        self.assertEqual(code, 0)
        entries, output_dir = run.await_args.args
        self.assertEqual([e.url for e in entries], ["https://a.example", "https://b.example"])
        self.assertEqual(output_dir, self.dir / "out")

    def test_browser_launch_failure_exits_nonzero(self) -> None:
        run = AsyncMock(side_effect=BrowserLaunchError("No Chromium-based browser executable found."))
        with patch.object(cli.BatchRunner, "run", run):
            code = cli.main(["--input", str(self.csv), "--output-dir", str(self.dir)])

        self.assertEqual(code, 1)

    def test_uncaught_error_exits_nonzero(self) -> None:
        run = AsyncMock(side_effect=OSError("disk full"))
        with patch.object(cli.BatchRunner, "run", run):
            code = cli.main(["--input", str(self.csv), "--output-dir", str(self.dir)])

        self.assertEqual(code, 1)

    def test_prompts_for_paths_when_flags_are_omitted(self) -> None:
        answers = iter([f'"{self.csv}"', ""])
        run = AsyncMock(return_value=RunSummary())
        with (
            patch("builtins.input", side_effect=lambda _q: next(answers)),
            patch.object(cli.BatchRunner, "run", run),
        ):
            code = cli.main([])

        self.assertEqual(code, 0)
        _entries, output_dir = run.await_args.args
        self.assertEqual(output_dir, Path.cwd() / "downloaded_pdfs")

    def test_ledger_format_selects_writer(self) -> None:
        with patch.object(cli, "BatchRunner") as runner_cls:
            runner_cls.return_value.run = AsyncMock(return_value=RunSummary())
            cli.main(["--input", str(self.csv), "--output-dir", str(self.dir), "--ledger-format", "txt"])
            _args, kwargs = runner_cls.call_args
            self.assertIs(kwargs["ledger_writer_factory"], TextLedgerWriter)

        with patch.object(cli, "BatchRunner") as runner_cls:
            runner_cls.return_value.run = AsyncMock(return_value=RunSummary())
            cli.main(["--input", str(self.csv), "--output-dir", str(self.dir)])
            _args, kwargs = runner_cls.call_args
            self.assertIs(kwargs["ledger_writer_factory"], XlsxLedgerWriter)


if __name__ == "__main__":
    unittest.main()
