from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .browser.chromium import BrowserLaunchError
from .ledger.reader import BatchInputError, clean_input_path, read_url_entries
from .ledger.writer import LEDGER_WRITERS
from .runner import BatchRunner
from .settings import DEFAULT_OUTPUT_DIR_NAME, load_config
from .utils.logging import configure_logging

LOGGER = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webpage-pdf-batch",
        description=(
            "Save every URL listed in a CSV/XLSX file as a PDF. "
            "Pages behind sign-in walls and failures are listed in a ledger file."
        ),
    )
    parser.add_argument(
        "--input",
        default=None,
        help="CSV or XLSX file with a URL column (prompted for when omitted).",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help=f"Directory for PDFs and the ledger (prompted for; default ./{DEFAULT_OUTPUT_DIR_NAME}).",
    )
    parser.add_argument(
        "--ledger-format",
        choices=sorted(LEDGER_WRITERS),
        default="xlsx",
        help="Ledger file format: xlsx (URL | Status | Notes) or txt (one URL per line).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: LOG_LEVEL env var, else INFO).",
    )
    return parser


def _prompt(question: str) -> str:
    try:
        return input(question)
    except EOFError:
        return ""


def _resolve_input_path(raw: str | None) -> Path:
    if raw is None:
        raw = _prompt("Enter the path to your CSV file (or drag and drop the file here): ")
    return clean_input_path(raw)


def _resolve_output_dir(raw: str | None) -> Path:
    default_dir = Path.cwd() / DEFAULT_OUTPUT_DIR_NAME
    if raw is None:
        raw = _prompt(f"Enter the output directory path (press Enter for default: {default_dir}): ")
    raw = raw.strip()
    return Path(raw) if raw else default_dir


def main(argv: list[str] | None = None) -> int:
    """
    Entrypoint for a batch run.

    Exit codes:
    - 0: the URL list was processed (per-URL errors are in the ledger, not the exit code).
    - 1: fatal error before or outside the per-URL loop (bad input, browser launch, ledger write).
    - 130: interrupted; ledger content flushed so far stays on disk.
    """
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        input_path = _resolve_input_path(args.input)
        entries = read_url_entries(input_path)
        output_dir = _resolve_output_dir(args.output_dir)

        config = load_config()
        runner = BatchRunner(config, ledger_writer_factory=LEDGER_WRITERS[args.ledger_format])
        summary = asyncio.run(runner.run(entries, output_dir))
    except KeyboardInterrupt:
        LOGGER.error("Interrupted.")
        return 130
    except (BatchInputError, BrowserLaunchError) as exc:
        LOGGER.error("Fatal error occurred: %s", exc)
        return 1
    except Exception:
        LOGGER.exception("Fatal error occurred:")
        return 1

    LOGGER.info(
        "Process completed: %d saved, %d require sign-in, %d errored.",
        summary.saved,
        summary.requires_sign_in,
        summary.errored,
    )
    LOGGER.info("PDFs are saved in: %s", output_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
