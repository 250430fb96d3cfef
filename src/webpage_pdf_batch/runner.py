from __future__ import annotations

import logging
from pathlib import Path
from typing import AsyncContextManager, Callable, Sequence

from .browser.session import Page, open_browser_session
from .consent import BarrierClassifier
from .ledger.writer import OutcomeLedgerWriter, XlsxLedgerWriter
from .models import Errored, OutcomeRecord, RequiresSignIn, RunSummary, Saved, UrlEntry
from .processor import PageProcessor
from .settings import BatchConfig

LOGGER = logging.getLogger(__name__)

SessionFactory = Callable[[BatchConfig], AsyncContextManager[Page]]


class BatchRunner:
    """
    Processes URLs one at a time on a single reused browser tab.

    Per-URL failures never stop the batch. After each URL the whole ledger is
    rewritten, so a killed process leaves every exception recorded so far on disk.
    """

    def __init__(
        self,
        config: BatchConfig,
        *,
        ledger_writer_factory: Callable[[Path], OutcomeLedgerWriter] = XlsxLedgerWriter,
        session_factory: SessionFactory = open_browser_session,
        classifier: BarrierClassifier | None = None,
    ) -> None:
        self._config = config
        self._ledger_writer_factory = ledger_writer_factory
        self._session_factory = session_factory
        self._classifier = classifier or BarrierClassifier(config)

    async def run(self, urls: Sequence[UrlEntry], output_dir: Path) -> RunSummary:
        if not output_dir.exists():
            LOGGER.info("Created output directory: %s", output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        ledger = self._ledger_writer_factory(output_dir)
        processor = PageProcessor(self._config, output_dir, classifier=self._classifier)
        records: list[OutcomeRecord] = []
        summary = RunSummary()
        total = len(urls)

        LOGGER.info("Launching browser...")
        async with self._session_factory(self._config) as page:
            LOGGER.info("Starting PDF generation...")
            for index, entry in enumerate(urls):
                LOGGER.info("[%d/%d] Processing: %s", index + 1, total, entry.url)
                try:
                    outcome = await processor.process_url(page, entry.url, index)
                except Exception as exc:
                    outcome = Errored(str(exc) or type(exc).__name__)

                summary.count(outcome)
                _report(entry.url, outcome)
                record = OutcomeRecord.from_outcome(entry.url, outcome)
                if record is not None:
                    records.append(record)
                if records:
                    summary.ledger_path = str(ledger.flush(records))

        # Final checkpoint even when nothing changed since the last URL.
        if records:
            summary.ledger_path = str(ledger.flush(records))
            LOGGER.info("Saved %d URLs requiring attention to: %s", len(records), ledger.path)
        return summary


def _report(url: str, outcome: Saved | RequiresSignIn | Errored) -> None:
    if isinstance(outcome, Saved):
        LOGGER.info("  ✓ PDF saved: %s", outcome.file_name)
    elif isinstance(outcome, RequiresSignIn):
        LOGGER.info("  ⚠ Page requires sign-in")
    else:
        LOGGER.error("  ✗ Failed to process URL: %s (%s)", url, outcome.message)

