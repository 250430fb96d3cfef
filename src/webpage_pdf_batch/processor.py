from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

from .browser.session import NavigationError, Page, RenderError
from .consent import BarrierClassifier
from .models import Errored, ProcessingOutcome, RequiresSignIn, Saved
from .settings import BatchConfig

LOGGER = logging.getLogger(__name__)

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


def pdf_file_name(sequence_index: int, url: str, *, max_chars: int = 100) -> str:
    """`{index+1}_{url with non-alphanumerics as "_", cut to max_chars}.pdf`.

    >>> pdf_file_name(4, "https://a.b/c?d=1")
    '5_https___a_b_c_d_1.pdf'
    """
    stem = _NON_ALNUM_RE.sub("_", url)[:max_chars]
    return f"{sequence_index + 1}_{stem}.pdf"


class PageProcessor:
    """
    Runs one URL through Navigate -> Settle -> DismissConsent -> ClassifySignIn -> Render -> Throttle.

    Navigation and render failures become `Errored`; anything else propagates to the caller.
    The throttle delay runs after every URL whatever the outcome.
    """

    def __init__(self, config: BatchConfig, output_dir: Path, classifier: BarrierClassifier | None = None) -> None:
        self._config = config
        self._output_dir = output_dir
        self._classifier = classifier or BarrierClassifier(config)

    async def process_url(self, page: Page, url: str, sequence_index: int) -> ProcessingOutcome:
        try:
            return await self._run_stages(page, url, sequence_index)
        finally:
            await asyncio.sleep(self._config.throttle_delay_seconds)

    async def _run_stages(self, page: Page, url: str, sequence_index: int) -> ProcessingOutcome:
        try:
            await page.navigate(
                url,
                timeout_seconds=self._config.navigation_timeout_seconds,
                network_idle_seconds=self._config.network_idle_seconds,
            )
        except (NavigationError, TimeoutError) as exc:
            return Errored(str(exc) or type(exc).__name__)

        await asyncio.sleep(self._config.settle_delay_seconds)

        await self._classifier.attempt_dismiss_consent(page)

        if await self._classifier.is_sign_in_gated(page):
            return RequiresSignIn()

        file_name = pdf_file_name(sequence_index, url, max_chars=self._config.file_name_max_chars)
        try:
            await page.render_pdf(self._output_dir / file_name, self._config.pdf)
        except RenderError as exc:
            return Errored(str(exc))
        return Saved(file_name)
