from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from .browser.session import Element, Page
from .settings import BatchConfig

LOGGER = logging.getLogger(__name__)

INTERACTIVE_SELECTOR = "button, a, [role='button'], input[type='button'], input[type='submit']"


def _normalize_text(text: str) -> str:
    return " ".join((text or "").split()).lower()


class Locator(Protocol):
    name: str

    async def try_find(self, page: Page) -> Element | None: ...


@dataclass(frozen=True)
class SelectorLocator:
    """First element matched by any of `selectors`, tried in order."""

    name: str
    selectors: tuple[str, ...]

    async def try_find(self, page: Page) -> Element | None:
        for selector in self.selectors:
            found = await page.query_all(selector)
            if found:
                return found[0]
        return None


@dataclass(frozen=True)
class ButtonTextLocator:
    """A `<button>` whose whole visible label is one of `labels`."""

    name: str
    labels: tuple[str, ...]

    async def try_find(self, page: Page) -> Element | None:
        wanted = {_normalize_text(label) for label in self.labels}
        for button in await page.query_all("button"):
            if _normalize_text(await button.text()) in wanted:
                return button
        return None


@dataclass(frozen=True)
class TextScanLocator:
    """
    Fallback scan over every interactive element for a vocabulary phrase.

    Phrases must appear as whole words and the element label must be short;
    long labels are navigation or content links that merely mention "ok" or "close".
    """

    name: str
    vocabulary: tuple[str, ...]
    max_label_chars: int = 40

    def _pattern(self) -> re.Pattern[str]:
        # Longest first so "accept all" wins over "accept" in alternation.
        phrases = sorted((_normalize_text(p) for p in self.vocabulary), key=len, reverse=True)
        return re.compile(r"\b(?:" + "|".join(re.escape(p) for p in phrases) + r")\b")

    async def try_find(self, page: Page) -> Element | None:
        pattern = self._pattern()
        for element in await page.query_all(INTERACTIVE_SELECTOR):
            label = _normalize_text(await element.text())
            if label and len(label) <= self.max_label_chars and pattern.search(label):
                return element
        return None


def build_consent_locators(config: BatchConfig) -> list[Locator]:
    return [
        SelectorLocator("id", config.consent_id_selectors),
        SelectorLocator("class", config.consent_class_selectors),
        SelectorLocator("aria-label", config.consent_attribute_selectors),
        ButtonTextLocator("button-text", config.consent_button_labels),
        TextScanLocator("text-scan", config.consent_scan_vocabulary),
    ]


class BarrierClassifier:
    """Dismisses cookie/consent overlays and detects sign-in walls on a loaded page."""

    def __init__(self, config: BatchConfig, locators: list[Locator] | None = None) -> None:
        self._config = config
        self._locators = locators if locators is not None else build_consent_locators(config)

    async def attempt_dismiss_consent(self, page: Page) -> bool:
        """Click the first consent control found, in locator priority order.

        Returns False when no locator yields a clickable element; that is the
        normal case for pages without a consent barrier.
        """
        for locator in self._locators:
            try:
                element = await locator.try_find(page)
                if element is None:
                    continue
                await element.click()
            except Exception as exc:
                LOGGER.debug("Consent locator %s failed: %s", locator.name, exc)
                continue
            LOGGER.info("  Accepted cookies (%s)", locator.name)
            await asyncio.sleep(self._config.consent_settle_delay_seconds)
            return True
        return False

    async def is_sign_in_gated(self, page: Page) -> bool:
        """
        Heuristic sign-in wall detection.

        Both conditions must hold: the visible text mentions a sign-in phrase and
        the raw markup contains a form. A "Login" link in the header alone is not
        enough to skip a page.
        """
        text = (await page.inner_text()).lower()
        if not any(phrase.lower() in text for phrase in self._config.sign_in_phrases):
            return False
        markup = await page.content()
        return self._config.form_marker in markup
