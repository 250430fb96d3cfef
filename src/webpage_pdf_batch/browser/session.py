from __future__ import annotations

import asyncio
import base64
import contextlib
import logging
import tempfile
import time
from pathlib import Path
from typing import Any, AsyncIterator, Protocol

from ..settings import BatchConfig, PdfOptions
from .chromium import BrowserLaunchError, start_chromium, terminate_process

LOGGER = logging.getLogger(__name__)


class NavigationError(RuntimeError):
    pass


class RenderError(RuntimeError):
    pass


class EvaluationError(RuntimeError):
    pass


_READY_STATE_JS = "document.readyState"
_INNER_TEXT_JS = "document.body ? document.body.innerText : ''"


class Element(Protocol):
    async def text(self) -> str: ...

    async def click(self) -> None: ...


class Page(Protocol):
    """The slice of a live browser tab the classifier and processor rely on."""

    async def navigate(self, url: str, *, timeout_seconds: float, network_idle_seconds: float) -> None: ...

    async def query_all(self, selector: str) -> list[Element]: ...

    async def evaluate(self, expression: str) -> Any: ...

    async def content(self) -> str: ...

    async def inner_text(self) -> str: ...

    async def render_pdf(self, path: Path, options: PdfOptions) -> None: ...


class PageElement:
    """A clickable DOM node returned by `BrowserSession.query_all`."""

    def __init__(self, element: Any) -> None:
        self._element = element

    async def text(self) -> str:
        text = str(getattr(self._element, "text_all", "") or "")
        if text.strip():
            return text
        # <input type="button"|"submit"> carries its label in the value attribute.
        attrs = getattr(self._element, "attrs", None) or {}
        return str(attrs.get("value") or "")

    async def click(self) -> None:
        await self._element.click()


class BrowserSession:
    """
    One long-lived Chromium tab reused for every URL of a run.

    All calls are awaited to completion before the next one starts; the
    session is never shared between concurrent tasks.
    """

    # Same threshold as Puppeteer's networkidle2: long-polls and beacons may stay open.
    IDLE_MAX_INFLIGHT = 2
    IDLE_POLL_SECONDS = 0.05

    def __init__(self, browser: Any, tab: Any, cdp: Any) -> None:
        self._browser = browser
        self._tab = tab
        self._cdp = cdp
        self._inflight: set[str] = set()

    async def install_event_handlers(self) -> None:
        """Track in-flight requests and auto-accept alert/confirm/beforeunload dialogs."""
        await self._tab.send(self._cdp.page.enable())
        await self._tab.send(self._cdp.network.enable())
        self._tab.add_handler(self._cdp.page.JavascriptDialogOpening, self._accept_dialog)
        self._tab.add_handler(self._cdp.network.RequestWillBeSent, self._on_request_started)
        self._tab.add_handler(self._cdp.network.LoadingFinished, self._on_request_done)
        self._tab.add_handler(self._cdp.network.LoadingFailed, self._on_request_done)

    def _on_request_started(self, event: Any) -> None:
        self._inflight.add(str(event.request_id))

    def _on_request_done(self, event: Any) -> None:
        self._inflight.discard(str(event.request_id))

    async def _accept_dialog(self, event: Any) -> None:
        LOGGER.debug("Accepting JavaScript dialog: %s", getattr(event, "message", ""))
        try:
            await self._tab.send(self._cdp.page.handle_java_script_dialog(accept=True))
        except Exception as exc:
            LOGGER.debug("Failed to accept dialog: %s", exc)

    async def navigate(self, url: str, *, timeout_seconds: float, network_idle_seconds: float) -> None:
        """Load `url` and wait until the document is complete and network activity has settled."""
        started = time.monotonic()
        try:
            await asyncio.wait_for(
                self._navigate_and_settle(url, network_idle_seconds), timeout=timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise NavigationError(
                f"Navigation timeout of {timeout_seconds * 1000:.0f} ms exceeded"
            ) from exc
        LOGGER.debug("Navigation to %s settled in %.2fs", url, time.monotonic() - started)

    async def _navigate_and_settle(self, url: str, network_idle_seconds: float) -> None:
        # Requests of the previous page are cancelled by the navigation.
        self._inflight.clear()
        frame_id, *rest = await self._tab.send(self._cdp.page.navigate(url))
        error_text = rest[1] if len(rest) > 1 else None
        if error_text:
            raise NavigationError(f"{error_text} at {url}")
        if frame_id:
            self._tab.frame_id = frame_id

        while await self.evaluate(_READY_STATE_JS) != "complete":
            await asyncio.sleep(0.1)

        await self._wait_for_network_idle(network_idle_seconds)

    async def _wait_for_network_idle(self, idle_seconds: float) -> None:
        """Return once no more than `IDLE_MAX_INFLIGHT` requests stayed open for `idle_seconds`."""
        quiet_since: float | None = None
        while True:
            now = time.monotonic()
            if len(self._inflight) <= self.IDLE_MAX_INFLIGHT:
                if quiet_since is None:
                    quiet_since = now
                if now - quiet_since >= idle_seconds:
                    return
            else:
                quiet_since = None
            await asyncio.sleep(self.IDLE_POLL_SECONDS)

    async def query_all(self, selector: str) -> list[PageElement]:
        found = await self._tab.query_selector_all(selector)
        return [PageElement(element) for element in found or []]

    async def evaluate(self, expression: str) -> Any:
        result = await self._tab.evaluate(expression, return_by_value=True)
        if isinstance(result, self._cdp.runtime.ExceptionDetails):
            raise EvaluationError(f"Evaluation failed: {result.text}")
        return result

    async def content(self) -> str:
        return str(await self._tab.get_content() or "")

    async def inner_text(self) -> str:
        return str(await self.evaluate(_INNER_TEXT_JS) or "")

    async def render_pdf(self, path: Path, options: PdfOptions) -> None:
        width, height = options.paper_size_inches
        margin = options.margin_inches
        try:
            data, _stream = await self._tab.send(
                self._cdp.page.print_to_pdf(
                    print_background=options.print_background,
                    paper_width=width,
                    paper_height=height,
                    margin_top=margin,
                    margin_bottom=margin,
                    margin_left=margin,
                    margin_right=margin,
                )
            )
        except Exception as exc:
            raise RenderError(f"printToPDF failed: {exc}") from exc

        payload = base64.b64decode(data or "")
        if not payload.startswith(b"%PDF"):
            raise RenderError("printToPDF returned an empty or invalid document")
        try:
            path.write_bytes(payload)
        except OSError as exc:
            raise RenderError(f"Could not write {path.name}: {exc}") from exc

    async def close(self) -> None:
        await _stop_browser(self._browser)


async def _stop_browser(browser: Any) -> None:
    closer = getattr(browser, "stop", None)
    if callable(closer):
        maybe = closer()
        if asyncio.iscoroutine(maybe):
            await maybe


async def _first_page_tab(browser: Any) -> Any:
    await browser.update_targets()
    for target in browser.targets:
        if getattr(target, "type_", None) == "page":
            return target
    return await browser.get("about:blank")


@contextlib.asynccontextmanager
async def open_browser_session(config: BatchConfig) -> AsyncIterator[BrowserSession]:
    """Launch Chromium, connect nodriver to it and yield a single reusable tab."""
    try:
        import nodriver as uc  # type: ignore
    except Exception as exc:  # pragma: no cover
        raise BrowserLaunchError(
            "nodriver is required for page capture. Install with: pip install nodriver"
        ) from exc

    # Chromium may still be flushing profile writes briefly after shutdown.
    # Never fail the run because a temp profile directory couldn't be deleted.
    with tempfile.TemporaryDirectory(prefix="pdf-batch-nodriver-", ignore_cleanup_errors=True) as user_data_dir:
        proc, browser = await start_chromium(
            config,
            user_data_dir,
            connect=lambda host, port: uc.start(host=host, port=port),
        )
        try:
            session = BrowserSession(browser, await _first_page_tab(browser), uc.cdp)
            await session.install_event_handlers()
            yield session
        finally:
            try:
                await _stop_browser(browser)
            except Exception as exc:
                LOGGER.debug("Browser stop failed: %s", exc)
            await terminate_process(proc)
            # Give Chromium a short moment to flush profile writes before temp cleanup.
            await asyncio.sleep(0.1)
