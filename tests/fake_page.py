from __future__ import annotations

from pathlib import Path

from webpage_pdf_batch.browser.session import NavigationError, RenderError


class FakeElement:
    def __init__(self, text: str = "", *, fail_click: bool = False) -> None:
        self._text = text
        self.fail_click = fail_click
        self.clicks = 0

    async def text(self) -> str:
        return self._text

    async def click(self) -> None:
        if self.fail_click:
            raise RuntimeError("Node is detached from document")
        self.clicks += 1


class FakeSite:
    def __init__(
        self,
        *,
        text: str = "",
        html: str = "<html><body></body></html>",
        selectors: dict[str, list[FakeElement]] | None = None,
        failing_selectors: tuple[str, ...] = (),
        navigate_error: BaseException | None = None,
        render_error: BaseException | None = None,
    ) -> None:
        self.text = text
        self.html = html
        self.selectors = selectors or {}
        self.failing_selectors = failing_selectors
        self.navigate_error = navigate_error
        self.render_error = render_error


class FakePage:
    """In-memory stand-in for a browser tab; `sites` maps URL -> page state."""

    def __init__(self, site: FakeSite | None = None, *, sites: dict[str, FakeSite] | None = None) -> None:
        self.sites = sites or {}
        self.current = site or FakeSite()
        self.navigations: list[tuple[str, float]] = []
        self.queries: list[str] = []
        self.rendered: list[Path] = []

    async def navigate(self, url: str, *, timeout_seconds: float, network_idle_seconds: float) -> None:
        self.navigations.append((url, timeout_seconds))
        if url in self.sites:
            self.current = self.sites[url]
        if self.current.navigate_error is not None:
            raise self.current.navigate_error

    async def query_all(self, selector: str) -> list[FakeElement]:
        self.queries.append(selector)
        if selector in self.current.failing_selectors:
            raise RuntimeError(f"invalid selector {selector!r}")
        return list(self.current.selectors.get(selector, []))

    async def evaluate(self, expression: str):
        return None

    async def content(self) -> str:
        return self.current.html

    async def inner_text(self) -> str:
        return self.current.text

    async def render_pdf(self, path: Path, options) -> None:
        if self.current.render_error is not None:
            raise self.current.render_error
        path.write_bytes(b"%PDF-1.4\n% fake\n")
        self.rendered.append(path)


def navigation_timeout() -> NavigationError:
    return NavigationError("Navigation timeout of 45000 ms exceeded")


def render_failure() -> RenderError:
    return RenderError("printToPDF failed: Printing failed")
