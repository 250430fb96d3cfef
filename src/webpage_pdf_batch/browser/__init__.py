from __future__ import annotations

from .chromium import BrowserLaunchError
from .session import BrowserSession, NavigationError, Page, RenderError, open_browser_session

__all__ = [
    "BrowserLaunchError",
    "BrowserSession",
    "NavigationError",
    "Page",
    "RenderError",
    "open_browser_session",
]
