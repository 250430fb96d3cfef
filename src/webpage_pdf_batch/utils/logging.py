from __future__ import annotations

import logging
import os


def configure_logging(level: str | None = None) -> None:
    """
    Configure logging defaults for command-line batch runs.

    Goals:
    - Per-URL progress is visible at INFO without extra flags.
    - Browser automation libraries stay quiet unless the host configures them.
    - Keep configuration idempotent so embedding callers can override it safely.
    """
    root = logging.getLogger()

    # Only set up basicConfig if nothing configured yet (common for scripts).
    if not root.handlers:
        resolved = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
        logging.basicConfig(
            level=getattr(logging, resolved, logging.INFO),
            format="%(message)s",
        )
    elif level:
        root.setLevel(getattr(logging, level.upper(), logging.INFO))

    noisy_loggers = (
        "httpx",
        "httpcore",
        "asyncio",
        "websockets",
        "nodriver",
        "uc",
    )
    for name in noisy_loggers:
        # `asyncio` can emit noisy warnings about slow callbacks in some environments.
        level_for_name = logging.ERROR if name == "asyncio" else logging.WARNING
        logging.getLogger(name).setLevel(level_for_name)
