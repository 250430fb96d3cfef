from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shutil
import signal
import socket
import time
from typing import Any, Awaitable, Callable

import httpx

from ..settings import BatchConfig

LOGGER = logging.getLogger(__name__)


class BrowserLaunchError(RuntimeError):
    pass


def resolve_browser_executable_path(explicit_path: str | None) -> str | None:
    if explicit_path and explicit_path.strip():
        return explicit_path.strip()

    for name in ("chromium", "google-chrome", "google-chrome-stable", "chrome", "chromium-browser"):
        resolved = shutil.which(name)
        if resolved:
            return resolved

    return None


def is_retryable_browser_connect_error(exc: BaseException) -> bool:
    message = str(exc).lower()
    if "failed to connect to browser" in message:
        return True
    if "connection refused" in message:
        return True
    if "devtools endpoint did not become ready" in message:
        return True
    return False


def ensure_no_proxy_localhost() -> None:
    """
    Ensure Python stdlib proxy handling does not hijack localhost traffic.

    Nodriver's DevTools readiness checks use urllib for `/json/version`; with
    HTTP(S)_PROXY set and no NO_PROXY entry for loopback, those requests hang.
    """
    needed = ("localhost", "127.0.0.1", "::1")
    for key in ("NO_PROXY", "no_proxy"):
        existing = [x.strip() for x in (os.environ.get(key) or "").split(",") if x.strip()]
        existing_lower = {x.lower() for x in existing}
        merged = list(existing)
        for host in needed:
            if host.lower() not in existing_lower:
                merged.append(host)
        os.environ[key] = ",".join(merged)


def pick_free_port(host: str = "127.0.0.1") -> int:
    # Best-effort selection: inherently racy, so startup must tolerate collisions.
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((host, 0))
        return int(s.getsockname()[1])


def build_chromium_launch_args(
    *,
    user_data_dir: str,
    user_agent: str,
    host: str,
    port: int,
    sandbox_enabled: bool,
) -> list[str]:
    return [
        # Ensure we only bind DevTools to loopback.
        f"--remote-debugging-host={host}",
        f"--remote-debugging-port={port}",
        f"--user-data-dir={user_data_dir}",
        "--headless=new",
        "--window-size=1920,1080",
        "--disable-dev-shm-usage",
        "--disable-blink-features=AutomationControlled",
        "--disable-logging",
        "--log-level=3",
        "--disable-background-timer-throttling",
        "--disable-renderer-backgrounding",
        f"--user-agent={user_agent}",
        *([] if sandbox_enabled else ["--no-sandbox"]),
    ]


async def launch_chromium(executable_path: str, args: list[str]) -> asyncio.subprocess.Process:
    # Discard Chromium stdout/stderr to avoid deadlocks on filled pipes.
    return await asyncio.create_subprocess_exec(
        executable_path,
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.DEVNULL,
        start_new_session=(os.name == "posix"),
    )


async def terminate_process(proc: asyncio.subprocess.Process, *, grace_seconds: float = 1.5) -> None:
    if proc.returncode is not None:
        return

    terminated = False
    if os.name == "posix" and proc.pid is not None:
        try:
            os.killpg(proc.pid, signal.SIGTERM)
            terminated = True
        except (ProcessLookupError, PermissionError):
            terminated = False
    if not terminated:
        with contextlib.suppress(ProcessLookupError):
            proc.terminate()

    try:
        await asyncio.wait_for(proc.wait(), timeout=grace_seconds)
        return
    except asyncio.TimeoutError:
        pass

    if os.name == "posix" and proc.pid is not None:
        with contextlib.suppress(ProcessLookupError, PermissionError):
            os.killpg(proc.pid, signal.SIGKILL)
    with contextlib.suppress(ProcessLookupError):
        proc.kill()
    await proc.wait()


async def wait_for_devtools_ready(
    *,
    host: str,
    port: int,
    proc: asyncio.subprocess.Process,
    timeout_seconds: float,
) -> None:
    """
    Wait until the DevTools HTTP endpoint responds.

    Chrome exposes `webSocketDebuggerUrl` via GET `/json/version`. This is a stronger readiness signal
    than a raw TCP connect because it requires the browser to be responsive, not just listening.
    """
    deadline = time.monotonic() + max(0.1, timeout_seconds)
    url = f"http://{host}:{port}/json/version"

    # Never allow proxy env vars to hijack localhost traffic.
    async with httpx.AsyncClient(trust_env=False) as client:
        while time.monotonic() < deadline:
            if proc.returncode is not None:
                raise BrowserLaunchError(f"Chromium exited early (code={proc.returncode})")
            try:
                resp = await client.get(url, timeout=0.75)
                if resp.status_code == 200:
                    return
            except httpx.HTTPError:
                pass
            await asyncio.sleep(0.1)

    raise BrowserLaunchError("DevTools endpoint did not become ready in time")


async def start_chromium(
    config: BatchConfig,
    user_data_dir: str,
    connect: Callable[[str, int], Awaitable[Any]],
) -> tuple[asyncio.subprocess.Process, Any]:
    """Launch Chromium on a loopback DevTools port and connect to it.

    Launch, readiness and `connect(host, port)` are retried together; a
    process whose connect failed is terminated before the next attempt.
    Returns the process and whatever `connect` returned.
    """
    executable_path = resolve_browser_executable_path(config.browser_executable_path)
    if executable_path is None:
        raise BrowserLaunchError(
            "No Chromium-based browser executable found. "
            "Install Chromium/Chrome or set PDF_BATCH_BROWSER_EXECUTABLE_PATH to the browser binary path."
        )

    ensure_no_proxy_localhost()
    attempts = max(1, config.start_retry_attempts)
    for attempt in range(attempts):
        host = "127.0.0.1"
        port = pick_free_port(host)
        args = build_chromium_launch_args(
            user_data_dir=user_data_dir,
            user_agent=config.user_agent,
            host=host,
            port=port,
            sandbox_enabled=config.sandbox_enabled,
        )
        LOGGER.debug("Launching Chromium (attempt %d): %s %s", attempt + 1, executable_path, args)
        proc = await launch_chromium(executable_path, args)
        try:
            await wait_for_devtools_ready(
                host=host,
                port=port,
                proc=proc,
                timeout_seconds=config.devtools_ready_timeout_seconds,
            )
            browser = await connect(host, port)
        except Exception as exc:
            await terminate_process(proc)
            if attempt >= attempts - 1 or not is_retryable_browser_connect_error(exc):
                raise BrowserLaunchError(
                    f"Failed to start browser after {attempt + 1} attempt(s) "
                    f"(sandbox={config.sandbox_enabled}, browser_executable_path={executable_path!r}): {exc}. "
                    "If running as root (e.g., in Docker), ensure sandbox is disabled (PDF_BATCH_NODRIVER_SANDBOX=0)."
                ) from exc
            backoff = config.retry_backoff_seconds * (2**attempt)
            LOGGER.debug("Browser start failed (%s); retrying in %.2fs", exc, backoff)
            await asyncio.sleep(backoff)
            continue
        return proc, browser

    raise BrowserLaunchError(f"Failed to start browser after {attempts} attempt(s)")
