from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_OUTPUT_DIR_NAME = "downloaded_pdfs"
XLSX_LEDGER_NAME = "00_requires_signin.xlsx"
TEXT_LEDGER_NAME = "00_requires_signin.txt"

# Ordered by locator kind: exact id, class name, accessibility label.
CONSENT_ID_SELECTORS: tuple[str, ...] = (
    "#onetrust-accept-btn-handler",
    "#accept-cookies",
    "#cookie-accept",
    "#cookie-consent-accept",
    "#accept-all-cookies",
    "#CybotCookiebotDialogBodyLevelButtonLevelOptinAllowAll",
    "#gdpr-cookie-accept",
)
CONSENT_CLASS_SELECTORS: tuple[str, ...] = (
    ".accept-cookies",
    ".cookie-accept",
    ".cookie-consent-accept",
    ".accept-all-cookies",
    ".cookie-button--accept",
)
CONSENT_ATTRIBUTE_SELECTORS: tuple[str, ...] = (
    '[aria-label="Accept cookies"]',
    '[aria-label="accept cookies"]',
    '[data-testid="cookie-accept"]',
)
CONSENT_BUTTON_LABELS: tuple[str, ...] = (
    "accept",
    "accept all",
    "accept cookies",
    "allow all",
    "allow cookies",
    "got it",
    "i accept",
    "ok",
    "close",
)
CONSENT_SCAN_VOCABULARY: tuple[str, ...] = CONSENT_BUTTON_LABELS

SIGN_IN_PHRASES: tuple[str, ...] = (
    "sign in",
    "login",
    "log in",
    "subscribe",
    "subscription",
    "register",
    "account required",
    "please log in",
    "member access",
    "sign up",
    "create account",
    "premium content",
)


@dataclass(frozen=True)
class PdfOptions:
    """Print-to-PDF settings shared by every capture in a run."""

    paper_format: str = "A4"
    print_background: bool = True
    margin_px: float = 20.0

    # CSS pixels per inch; Chromium's printToPDF takes inches.
    PX_PER_INCH = 96.0
    PAPER_SIZES_INCHES = {
        "A4": (8.27, 11.69),
        "Letter": (8.5, 11.0),
    }

    @property
    def paper_size_inches(self) -> tuple[float, float]:
        return self.PAPER_SIZES_INCHES.get(self.paper_format, self.PAPER_SIZES_INCHES["A4"])

    @property
    def margin_inches(self) -> float:
        return self.margin_px / self.PX_PER_INCH


@dataclass(frozen=True)
class BatchConfig:
    """Runtime configuration (env-first), built once and passed explicitly.

    Note: keep this module lightweight; it is imported by tests.
    """

    navigation_timeout_seconds: float = 45.0
    settle_delay_seconds: float = 2.0
    consent_settle_delay_seconds: float = 1.0
    throttle_delay_seconds: float = 1.0
    network_idle_seconds: float = 0.5
    user_agent: str = DEFAULT_USER_AGENT
    browser_executable_path: str | None = None
    sandbox_enabled: bool = False
    start_retry_attempts: int = 3
    retry_backoff_seconds: float = 0.5
    devtools_ready_timeout_seconds: float = 12.0
    file_name_max_chars: int = 100
    pdf: PdfOptions = field(default_factory=PdfOptions)
    consent_id_selectors: tuple[str, ...] = CONSENT_ID_SELECTORS
    consent_class_selectors: tuple[str, ...] = CONSENT_CLASS_SELECTORS
    consent_attribute_selectors: tuple[str, ...] = CONSENT_ATTRIBUTE_SELECTORS
    consent_button_labels: tuple[str, ...] = CONSENT_BUTTON_LABELS
    consent_scan_vocabulary: tuple[str, ...] = CONSENT_SCAN_VOCABULARY
    sign_in_phrases: tuple[str, ...] = SIGN_IN_PHRASES
    form_marker: str = "form"


def _resolve_float(key: str, default: float, *, low: float, high: float) -> float:
    raw = (os.environ.get(key) or "").strip()
    try:
        value = float(raw) if raw else default
    except ValueError:
        value = default
    return max(low, min(value, high))


def _resolve_int(key: str, default: int, *, low: int, high: int) -> int:
    raw = (os.environ.get(key) or "").strip()
    try:
        value = int(raw) if raw else default
    except ValueError:
        value = default
    return max(low, min(value, high))


def _resolve_bool(key: str, default: bool) -> bool:
    raw = (os.environ.get(key) or "").strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    return default


def _resolve_user_agent() -> str:
    value = (os.environ.get("PDF_BATCH_USER_AGENT") or "").strip()
    return value or DEFAULT_USER_AGENT


def _resolve_browser_executable_path() -> str | None:
    for key in (
        "PDF_BATCH_BROWSER_EXECUTABLE_PATH",
        "BROWSER_EXECUTABLE_PATH",
        "CHROME_BIN",
        "CHROME_PATH",
    ):
        value = (os.environ.get(key) or "").strip()
        if value:
            return value
    return None


def _resolve_sandbox_enabled() -> bool:
    """
    Determine whether Chromium sandbox should be enabled.

    - Chromium generally cannot start with sandbox as root (containers, CI).
    - Default is sandbox disabled to improve headless reliability in WSL/Docker.
    """
    try:
        if hasattr(os, "geteuid") and os.geteuid() == 0:
            return False
    except Exception:
        pass
    return _resolve_bool("PDF_BATCH_NODRIVER_SANDBOX", False)


def load_config() -> BatchConfig:
    return BatchConfig(
        navigation_timeout_seconds=_resolve_float(
            "PDF_BATCH_NAVIGATION_TIMEOUT_SECONDS", 45.0, low=1.0, high=600.0
        ),
        settle_delay_seconds=_resolve_float("PDF_BATCH_SETTLE_DELAY_SECONDS", 2.0, low=0.0, high=60.0),
        consent_settle_delay_seconds=_resolve_float(
            "PDF_BATCH_CONSENT_SETTLE_DELAY_SECONDS", 1.0, low=0.0, high=30.0
        ),
        throttle_delay_seconds=_resolve_float("PDF_BATCH_THROTTLE_DELAY_SECONDS", 1.0, low=0.0, high=60.0),
        network_idle_seconds=_resolve_float("PDF_BATCH_NETWORK_IDLE_SECONDS", 0.5, low=0.0, high=10.0),
        user_agent=_resolve_user_agent(),
        browser_executable_path=_resolve_browser_executable_path(),
        sandbox_enabled=_resolve_sandbox_enabled(),
        start_retry_attempts=_resolve_int("PDF_BATCH_NODRIVER_RETRY_ATTEMPTS", 3, low=1, high=5),
        retry_backoff_seconds=_resolve_float(
            "PDF_BATCH_NODRIVER_RETRY_BACKOFF_SECONDS", 0.5, low=0.0, high=10.0
        ),
        devtools_ready_timeout_seconds=_resolve_float(
            "PDF_BATCH_DEVTOOLS_READY_TIMEOUT_SECONDS", 12.0, low=0.5, high=120.0
        ),
    )
