from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))


@pytest.fixture(scope="session", autouse=True)
def quiet_logging():
    """
    Keep per-URL progress lines out of test output unless a test opts in.
    """
    logging.getLogger("webpage_pdf_batch").setLevel(logging.WARNING)
