from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from webpage_pdf_batch.settings import BatchConfig, PdfOptions, load_config


class TestLoadConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            config = load_config()

        self.assertEqual(config.navigation_timeout_seconds, 45.0)
        self.assertEqual(config.settle_delay_seconds, 2.0)
        self.assertEqual(config.throttle_delay_seconds, 1.0)
        self.assertEqual(config.file_name_max_chars, 100)
        self.assertIn("please log in", config.sign_in_phrases)
        self.assertIsNone(config.browser_executable_path)

    def test_env_overrides_are_clamped(self) -> None:
        with patch.dict(
            os.environ,
            {
                "PDF_BATCH_NAVIGATION_TIMEOUT_SECONDS": "5000",
                "PDF_BATCH_SETTLE_DELAY_SECONDS": "-3",
                "PDF_BATCH_NODRIVER_RETRY_ATTEMPTS": "9",
            },
            clear=True,
        ):
            config = load_config()

        self.assertEqual(config.navigation_timeout_seconds, 600.0)
        self.assertEqual(config.settle_delay_seconds, 0.0)
        self.assertEqual(config.start_retry_attempts, 5)

    def test_garbage_values_fall_back_to_defaults(self) -> None:
        with patch.dict(
            os.environ,
            {"PDF_BATCH_THROTTLE_DELAY_SECONDS": "abc", "PDF_BATCH_NODRIVER_RETRY_ATTEMPTS": "x"},
            clear=True,
        ):
            config = load_config()

        self.assertEqual(config.throttle_delay_seconds, 1.0)
        self.assertEqual(config.start_retry_attempts, 3)

    def test_browser_executable_from_env(self) -> None:
        with patch.dict(os.environ, {"CHROME_BIN": "/opt/chrome/chrome"}, clear=True):
            self.assertEqual(load_config().browser_executable_path, "/opt/chrome/chrome")

    def test_sandbox_forced_off_as_root(self) -> None:
        with patch.dict(os.environ, {"PDF_BATCH_NODRIVER_SANDBOX": "1"}, clear=True), patch(
            "os.geteuid", return_value=0, create=True
        ):
            self.assertFalse(load_config().sandbox_enabled)

        with patch.dict(os.environ, {"PDF_BATCH_NODRIVER_SANDBOX": "1"}, clear=True), patch(
            "os.geteuid", return_value=1000, create=True
        ):
            self.assertTrue(load_config().sandbox_enabled)

    def test_config_is_immutable(self) -> None:
        config = BatchConfig()
        with self.assertRaises(AttributeError):
            config.navigation_timeout_seconds = 1.0  # type: ignore[misc]


class TestPdfOptions(unittest.TestCase):
    def test_a4_with_20px_margins(self) -> None:
        options = PdfOptions()
        self.assertEqual(options.paper_size_inches, (8.27, 11.69))
        self.assertAlmostEqual(options.margin_inches, 20 / 96)
        self.assertTrue(options.print_background)


if __name__ == "__main__":
    unittest.main()
