"""
Unit tests for logging setup.
"""

from loguru import logger

from injapan_affiliate.config.settings import settings
from injapan_affiliate.utils.logging import setup_logging


class TestSetupLogging:
    """Test logger configuration."""

    def test_writes_to_log_file(self, tmp_path, monkeypatch):
        """Records reach the configured file sink."""
        log_file = tmp_path / "affiliate.log"
        monkeypatch.setattr(settings, "log_file", str(log_file))

        setup_logging()
        try:
            logger.info("referral click recorded")
            logger.complete()
        finally:
            logger.remove()

        content = log_file.read_text(encoding="utf-8")
        assert "Starting Injapan Food affiliate services" in content
        assert "referral click recorded" in content
