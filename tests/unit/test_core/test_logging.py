"""Unit tests for logging configuration."""

from pathlib import Path

from loguru import logger

from manacity_api.core.logging import setup_logging


class TestLogging:
    """Tests for Loguru logging setup."""

    def test_setup_logging_does_not_raise(self) -> None:
        """setup_logging with valid log level does not raise."""
        setup_logging("DEBUG")
        setup_logging("INFO")
        setup_logging("WARNING")

    def test_setup_logging_case_insensitive(self) -> None:
        """setup_logging accepts case-insensitive log levels."""
        setup_logging("info")
        setup_logging("debug")

    def test_records_without_trace_id_still_format(self) -> None:
        setup_logging("INFO")
        logger.info("outside any request")

    def test_file_sink(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "logs"
        setup_logging("INFO", log_dir=str(log_dir))
        with logger.contextualize(trace_id="abc123"):
            logger.info("address saved")
        logger.complete()
        setup_logging("INFO")

        contents = (log_dir / "manacity-api.log").read_text()
        assert "abc123" in contents
        assert "address saved" in contents
