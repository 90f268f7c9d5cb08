"""Tests for logging configuration and timing helpers."""
import logging

import pytest

from hmpact.utils import logging_config
from hmpact.utils.logging_config import setup_logging, timed, timed_section


@pytest.fixture
def clean_logger():
    logger = logging.getLogger("hmpact")
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    logger.handlers.clear()
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = saved_handlers
    logger.setLevel(saved_level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_installs_handlers(self, tmp_path, monkeypatch, clean_logger):
        log_file = tmp_path / "logs" / "hmpact.log"
        monkeypatch.setenv("HMPACT_LOG_FILE", str(log_file))
        monkeypatch.setenv("HMPACT_LOG_LEVEL", "warning")

        setup_logging()

        assert len(clean_logger.handlers) == 2
        assert log_file.exists()
        assert logging_config.get_log_level() == logging.WARNING

    def test_second_call_is_noop(self, tmp_path, monkeypatch, clean_logger):
        monkeypatch.setenv("HMPACT_LOG_FILE", str(tmp_path / "hmpact.log"))
        setup_logging()
        setup_logging()
        assert len(clean_logger.handlers) == 2

    def test_unknown_level_defaults_to_info(self, monkeypatch):
        monkeypatch.setenv("HMPACT_LOG_LEVEL", "chatty")
        assert logging_config.get_log_level() == logging.INFO


class TestTimed:
    """Tests for the timing helpers."""

    def test_timed_logs_target(self, caplog):
        class Store:
            @timed("cache_get")
            def get(self, key):
                return key.upper()

        with caplog.at_level(logging.DEBUG, logger="hmpact.perf"):
            assert Store().get("react") == "REACT"

        assert "cache_get" in caplog.text
        assert "react" in caplog.text
        assert "OK" in caplog.text

    def test_timed_reraises(self, caplog):
        @timed("boom")
        def explode():
            raise RuntimeError("nope")

        with caplog.at_level(logging.WARNING, logger="hmpact.perf"):
            with pytest.raises(RuntimeError):
                explode()
        assert "FAIL: nope" in caplog.text

    def test_timed_section(self, caplog):
        with caplog.at_level(logging.INFO, logger="hmpact.perf"):
            with timed_section("registry_import", target="https://example.com", entries=3):
                pass
        assert "registry_import" in caplog.text
        assert "entries=3" in caplog.text
