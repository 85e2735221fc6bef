"""Unit tests for logger configuration."""

import io
import threading

import pytest
from loguru import logger

from brief_aggregation.config import LoggingConfig
from brief_aggregation.logger import get_logger, setup_logger, source_context


@pytest.fixture
def capture():
    """Route loguru output into a buffer for the duration of a test."""
    logger.remove()
    output = io.StringIO()
    handler_id = logger.add(output, format="{level} | {extra} | {message}", level="DEBUG")
    yield output
    logger.remove(handler_id)


class TestSetupLogger:
    """Tests for setup_logger."""

    def test_writes_to_log_file(self, tmp_path):
        log_file = tmp_path / "brief.log"

        handlers = setup_logger(level="DEBUG", log_file=str(log_file), console=False)
        logger.debug("Stored digest 7")
        logger.remove()  # flushes the enqueued file sink

        assert len(handlers) == 1
        content = log_file.read_text()
        assert "Stored digest 7" in content
        assert "DEBUG" in content

    def test_creates_missing_log_directory(self, tmp_path):
        log_file = tmp_path / "nested" / "dir" / "app.log"

        setup_logger(log_file=str(log_file), console=False)
        logger.warning("hello")
        logger.remove()

        assert log_file.exists()

    def test_file_sink_disabled(self, tmp_path):
        log_file = tmp_path / "unused.log"

        handlers = setup_logger(
            log_file=str(log_file),
            config=LoggingConfig(file_enabled=False, console_enabled=True),
        )
        logger.info("stderr only")
        logger.remove()

        assert len(handlers) == 1
        assert not log_file.exists()


class TestGetLogger:
    """Tests for get_logger."""

    def test_binds_module_name(self, capture):
        get_logger("brief_aggregation.core.pipeline").info("cycle done")

        line = capture.getvalue()
        assert "cycle done" in line
        assert "brief_aggregation.core.pipeline" in line

    def test_without_name_returns_root_logger(self):
        assert get_logger() is logger


class TestSourceContext:
    """Tests for per-source log context."""

    def test_tags_records(self, capture):
        log = get_logger("brief_aggregation.core.adapters.rss")
        with source_context(42, "rss"):
            log.warning("Skipping malformed entry")
        log.info("outside")

        tagged, untagged = capture.getvalue().splitlines()
        assert "'source_id': 42" in tagged
        assert "'source_type': 'rss'" in tagged
        assert "source_id" not in untagged

    def test_context_is_per_thread(self, capture):
        seen = threading.Event()

        def other_worker():
            logger.info("other thread")
            seen.set()

        with source_context(7):
            worker = threading.Thread(target=other_worker)
            worker.start()
            worker.join()
            logger.info("this thread")

        assert seen.is_set()
        lines = dict(line.rsplit(" | ", 1)[::-1] for line in capture.getvalue().splitlines())
        assert "source_id" not in lines["other thread"]
        assert "'source_id': 7" in lines["this thread"]

    def test_exception_traceback(self, capture):
        with source_context(3):
            try:
                raise ValueError("broken feed")
            except ValueError:
                logger.exception("fetch failed")

        output = capture.getvalue()
        assert "fetch failed" in output
        assert "ValueError: broken feed" in output
