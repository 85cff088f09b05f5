"""Tests for logging helpers."""

from __future__ import annotations

import logging
from pathlib import Path

from cmsmark.logging import configure_logging, get_logger


def test_get_logger_uses_cmsmark_hierarchy() -> None:
    assert get_logger().name == "cmsmark"
    assert get_logger("source.resolver").name == "cmsmark.source.resolver"


def test_configure_logging_does_not_stack_handlers(tmp_path: Path) -> None:
    configure_logging()
    logger = configure_logging(verbose=True, log_file=tmp_path / "logs" / "cmsmark.log")

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2

    logger = configure_logging(quiet=True)
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1


def test_log_file_receives_debug_records(tmp_path: Path) -> None:
    log_file = tmp_path / "cmsmark.log"
    logger = configure_logging(quiet=True, log_file=log_file)
    logger.setLevel(logging.DEBUG)

    get_logger("processor").debug("marked %s", "index.html")
    for handler in logger.handlers:
        handler.flush()

    assert "cmsmark.processor: marked index.html" in log_file.read_text(encoding="utf-8")
    configure_logging()
