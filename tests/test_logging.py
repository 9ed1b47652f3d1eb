"""Tests for codeinfra.logging."""

from __future__ import annotations

import logging
from pathlib import Path

from codeinfra.logging import configure_logging, get_logger


def test_get_logger_uses_codeinfra_hierarchy() -> None:
    assert get_logger().name == "codeinfra"
    assert get_logger("links.crawler").name == "codeinfra.links.crawler"


def test_configure_logging_writes_to_log_file(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "codeinfra.log"
    try:
        logger = configure_logging(log_file=log_file)
        get_logger("changelog.generator").info("Rendered %d sections", 3)
        get_logger("changelog.generator").debug("hidden at INFO")
    finally:
        configure_logging()

    text = log_file.read_text(encoding="utf-8")
    assert "INFO codeinfra.changelog.generator: Rendered 3 sections" in text
    assert "hidden at INFO" not in text
    assert logger.propagate is False


def test_configure_logging_replaces_previous_handlers() -> None:
    configure_logging()
    configure_logging()

    assert len(logging.getLogger("codeinfra").handlers) == 1
    assert logging.getLogger("codeinfra").level == logging.INFO


def test_verbose_logging_routes_http_client_logs() -> None:
    http_logger = logging.getLogger("httpx")
    try:
        configure_logging(verbose=True)
        assert logging.getLogger("codeinfra").level == logging.DEBUG
        assert http_logger.handlers == logging.getLogger("codeinfra").handlers
        assert http_logger.propagate is False
    finally:
        configure_logging()

    assert http_logger.handlers == []
    assert http_logger.propagate is True
