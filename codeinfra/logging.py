"""Logging setup shared by the changelog and broken-link commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

ROOT_LOGGER = "codeinfra"
CONSOLE_FORMAT = "[codeinfra] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Request logs from the HTTP client only surface with --verbose.
HTTP_LOGGERS = ("httpx",)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``codeinfra.<name>``, e.g. ``get_logger("links.crawler")``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def configure_logging(
    *, verbose: bool = False, log_file: Optional[Path] = None
) -> logging.Logger:
    """Send codeinfra records to stderr and, when ``log_file`` is given, to a file.

    Calling it again replaces (and closes) the handlers of the previous call.
    With ``verbose`` the level drops to DEBUG and the HTTP client's request
    log joins the same handlers.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: List[logging.Handler] = [_console_handler(level)]
    if log_file is not None:
        handlers.append(_file_handler(Path(log_file), level))

    logger = logging.getLogger(ROOT_LOGGER)
    _install(logger, handlers, level)

    for name in HTTP_LOGGERS:
        http_logger = logging.getLogger(name)
        if verbose:
            _install(http_logger, handlers, logging.INFO)
        else:
            _reset(http_logger)
            http_logger.setLevel(logging.NOTSET)
            http_logger.propagate = True
    return logger


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _install(logger: logging.Logger, handlers: List[logging.Handler], level: int) -> None:
    _reset(logger)
    logger.setLevel(level)
    logger.propagate = False
    for handler in handlers:
        logger.addHandler(handler)


def _reset(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


__all__ = ["configure_logging", "get_logger"]
