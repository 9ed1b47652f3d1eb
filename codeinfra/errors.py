"""Exception types shared across codeinfra."""

from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when the configuration is missing, malformed or inconsistent."""


__all__ = ["ConfigError"]
