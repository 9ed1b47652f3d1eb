"""Placeholder templating for changelog headings and messages.

Templates use ``{{ name }}`` placeholders. Missing keys and ``None`` values
render as empty strings, everything else is converted with ``str``.

Templates can come from request bodies in service mode, so they are rendered
in Jinja's sandbox. Attribute access into Python internals fails there and is
reported as a :class:`ConfigError`.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Mapping

from jinja2 import Template, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from .errors import ConfigError


def _finalize(value: Any) -> Any:
    return "" if value is None else value


_ENV = SandboxedEnvironment(autoescape=False, keep_trailing_newline=True, finalize=_finalize)


@lru_cache(maxsize=256)
def _compile(template: str) -> Template:
    return _ENV.from_string(template)


def template_string(template: str, values: Mapping[str, Any] | None = None) -> str:
    """Render ``template`` substituting ``{{ placeholder }}`` values."""
    if not template:
        return ""
    try:
        return _compile(template).render(**dict(values or {}))
    except TemplateError as exc:
        raise ConfigError(f"Invalid template {template!r}: {exc}") from exc


__all__ = ["template_string"]
