"""Link href normalization."""

from __future__ import annotations

import re
from typing import Iterable, Optional
from urllib.parse import urljoin, urlsplit


def resolve_href(href: str, src: Optional[str]) -> str:
    """Resolve ``href`` against the page path it was found on.

    Seed links (``src`` is None) and empty hrefs are returned unchanged.
    Relative paths and same-page fragments become site-absolute, e.g.
    ``../valid.html`` on ``/nested/page.html`` resolves to ``/valid.html``.
    Absolute and protocol-relative URLs stay as they are.
    """
    if src is None or not href:
        return href
    return urljoin(src, href)


def get_page_url(href: str, ignored_paths: Iterable[re.Pattern] = ()) -> Optional[str]:
    """Return the internal page path for ``href``, or None when it is not crawlable.

    Only site-absolute hrefs (``/...``) are internal; resolve relative ones
    with :func:`resolve_href` first. The trailing slash is removed except for
    the root, the query string is kept and the fragment dropped. Paths matched by any ``ignored_paths`` pattern are skipped.
    """
    if not href.startswith("/") or href.startswith("//"):
        return None
    parts = urlsplit(href)
    path = parts.path or "/"
    if any(pattern.search(path) for pattern in ignored_paths):
        return None
    if path != "/" and path.endswith("/"):
        path = path[:-1]
    return f"{path}?{parts.query}" if parts.query else path


def get_link_target(href: str) -> str:
    """Return ``#fragment`` for ``href``, or an empty string without one."""
    fragment = urlsplit(href).fragment
    return f"#{fragment}" if fragment else ""


__all__ = ["get_link_target", "get_page_url", "resolve_href"]
