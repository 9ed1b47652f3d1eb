"""Broken-link crawler for documentation sites."""

from __future__ import annotations

from .crawler import crawl, validate_links
from .models import CrawlOptions, CrawlResult, IgnoreRule, Issue, Link, PageData
from .queue import TaskQueue
from .server import DevServer, ServerStartError
from .targets import read_link_structure, write_pages_to_file
from .urls import get_link_target, get_page_url, resolve_href

__all__ = [
    "CrawlOptions",
    "CrawlResult",
    "DevServer",
    "IgnoreRule",
    "Issue",
    "Link",
    "PageData",
    "ServerStartError",
    "TaskQueue",
    "crawl",
    "get_link_target",
    "get_page_url",
    "read_link_structure",
    "resolve_href",
    "validate_links",
    "write_pages_to_file",
]
