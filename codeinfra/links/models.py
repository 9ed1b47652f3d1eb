"""Data models for the broken-link crawler."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Literal, Optional, Sequence, Set, Union

IssueKind = Literal["broken-link", "broken-target"]
Matcher = Union[str, re.Pattern]
MatcherSpec = Union[Matcher, Sequence[Matcher], None]

DEFAULT_CONCURRENCY = 4
DEFAULT_IGNORED_TARGETS = frozenset({"__next", "__NEXT_DATA__"})

LinkStructure = Dict[str, Set[str]]


@dataclass(frozen=True)
class Link:
    """A hyperlink seen during the crawl; ``src`` and ``text`` are None for seeds."""

    src: Optional[str]
    text: Optional[str]
    href: str


@dataclass
class PageData:
    """Fetch outcome for one normalized page path."""

    url: str
    status: int
    targets: Set[str] = field(default_factory=set)
    content_type: Optional[str] = None


@dataclass
class Issue:
    kind: IssueKind
    link: Link
    message: str


@dataclass
class IgnoreRule:
    """Suppresses issues whose link matches every field that is set.

    Each field accepts a string (exact match), a compiled regex (search) or a
    list of those, any of which may match. ``path`` is tested against the
    page the link was found on, ``href`` against the raw href and
    ``content_type`` against the source page's content type.
    """

    path: MatcherSpec = None
    href: MatcherSpec = None
    content_type: MatcherSpec = None


@dataclass
class CrawlOptions:
    """Settings for a single crawl run."""

    host: str
    start_command: Optional[str] = None
    out_path: Optional[Path] = None
    ignored_paths: List[re.Pattern] = field(default_factory=list)
    ignored_content: List[str] = field(default_factory=list)
    ignored_targets: Set[str] = field(default_factory=lambda: set(DEFAULT_IGNORED_TARGETS))
    known_targets: LinkStructure = field(default_factory=dict)
    known_targets_download_url: List[str] = field(default_factory=list)
    concurrency: int = DEFAULT_CONCURRENCY
    seed_urls: List[str] = field(default_factory=lambda: ["/"])
    ignores: List[IgnoreRule] = field(default_factory=list)


@dataclass
class CrawlResult:
    """Everything a crawl discovered: links in discovery order, pages and issues."""

    links: List[Link]
    pages: Dict[str, PageData]
    issues: List[Issue]

    @property
    def broken_links(self) -> int:
        return sum(1 for issue in self.issues if issue.kind == "broken-link")

    @property
    def broken_targets(self) -> int:
        return sum(1 for issue in self.issues if issue.kind == "broken-target")


__all__ = [
    "DEFAULT_CONCURRENCY",
    "DEFAULT_IGNORED_TARGETS",
    "CrawlOptions",
    "CrawlResult",
    "IgnoreRule",
    "Issue",
    "IssueKind",
    "Link",
    "LinkStructure",
    "Matcher",
    "MatcherSpec",
    "PageData",
]
