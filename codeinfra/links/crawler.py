"""Crawl orchestration: discover pages from seeds and validate every link."""

from __future__ import annotations

import asyncio
import contextlib
import re
import time
from typing import AsyncIterator, Dict, List, Mapping, Optional

import httpx

from ..logging import get_logger
from .models import CrawlOptions, CrawlResult, Issue, Link, LinkStructure, PageData
from .parser import parse_page
from .queue import TaskQueue
from .report import apply_ignore_rules, log_summary, report_issues
from .server import DevServer
from .targets import resolve_known_targets, write_pages_to_file
from .urls import get_link_target, get_page_url, resolve_href

_MEDIA_TYPE_RE = re.compile(r"^\s*([!#$%&'*+.^_`|~0-9A-Za-z-]+/[!#$%&'*+.^_`|~0-9A-Za-z-]+)\s*(;.*)?$")

# Fetches slower than this are logged as warnings.
SLOW_PAGE_SECONDS = 5.0

logger = get_logger("links.crawler")


async def crawl(
    options: CrawlOptions, *, transport: Optional[httpx.AsyncBaseTransport] = None
) -> CrawlResult:
    """Crawl ``options.host`` from the seed URLs and report broken links and targets.

    ``transport`` replaces the HTTP transport for page and manifest requests,
    which lets tests serve a site from memory.
    """
    started = time.monotonic()
    crawled_pages: Dict[str, asyncio.Future[PageData]] = {}
    links: List[Link] = []

    async with _dev_server(options):
        known_targets = await resolve_known_targets(
            options.known_targets_download_url, options.known_targets, transport=transport
        )

        async with httpx.AsyncClient(
            base_url=options.host,
            transport=transport,
            follow_redirects=True,
            timeout=None,
        ) as client:

            async def visit(link: Link) -> None:
                links.append(link)
                page_url = get_page_url(resolve_href(link.href, link.src), options.ignored_paths)
                if page_url is None or page_url in known_targets or page_url in crawled_pages:
                    return
                page = asyncio.ensure_future(_fetch_page(client, page_url, options, queue))
                crawled_pages[page_url] = page
                await page

            queue: TaskQueue[Link] = TaskQueue(visit, options.concurrency)
            for seed in options.seed_urls:
                queue.add(Link(src=None, text=None, href=seed))
            await queue.wait_all()

    pages = {url: await page for url, page in crawled_pages.items()}
    if options.out_path:
        write_pages_to_file(pages, options.out_path)

    issues = apply_ignore_rules(
        validate_links(links, pages, known_targets, options), options.ignores, pages
    )
    result = CrawlResult(links=links, pages=pages, issues=issues)
    report_issues(issues)
    log_summary(result, time.monotonic() - started, options.out_path)
    return result


def validate_links(
    links: List[Link],
    pages: Mapping[str, PageData],
    known_targets: LinkStructure,
    options: CrawlOptions,
) -> List[Issue]:
    """Check every link against the crawled pages and the known targets.

    Hrefs are resolved against their source page, so relative links and
    same-page fragments are checked like site-absolute ones.
    """
    issues: List[Issue] = []
    for link in links:
        href = resolve_href(link.href, link.src)
        page_url = get_page_url(href, options.ignored_paths)
        if page_url is None:
            continue
        target = get_link_target(href)

        if page_url in known_targets:
            if target and target not in known_targets[page_url]:
                issues.append(Issue("broken-target", link, "Target not found"))
            continue

        page = pages.get(page_url)
        if page is None:
            issues.append(Issue("broken-link", link, "Page not crawled"))
        elif _is_error(page.status):
            issues.append(Issue("broken-link", link, f"Page returned error {page.status}"))
        elif target and target not in page.targets:
            issues.append(Issue("broken-target", link, "Target not found"))
    return issues


def parse_content_type(header: str) -> str:
    """Return the lower-cased media type of a Content-Type header.

    Raises:
        ValueError: when the header is not a valid media type.
    """
    match = _MEDIA_TYPE_RE.match(header)
    if match is None:
        raise ValueError(f"invalid media type: {header!r}")
    return match.group(1).lower()


async def _fetch_page(
    client: httpx.AsyncClient, page_url: str, options: CrawlOptions, queue: TaskQueue[Link]
) -> PageData:
    logger.info("Crawling %s...", page_url)
    started = time.monotonic()
    try:
        response = await client.get(page_url)
    except httpx.HTTPError as exc:
        logger.warning("Warning: %s could not be fetched: %s", page_url, exc)
        return PageData(url=page_url, status=0)
    elapsed = time.monotonic() - started
    if elapsed > SLOW_PAGE_SECONDS:
        logger.warning("Warning: %s took %.1fs to respond", page_url, elapsed)

    page = PageData(url=page_url, status=response.status_code)
    if _is_error(page.status):
        logger.warning("Warning: %s returned status %d", page_url, page.status)
        return page

    header = response.headers.get("content-type")
    media_type = "text/html"
    if header:
        try:
            media_type = parse_content_type(header)
        except ValueError:
            logger.warning("Warning: %s returned invalid content-type: %s", page_url, header)
            return page
    page.content_type = media_type

    if media_type.startswith("image/"):
        return page
    if media_type != "text/html":
        logger.warning("Warning: %s returned non-HTML content-type: %s", page_url, media_type)
        return page

    parsed = parse_page(
        response.text,
        page_url,
        ignored_content=options.ignored_content,
        ignored_targets=options.ignored_targets,
    )
    page.targets = parsed.targets
    for link in parsed.links:
        queue.add(link)
    return page


def _is_error(status: int) -> bool:
    return status < 200 or status >= 400


@contextlib.asynccontextmanager
async def _dev_server(options: CrawlOptions) -> AsyncIterator[Optional[DevServer]]:
    if not options.start_command:
        yield None
        return
    async with DevServer(options.start_command, options.host) as server:
        yield server


__all__ = ["crawl", "parse_content_type", "validate_links"]
