from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import List

import pytest

from codeinfra.links import crawler as crawler_module
from codeinfra.links.crawler import crawl, parse_content_type, validate_links
from codeinfra.links.models import CrawlOptions, IgnoreRule, Link, PageData
from tests._fixtures.site import FakeSite

HOST = "http://docs.test"

SITE = {
    "/": '<a href="/a">A</a> <a href="/b/#intro">B intro</a> <a href="https://example.com">Ext</a>',
    "/a": (
        '<h2 id="top">Top</h2>'
        '<a href="/">Home</a>'
        '<a href="/missing">Missing</a>'
        '<a href="/b#gone">Gone</a>'
    ),
    "/b": '<h2 id="intro">Intro</h2><a href="/a#top">Back to top</a>',
}


def _run(site: FakeSite, **overrides):
    options = CrawlOptions(host=HOST, **overrides)
    return asyncio.run(crawl(options, transport=site.transport))


def _summary(issues):
    return {(issue.kind, issue.link.src, issue.link.href, issue.message) for issue in issues}


def test_crawl_reports_broken_links_and_targets() -> None:
    site = FakeSite(SITE)

    result = _run(site)

    assert _summary(result.issues) == {
        ("broken-link", "/a", "/missing", "Page returned error 404"),
        ("broken-target", "/a", "/b#gone", "Target not found"),
    }
    assert result.broken_links == 1
    assert result.broken_targets == 1
    assert len(result.links) == 8
    assert result.links[0] == Link(src=None, text=None, href="/")
    assert set(result.pages) == {"/", "/a", "/b", "/missing"}
    assert result.pages["/b"].targets == {"#intro"}
    assert result.pages["/missing"].status == 404
    assert result.pages["/a"].content_type == "text/html"


def test_crawl_fetches_each_normalized_page_once() -> None:
    site = FakeSite(
        {
            "/": '<a href="/b/">one</a><a href="/b">two</a><a href="/b#x">three</a>',
            "/b": '<p id="x">x</p><a href="/">home</a><a href="/b/#x">self</a>',
        }
    )

    result = _run(site, concurrency=1)

    assert sorted(site.requests) == ["/", "/b"]
    assert result.issues == []


def test_crawl_checks_known_targets_without_fetching() -> None:
    site = FakeSite({"/": '<a href="/api/button#props">ok</a><a href="/api/button#nope">bad</a>'})

    result = _run(site, known_targets={"/api/button": {"#props"}})

    assert site.requests == ["/"]
    assert _summary(result.issues) == {
        ("broken-target", "/", "/api/button#nope", "Target not found"),
    }


def test_crawl_merges_downloaded_targets_under_local_ones() -> None:
    manifest = json.dumps({"targets": {"/api": ["#props"], "/blog": ["#post"]}})
    site = FakeSite(
        {
            "/": '<a href="/api#props">a</a><a href="/api#slots">b</a><a href="/blog#post">c</a>',
            "/known.json": (200, manifest, "application/json"),
        }
    )

    result = _run(
        site,
        known_targets={"/api": {"#slots"}},
        known_targets_download_url=["https://downloads.test/known.json"],
    )

    assert site.requests[0] == "/known.json"
    assert "/api" not in result.pages
    assert _summary(result.issues) == {
        ("broken-target", "/", "/api#props", "Target not found"),
    }


def test_crawl_records_non_html_and_invalid_pages_without_parsing() -> None:
    site = FakeSite(
        {
            "/": (
                '<a href="/guide.pdf">pdf</a><a href="/logo.png">logo</a>'
                '<a href="/weird">weird</a><a href="/down">down</a>'
            ),
            "/guide.pdf": (200, '<a href="/from-pdf">x</a>', "application/pdf"),
            "/logo.png": (200, "png", "image/png"),
            "/weird": (200, '<a href="/from-weird">x</a>', "not a media type"),
        },
        failing=("/down",),
    )

    result = _run(site)

    assert result.pages["/guide.pdf"].content_type == "application/pdf"
    assert result.pages["/logo.png"].content_type == "image/png"
    assert result.pages["/weird"].status == 200
    assert result.pages["/weird"].content_type is None
    assert result.pages["/down"].status == 0
    assert "/from-pdf" not in site.requests
    assert "/from-weird" not in site.requests
    assert _summary(result.issues) == {
        ("broken-link", "/", "/down", "Page returned error 0"),
    }


def test_crawl_skips_ignored_paths_and_seeds_extra_urls() -> None:
    site = FakeSite(
        {
            "/": '<a href="/experiments/demo">demo</a>',
            "/blog": '<a href="/blog/post">post</a>',
            "/blog/post": "<p>post</p>",
        }
    )

    result = _run(site, ignored_paths=[re.compile(r"^/experiments")], seed_urls=["/", "/blog/"])

    assert sorted(site.requests) == ["/", "/blog", "/blog/post"]
    assert result.issues == []


def test_crawl_applies_ignore_rules() -> None:
    by_href = _run(FakeSite(SITE), ignores=[IgnoreRule(href=re.compile(r"^/missing"))])
    by_page = _run(FakeSite(SITE), ignores=[IgnoreRule(path="/a", content_type="text/html")])
    by_other_type = _run(FakeSite(SITE), ignores=[IgnoreRule(path="/a", content_type="image/png")])

    assert _summary(by_href.issues) == {("broken-target", "/a", "/b#gone", "Target not found")}
    assert by_page.issues == []
    assert len(by_other_type.issues) == 2


def test_crawl_writes_targets_manifest(tmp_path: Path) -> None:
    out_path = tmp_path / "export" / "links.json"

    _run(FakeSite(SITE), out_path=out_path)

    data = json.loads(out_path.read_text(encoding="utf-8"))
    assert data == {
        "targets": {
            "/": [],
            "/a": ["#top"],
            "/b": ["#intro"],
            "/missing": [],
        }
    }


def test_crawl_ignores_next_root_targets_by_default() -> None:
    site = FakeSite({"/": '<div id="__next"><a href="/#__next">root</a></div>'})

    result = _run(site)

    assert result.pages["/"].targets == set()
    assert _summary(result.issues) == {("broken-target", "/", "/#__next", "Target not found")}


def test_crawl_resolves_relative_links_and_same_page_fragments() -> None:
    site = FakeSite(
        {
            "/": '<a href="/page-with-custom-targets.html">targets</a><a href="nested/page.html">nested</a>',
            "/page-with-custom-targets.html": (
                '<h2 id="custom-id">Custom</h2><div id="__should-be-ignored"></div>'
                '<a href="#custom-id">Link to custom ID</a>'
                '<a href="#__should-be-ignored">Link to ignored ID</a>'
            ),
            "/nested/page.html": (
                '<a href="../valid.html">Relative valid link</a>'
                '<a href="../broken-relative-html.html">Relative broken link from HTML</a>'
            ),
            "/valid.html": "<p>valid</p>",
        }
    )

    result = _run(site, ignored_targets={"__should-be-ignored"})

    assert _summary(result.issues) == {
        ("broken-target", "/page-with-custom-targets.html", "#__should-be-ignored", "Target not found"),
        ("broken-link", "/nested/page.html", "../broken-relative-html.html", "Page returned error 404"),
    }
    assert sorted(site.requests) == [
        "/",
        "/broken-relative-html.html",
        "/nested/page.html",
        "/page-with-custom-targets.html",
        "/valid.html",
    ]


def test_crawl_survives_self_labelling_anchors() -> None:
    site = FakeSite({"/": '<a id="x" aria-labelledby="x" href="/c">Next</a>', "/c": "<p>c</p>"})

    result = _run(site)

    assert result.issues == []
    assert result.links[1] == Link(src="/", text="Next", href="/c")
    assert set(result.pages) == {"/", "/c"}


def test_crawl_warns_about_slow_pages(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(crawler_module, "SLOW_PAGE_SECONDS", -1.0)
    records: List[logging.LogRecord] = []
    handler = logging.Handler()
    handler.emit = records.append
    crawler_module.logger.addHandler(handler)
    try:
        _run(FakeSite({"/": "<p>home</p>"}))
    finally:
        crawler_module.logger.removeHandler(handler)

    slow = [record.getMessage() for record in records if "to respond" in record.getMessage()]
    assert len(slow) == 1
    assert slow[0].startswith("Warning: / took ")


def test_validate_links_reports_uncrawled_pages() -> None:
    links = [Link(src="/", text="x", href="/never"), Link(src="/", text="ext", href="https://x.test")]
    pages = {"/": PageData(url="/", status=200)}

    issues = validate_links(links, pages, {}, CrawlOptions(host=HOST))

    assert _summary(issues) == {("broken-link", "/", "/never", "Page not crawled")}


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("text/html", "text/html"),
        ("Text/HTML; charset=UTF-8", "text/html"),
        ("application/vnd.api+json", "application/vnd.api+json"),
    ],
)
def test_parse_content_type(header: str, expected: str) -> None:
    assert parse_content_type(header) == expected


@pytest.mark.parametrize("header", ["", "html", "text/html extra", "/json"])
def test_parse_content_type_rejects_invalid_values(header: str) -> None:
    with pytest.raises(ValueError):
        parse_content_type(header)
