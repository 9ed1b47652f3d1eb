from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from codeinfra.links.models import PageData
from codeinfra.links.targets import (
    download_known_targets,
    merge_link_structures,
    read_link_structure,
    resolve_known_targets,
    write_pages_to_file,
)


def test_read_link_structure() -> None:
    assert read_link_structure({"targets": {"/a": ["#x", "#y"], "/b": []}}) == {
        "/a": {"#x", "#y"},
        "/b": set(),
    }


def test_read_link_structure_requires_targets_mapping() -> None:
    with pytest.raises(ValueError):
        read_link_structure({"pages": {}})


def test_write_pages_to_file_creates_parent_directories(tmp_path) -> None:
    out_path = tmp_path / "nested" / "targets.json"
    pages = {"/a": PageData(url="/a", status=200, targets={"#z", "#b"})}

    write_pages_to_file(pages, out_path)

    assert json.loads(out_path.read_text(encoding="utf-8")) == {"targets": {"/a": ["#b", "#z"]}}


def test_merge_link_structures_prefers_later_entries() -> None:
    merged = merge_link_structures({"/a": {"#1"}, "/b": {"#2"}}, {"/a": {"#3"}})

    assert merged == {"/a": {"#3"}, "/b": {"#2"}}


def _manifests(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/first.json":
        return httpx.Response(200, json={"targets": {"/a": ["#one"], "/b": ["#two"]}})
    if request.url.path == "/second.json":
        return httpx.Response(200, json={"targets": {"/a": ["#three"]}})
    return httpx.Response(404)


def test_resolve_known_targets_merges_downloads_in_order_then_local() -> None:
    transport = httpx.MockTransport(_manifests)

    resolved = asyncio.run(
        resolve_known_targets(
            ["https://cdn.test/first.json", "https://cdn.test/second.json"],
            {"/b": {"#local"}},
            transport=transport,
        )
    )

    assert resolved == {"/a": {"#three"}, "/b": {"#local"}}


def test_download_known_targets_raises_on_http_errors() -> None:
    transport = httpx.MockTransport(_manifests)

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(download_known_targets(["https://cdn.test/missing.json"], transport=transport))


def test_download_known_targets_without_urls_makes_no_requests() -> None:
    assert asyncio.run(download_known_targets([])) == []
