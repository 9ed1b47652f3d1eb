"""Known-target manifests: reading, downloading and writing ``{"targets": ...}`` JSON."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

import httpx

from ..logging import get_logger
from .models import LinkStructure, PageData

logger = get_logger("links.targets")


def read_link_structure(data: Mapping[str, Any]) -> LinkStructure:
    """Deserialize ``{"targets": {path: [ids]}}`` into a path to target-set map."""
    targets = data.get("targets")
    if not isinstance(targets, Mapping):
        raise ValueError("Link structure must contain a 'targets' mapping")
    return {str(url): {str(target) for target in ids} for url, ids in targets.items()}


def write_pages_to_file(pages: Mapping[str, PageData], out_path: Path) -> None:
    """Persist the crawled pages' targets as a known-targets manifest."""
    content = {"targets": {url: sorted(page.targets) for url, page in pages.items()}}
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(content, indent=2), encoding="utf-8")


def merge_link_structures(*structures: LinkStructure) -> LinkStructure:
    """Merge left to right; later structures replace earlier entries for the same page."""
    merged: LinkStructure = {}
    for structure in structures:
        merged.update(structure)
    return merged


async def download_known_targets(
    urls: Iterable[str], *, transport: Optional[httpx.AsyncBaseTransport] = None
) -> List[LinkStructure]:
    """Fetch every manifest in parallel, preserving the order of ``urls``."""
    urls = list(urls)
    if not urls:
        return []
    logger.info("Downloading known targets from %d URL(s)...", len(urls))

    async with httpx.AsyncClient(transport=transport, follow_redirects=True) as client:

        async def fetch(url: str) -> LinkStructure:
            logger.info("  Fetching %s", url)
            response = await client.get(url)
            response.raise_for_status()
            return read_link_structure(response.json())

        return list(await asyncio.gather(*(fetch(url) for url in urls)))


async def resolve_known_targets(
    download_urls: Iterable[str],
    known_targets: LinkStructure,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> LinkStructure:
    """Downloaded manifests merged in order, overlaid by ``known_targets``."""
    downloaded = await download_known_targets(download_urls, transport=transport)
    return merge_link_structures(*downloaded, known_targets)


__all__ = [
    "download_known_targets",
    "merge_link_structures",
    "read_link_structure",
    "resolve_known_targets",
    "write_pages_to_file",
]
