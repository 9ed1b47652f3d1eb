"""HTML parsing: outgoing links with accessible names, and anchor targets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from bs4 import BeautifulSoup, Comment, Tag

from .models import Link


@dataclass
class ParsedPage:
    links: List[Link] = field(default_factory=list)
    targets: Set[str] = field(default_factory=set)


def parse_page(
    html: str,
    page_url: str,
    *,
    ignored_content: Iterable[str] = (),
    ignored_targets: Iterable[str] = (),
) -> ParsedPage:
    """Extract links and ``#id`` targets from an HTML document.

    Anchors inside any element matched by ``ignored_content`` selectors are
    skipped. Ids listed in ``ignored_targets`` are not reported as targets.
    """
    soup = BeautifulSoup(html, "html.parser")
    page = ParsedPage()

    for anchor in soup.select(links_selector(ignored_content)):
        page.links.append(
            Link(src=page_url, text=accessible_name(anchor, soup), href=str(anchor.get("href", "")))
        )

    skipped = set(ignored_targets)
    for element in soup.find_all(id=True):
        element_id = str(element["id"])
        if element_id not in skipped:
            page.targets.add(f"#{element_id}")
    return page


def links_selector(ignored_content: Iterable[str]) -> str:
    """CSS selector for anchors with an href outside the ignored subtrees."""
    excluded = [part for selector in ignored_content for part in (selector, f"{selector} *")]
    if not excluded:
        return "a[href]"
    return f"a[href]:not({', '.join(excluded)})"


def accessible_name(
    element: Optional[Tag], soup: BeautifulSoup, *, referenced: bool = False
) -> str:
    """Compute an element's accessible name.

    Checked in order: ``aria-label``, the elements referenced by
    ``aria-labelledby``, an associated ``<label for>``, an image's ``alt``
    and finally the visible text, where nested images contribute their ``alt``.

    Names of elements reached through ``aria-labelledby`` or ``<label for>``
    are computed with ``referenced=True``, which does not follow those
    references again. Self-labelling and mutually labelling elements
    therefore terminate.
    """
    if element is None:
        return ""

    aria_label = str(element.get("aria-label") or "").strip()
    if aria_label:
        return aria_label

    labelledby = None if referenced else element.get("aria-labelledby")
    if labelledby:
        names = []
        for label_id in str(labelledby).split():
            name = accessible_name(soup.find(id=label_id), soup, referenced=True)
            if name:
                names.append(name)
        label = " ".join(names).strip()
        if label:
            return label

    element_id = None if referenced else element.get("id")
    if element_id:
        label_element = soup.find("label", attrs={"for": element_id})
        if label_element is not None:
            return accessible_name(label_element, soup, referenced=True)

    if element.name == "img":
        alt = str(element.get("alt") or "").strip()
        if alt:
            return alt

    return " ".join(_text_alternative(element).split())


def _text_alternative(element: Tag) -> str:
    parts: List[str] = []
    for child in element.children:
        if isinstance(child, Tag):
            if child.name == "img":
                parts.append(str(child.get("alt") or ""))
            else:
                parts.append(_text_alternative(child))
        elif not isinstance(child, Comment):
            parts.append(str(child))
    return "".join(parts)


__all__ = ["ParsedPage", "accessible_name", "links_selector", "parse_page"]
