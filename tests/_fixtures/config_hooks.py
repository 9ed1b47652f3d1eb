"""Callables referenced from changelog configuration files in tests."""

from __future__ import annotations

import re
from typing import List, Optional

_TAG_RE = re.compile(r"\[([\w\s-]+)\]")


def labels_from_title(title: str) -> List[str]:
    return [f"scope: {tag.lower()}" for tag in _TAG_RE.findall(title)]


def format_commit(commit) -> Optional[str]:
    return None


def keep_all(commit) -> bool:
    return True
