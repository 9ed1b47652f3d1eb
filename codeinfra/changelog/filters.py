"""Commit filtering rules."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence

from .models import Commit, FilterConfig, Pattern


def filter_commits(
    commits: Sequence[Commit], config: Optional[FilterConfig] = None
) -> List[Commit]:
    """Return the commits that survive the author, label and custom rules.

    The input sequence is never modified.
    """
    if config is None:
        return list(commits)
    return [commit for commit in commits if _keep(commit, config)]


def _keep(commit: Commit, config: FilterConfig) -> bool:
    if commit.author is not None and config.exclude_commit_by_authors:
        if _matches_author(commit.author.login, config.exclude_commit_by_authors):
            return False

    if config.exclude_commit_with_labels:
        if any(matches_exactly(label, config.exclude_commit_with_labels) for label in commit.labels):
            return False

    if config.custom_filter is not None and not config.custom_filter(commit):
        return False

    return True


def _matches_author(login: str, patterns: Iterable[Pattern]) -> bool:
    for pattern in patterns:
        if isinstance(pattern, re.Pattern):
            if pattern.search(login):
                return True
        elif pattern in login:
            return True
    return False


def matches_exactly(value: str, patterns: Iterable[Pattern]) -> bool:
    """Return True when ``value`` equals a string pattern or matches a regex."""
    for pattern in patterns:
        if isinstance(pattern, re.Pattern):
            if pattern.search(value):
                return True
        elif pattern == value:
            return True
    return False


__all__ = ["filter_commits", "matches_exactly"]
