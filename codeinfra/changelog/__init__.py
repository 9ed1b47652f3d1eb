"""Changelog generation pipeline: filter, categorize, build, sort and render."""

from __future__ import annotations

from .categorize import categorize_commits
from .filters import filter_commits
from .generator import ChangelogGenerator, generate_changelog
from .github import GitHubError, fetch_commits_between_refs, find_latest_tagged_version
from .labels import parse_commit_labels
from .models import ChangelogConfig, ChangelogResult, Commit, CommitAuthor, ReleaseOptions
from .render import extract_contributors, render_changelog
from .sections import build_sections, sort_sections
from .workspace import get_workspace_versions

__all__ = [
    "ChangelogConfig",
    "ChangelogGenerator",
    "ChangelogResult",
    "Commit",
    "CommitAuthor",
    "GitHubError",
    "ReleaseOptions",
    "build_sections",
    "categorize_commits",
    "extract_contributors",
    "fetch_commits_between_refs",
    "filter_commits",
    "find_latest_tagged_version",
    "generate_changelog",
    "get_workspace_versions",
    "parse_commit_labels",
    "render_changelog",
    "sort_sections",
]
