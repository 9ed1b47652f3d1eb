"""End-to-end changelog generation."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence

from ..logging import get_logger
from .categorize import PACKAGE_STRATEGY, categorize_commits
from .filters import filter_commits
from .github import fetch_commits_between_refs, find_latest_tagged_version
from .models import ChangelogConfig, ChangelogResult, Commit, ReleaseOptions
from .render import extract_contributors, render_changelog
from .sections import build_sections, sort_sections
from .workspace import get_workspace_versions

CommitFetcher = Callable[..., List[Commit]]
VersionLookup = Callable[..., Mapping[str, str]]
TagLookup = Callable[..., str]


def generate_changelog(
    commits: Sequence[Commit],
    config: ChangelogConfig,
    options: ReleaseOptions,
    *,
    package_versions: Optional[Mapping[str, str]] = None,
) -> ChangelogResult:
    """Run the filter, categorize, build, sort and render stages over ``commits``.

    Contributors are collected from every commit, including ones the filter
    drops, so everybody who landed work in the release is credited.
    """
    exclude_authors = config.filter.exclude_commit_by_authors if config.filter else []
    contributors = extract_contributors(commits, exclude_authors)

    kept = filter_commits(commits, config.filter)
    categories = categorize_commits(kept, config.categorization)
    sections = sort_sections(
        build_sections(categories, config.categorization, package_versions),
        config.categorization,
    )
    markdown = render_changelog(sections, config, options, contributors)
    return ChangelogResult(markdown=markdown, sections=sections, contributors=contributors)


class ChangelogGenerator:
    """Wires the commit fetcher and version lookups to :func:`generate_changelog`."""

    def __init__(
        self,
        fetcher: CommitFetcher | None = None,
        version_lookup: VersionLookup | None = None,
        tag_lookup: TagLookup | None = None,
    ) -> None:
        self._fetcher = fetcher or fetch_commits_between_refs
        self._version_lookup = version_lookup or get_workspace_versions
        self._tag_lookup = tag_lookup or find_latest_tagged_version
        self.logger = get_logger("changelog.generator")

    def run(
        self,
        config: ChangelogConfig,
        *,
        repo: str,
        release: str,
        version: str,
        last_release: str | None = None,
        release_date: date | None = None,
        org: str = "mui",
        cwd: Path | str = ".",
    ) -> ChangelogResult:
        """Fetch commits for ``last_release...release`` and render the changelog."""
        if not last_release:
            last_release = self._tag_lookup(cwd=cwd)
            self.logger.info("Using latest tag %s as the previous release", last_release)

        commits = self._fetcher(repo, last_release, release, org=org, cwd=cwd)
        self.logger.debug("Fetched %d commits for %s/%s", len(commits), org, repo)

        package_versions: Mapping[str, str] = {}
        if config.categorization.strategy == PACKAGE_STRATEGY:
            package_versions = self._version_lookup(cwd=cwd)

        options = ReleaseOptions(
            version=version,
            last_release=last_release,
            release=release,
            date=release_date or date.today(),
        )
        result = generate_changelog(commits, config, options, package_versions=package_versions)
        self.logger.info(
            "Rendered %d sections crediting %d contributors",
            len(result.sections),
            len(result.contributors.all),
        )
        return result


__all__ = ["ChangelogGenerator", "generate_changelog"]
