"""Markdown rendering for changelog sections and contributors."""

from __future__ import annotations

import re
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..templating import template_string
from .filters import matches_exactly
from .models import (
    CategorizedCommit,
    ChangelogConfig,
    ChangelogSection,
    Commit,
    Contributors,
    IntroConfig,
    Pattern,
    PluralizedMessage,
    ReleaseOptions,
)
from .sections import BASE_PLAN, CollationKey, locale_key

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
FULL_MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

DEFAULT_VERSION_TEMPLATE = "v{{version}}"
DEFAULT_DATE_FORMAT = "_MMM DD, YYYY_"
DEFAULT_COMMIT_TEMPLATE = "{{flagPrefix}}{{message}} (#{{prNumber}})"
DEFAULT_PACKAGE_TITLE = "{{package}}@{{version}}"
INTERNAL_CHANGES_MESSAGE = "Internal changes."

_TAG_GROUP_RE = re.compile(r"^(\[[\w\s-]+\])+")
_TAG_RE = re.compile(r"\[[\w\s-]+\]")
_LEADING_TAGS_RE = re.compile(r"^(\[[\w\s-]+\])+\s*", re.IGNORECASE)
_PR_REFERENCE_RE = re.compile(r"\s?\(#(\d+)\)")
_WORD_RE = re.compile(r"[^\W\d_]+|\d+")


def render_changelog(
    sections: Sequence[ChangelogSection],
    config: ChangelogConfig,
    options: ReleaseOptions,
    contributors: Contributors,
) -> str:
    """Render sorted sections and contributors into release-notes markdown."""
    lines: List[str] = []

    version_title = template_string(
        config.format.version or DEFAULT_VERSION_TEMPLATE, {"version": options.version}
    )
    lines.extend([f"## {version_title}", ""])
    lines.extend([f"<!-- generated comparing {options.last_release}...{options.release} -->", ""])
    lines.extend([render_date(options.date, config.format.date_format or DEFAULT_DATE_FORMAT), ""])

    excluded = config.filter.exclude_authors_from_contributors if config.filter else []
    visible = Contributors(
        team=_visible(contributors.team, excluded),
        community=_visible(contributors.community, excluded),
        all=_visible(contributors.all, excluded),
    )

    if config.intro is not None:
        _render_intro(config.intro, visible, lines)

    early = config.contributors.add_contributors_to_intro
    if early:
        _render_contributors(visible, config, lines)

    for section in sections:
        _render_section(section, config, lines)

    if not early:
        _render_contributors(visible, config, lines)

    return "\n".join(lines)


def render_date(value: date, fmt: str) -> str:
    """Substitute the first ``MMMM``, ``MMM``, ``DD`` and ``YYYY`` tokens in ``fmt``."""
    formatted = fmt.replace("MMMM", FULL_MONTH_NAMES[value.month - 1], 1)
    formatted = formatted.replace("MMM", MONTH_NAMES[value.month - 1], 1)
    formatted = formatted.replace("DD", f"{value.day:02d}", 1)
    return formatted.replace("YYYY", str(value.year), 1)


def start_case(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in _WORD_RE.findall(text))


def extract_contributors(
    all_commits: Iterable[Commit], exclude_authors: Sequence[Pattern] = ()
) -> Contributors:
    """Collect unique authors from every fetched commit.

    Commits dropped by filtering still credit their authors; only
    ``exclude_authors`` (exact string or regex search) removes someone.
    """
    team: Dict[str, None] = {}
    community: Dict[str, None] = {}
    for commit in all_commits:
        if commit.author is None:
            continue
        login = commit.author.login
        if matches_exactly(login, exclude_authors):
            continue
        if commit.author.association == "team":
            team[login] = None
        else:
            community[login] = None

    sorted_team = sorted(team, key=str.lower)
    sorted_community = sorted(community, key=str.lower)
    return Contributors(
        team=sorted_team,
        community=sorted_community,
        all=sorted([*sorted_team, *sorted_community], key=str.lower),
    )


def _visible(logins: Iterable[str], excluded: Sequence[Pattern]) -> List[str]:
    return [login for login in logins if not matches_exactly(login, excluded)]


def _render_intro(intro: IntroConfig, contributors: Contributors, lines: List[str]) -> None:
    if intro.thanks_message:
        team_count = len(contributors.team)
        community_count = len(contributors.community)
        lines.append(
            template_string(
                intro.thanks_message,
                {
                    "contributorCount": team_count + community_count,
                    "teamCount": team_count,
                    "communityCount": community_count,
                },
            )
        )
        lines.append("")
    if intro.highlights_prefix:
        lines.extend([intro.highlights_prefix, ""])


def _render_section(
    section: ChangelogSection,
    config: ChangelogConfig,
    lines: List[str],
    parent: Optional[ChangelogSection] = None,
) -> None:
    title = config.categorization.sections.titles.get(section.key) or section.key
    if title == title.lower():
        title = start_case(title)
    pkg_info = section.pkg_info
    if pkg_info is not None:
        badge = None
        if pkg_info.plan and pkg_info.plan != BASE_PLAN:
            badge = config.format.plan_badge.get(pkg_info.plan)
        title = template_string(
            config.format.section_title_for_package or DEFAULT_PACKAGE_TITLE,
            {"package": pkg_info.name, "version": pkg_info.version, "planBadge": badge},
        )

    if parent is None or section.key != parent.key:
        lines.extend([f"{'#' * section.level} {title}", ""])

    commits = sorted(section.commits, key=_commit_sort_key)

    if parent is not None:
        _render_plan_message(section, parent, commits, config, lines)

    for commit in commits:
        lines.append(f"- {_render_commit_message(commit, config)}")
    if commits:
        lines.append("")

    for subsection in section.subsections:
        _render_section(subsection, config, lines, section)


def _render_plan_message(
    section: ChangelogSection,
    parent: ChangelogSection,
    commits: List[CategorizedCommit],
    config: ChangelogConfig,
    lines: List[str],
) -> None:
    pkg_info = section.pkg_info
    plan = pkg_info.plan if pkg_info is not None else None
    if not plan or plan == BASE_PLAN:
        if not commits and config.format.show_internal_changes_message:
            lines.extend([INTERNAL_CHANGES_MESSAGE, ""])
        return

    plan_message = config.format.plan_message
    if plan_message is None:
        return
    message = plan_message.plus if commits else plan_message.same
    if not message:
        return

    previous_plan = _previous_plan(plan, config.categorization.labels.plan_values)
    if previous_plan is None:
        return
    previous = next(
        (
            sibling.pkg_info
            for sibling in parent.subsections
            if sibling.pkg_info is not None and sibling.pkg_info.plan == previous_plan
        ),
        None,
    )
    if previous is None:
        return
    lines.append(
        template_string(
            message,
            {
                "previousPlan": previous.name,
                "previousPlanVersion": previous.version,
                "currentPlan": pkg_info.name if pkg_info else "",
                "currentPlanVersion": (pkg_info.version if pkg_info else None) or "",
            },
        )
    )
    lines.append("")


def _previous_plan(plan: str, plan_values: Sequence[str]) -> Optional[str]:
    for index, value in enumerate(plan_values):
        if value == plan:
            return plan_values[index - 1] if index > 0 else BASE_PLAN
    return None


def _commit_sort_key(commit: CategorizedCommit) -> Tuple[bool, CollationKey, float]:
    # Tagged commits first, grouped by their collated tag list; untagged last.
    tags = _extract_tags(commit.commit.message)
    merged_at = commit.commit.merged_at
    order = merged_at.timestamp() if merged_at is not None else float(commit.commit.pr_number)
    return not tags, locale_key("\x00".join(tags)), order


def _extract_tags(message: str) -> List[str]:
    match = _TAG_GROUP_RE.match(message)
    if not match:
        return []
    return [tag[1:-1].lower() for tag in _TAG_RE.findall(match.group(0))]


def _render_commit_message(categorized: CategorizedCommit, config: ChangelogConfig) -> str:
    commit = categorized.commit
    raw_message = commit.title.strip()
    message = _PR_REFERENCE_RE.sub("", _LEADING_TAGS_RE.sub("", raw_message, count=1))

    formatter = config.format.changelog_message
    if callable(formatter):
        result = formatter(categorized)
        if result:
            return result
    template = formatter if isinstance(formatter, str) else DEFAULT_COMMIT_TEMPLATE

    flags = config.categorization.labels.flags
    prefixes = [flags[flag].prefix for flag in categorized.parsed.flags if flags[flag].prefix]
    has_scope_label = any(label.startswith("scope:") for label in commit.labels)
    scopes = categorized.parsed.scopes

    login = commit.author.login if commit.author else None
    return template_string(
        template,
        {
            "message": message,
            "rawMessage": raw_message,
            "prNumber": commit.pr_number,
            "prUrl": commit.html_url,
            "author": login or "unknown",
            "authorUrl": f"https://github.com/{login}" if login else "",
            "scope": scopes[0] if has_scope_label and scopes else None,
            "plan": categorized.parsed.plan,
            "flagPrefix": " ".join(reversed(prefixes)),
        },
    )


def _render_contributors(
    contributors: Contributors, config: ChangelogConfig, lines: List[str]
) -> None:
    settings = config.contributors
    if settings.disabled:
        return

    community = contributors.community
    team = contributors.team
    everyone = contributors.all

    if community and settings.community_message:
        default = (
            "All community contributors of this release in alphabetical order"
            if len(community) != 1
            else "Community contributor of this release"
        )
        template = _pluralized(settings.community_message, len(community), f"{default}: {{{{community}}}}")
        lines.append(
            template_string(
                template, {"community": _mentions(community), "communityCount": len(community)}
            )
        )
        lines.append("")

    if team and settings.team_message:
        default = (
            "All team contributors of this release in alphabetical order"
            if len(team) != 1
            else "Team contributor of this release"
        )
        template = _pluralized(settings.team_message, len(team), f"{default}: {{{{team}}}}")
        lines.append(template_string(template, {"team": _mentions(team), "teamCount": len(team)}))
        lines.append("")

    if settings.contributors_message or not (settings.community_message and settings.team_message):
        default = (
            "All contributors of this release in alphabetical order"
            if len(everyone) != 1
            else "Contributor of this release"
        )
        template = _pluralized(
            settings.contributors_message, len(everyone), f"{default} : {{{{contributors}}}}"
        )
        lines.append(
            template_string(
                template,
                {
                    "contributors": _mentions(everyone),
                    "contributorsCount": len(everyone),
                    "team": _mentions(team),
                    "teamCount": len(team),
                    "community": _mentions(community),
                    "communityCount": len(community),
                },
            )
        )
        lines.append("")


def _pluralized(message: Optional[PluralizedMessage], count: int, default: str) -> str:
    if not message:
        return default
    if isinstance(message, str):
        return message
    return message.get("many" if count > 1 else "one") or ""


def _mentions(logins: Iterable[str]) -> str:
    return ", ".join(f"@{login}" for login in logins)


__all__ = ["extract_contributors", "render_changelog", "render_date", "start_case"]
