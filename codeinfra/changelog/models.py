"""Data models shared across the changelog pipeline."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, ClassVar, Dict, List, Literal, Mapping, Optional, Union

Pattern = Union[str, re.Pattern]
AuthorAssociation = Literal["team", "first_timer", "contributor"]


@dataclass
class CommitAuthor:
    """Pull request author and their relationship to the organisation."""

    login: str
    association: AuthorAssociation = "contributor"


@dataclass
class Commit:
    """A merged commit together with its pull request metadata."""

    sha: str
    message: str
    labels: List[str] = field(default_factory=list)
    pr_number: int = 0
    html_url: str = ""
    author: Optional[CommitAuthor] = None
    merged_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def title(self) -> str:
        return self.message.split("\n", 1)[0]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Commit":
        author_data = data.get("author")
        author = None
        if isinstance(author_data, Mapping) and author_data.get("login"):
            author = CommitAuthor(
                login=str(author_data["login"]),
                association=author_data.get("association") or "contributor",
            )
        return cls(
            sha=str(data.get("sha", "")),
            message=str(data.get("message", "")),
            labels=[str(label) for label in data.get("labels") or []],
            pr_number=int(data.get("pr_number", data.get("prNumber", 0)) or 0),
            html_url=str(data.get("html_url", "")),
            author=author,
            merged_at=_parse_timestamp(data.get("merged_at", data.get("mergedAt"))),
            created_at=_parse_timestamp(data.get("created_at", data.get("createdAt"))),
        )


@dataclass
class ParsedLabels:
    """Structured information extracted from a commit's labels."""

    scopes: List[str] = field(default_factory=list)
    components: List[str] = field(default_factory=list)
    plan: Optional[str] = None
    flags: List[str] = field(default_factory=list)
    category_override: Optional[str] = None


@dataclass(eq=False)
class CategorizedCommit:
    """A commit paired with its parsed labels.

    One instance is shared by every category the commit belongs to.
    """

    commit: Commit
    parsed: ParsedLabels


CategoryMap = Dict[str, List[CategorizedCommit]]


@dataclass
class PackageInfo:
    """Package metadata attached to plan subsections."""

    name: str
    version: Optional[str] = None
    plan: Optional[str] = None


@dataclass
class FlatSection:
    """A section that lists commits directly."""

    kind: ClassVar[str] = "flat"

    key: str
    level: int
    commits: List[CategorizedCommit] = field(default_factory=list)
    pkg_info: Optional[PackageInfo] = None

    @property
    def subsections(self) -> List["FlatSection"]:
        return []


@dataclass
class GroupedSection:
    """A package section whose commits live in its plan subsections."""

    kind: ClassVar[str] = "grouped"

    key: str
    level: int
    subsections: List[FlatSection] = field(default_factory=list)
    pkg_info: Optional[PackageInfo] = None

    @property
    def commits(self) -> List[CategorizedCommit]:
        return []


ChangelogSection = Union[FlatSection, GroupedSection]


# ----------------------------------------------------------------------
# Configuration


@dataclass
class FlagConfig:
    name: str
    prefix: Optional[str] = None


@dataclass
class LabelConfig:
    """How commit labels are interpreted."""

    plan_values: List[str] = field(default_factory=list)
    scope_prefixes: List[str] = field(default_factory=lambda: ["scope:"])
    component_prefixes: List[str] = field(default_factory=lambda: ["component:"])
    category_overrides: Dict[str, str] = field(default_factory=dict)
    flags: Dict[str, FlagConfig] = field(default_factory=dict)
    extract_labels_from_title: Optional[Callable[[str], List[str]]] = None


@dataclass
class PackageNamingConfig:
    """Scope to package resolution for the package strategy."""

    mappings: Dict[str, str] = field(default_factory=dict)
    plans: Dict[str, Dict[str, str]] = field(default_factory=dict)
    generic_scopes: List[str] = field(default_factory=list)


@dataclass
class SectionsConfig:
    fallback_section: str = "Other"
    order: Dict[str, int] = field(default_factory=dict)
    titles: Dict[str, str] = field(default_factory=dict)


@dataclass
class CategorizationConfig:
    """Strategy and label rules used to group commits into sections."""

    strategy: str = "component"
    labels: LabelConfig = field(default_factory=LabelConfig)
    sections: SectionsConfig = field(default_factory=SectionsConfig)
    package_naming: Optional[PackageNamingConfig] = None


@dataclass
class PlanMessageConfig:
    same: str = ""
    plus: str = ""


@dataclass
class FormatConfig:
    version: str = "v{{version}}"
    date_format: str = "_MMM DD, YYYY_"
    changelog_message: Union[str, Callable[[CategorizedCommit], Optional[str]], None] = None
    section_title_for_package: Optional[str] = None
    plan_message: Optional[PlanMessageConfig] = None
    plan_badge: Dict[str, str] = field(default_factory=dict)
    show_internal_changes_message: bool = False


@dataclass
class IntroConfig:
    thanks_message: Optional[str] = None
    highlights_prefix: Optional[str] = None


PluralizedMessage = Union[str, Dict[str, str]]


@dataclass
class ContributorsConfig:
    disabled: bool = False
    contributors_message: Optional[PluralizedMessage] = None
    team_message: Optional[PluralizedMessage] = None
    community_message: Optional[PluralizedMessage] = None
    add_contributors_to_intro: bool = False


@dataclass
class FilterConfig:
    exclude_commit_by_authors: List[Pattern] = field(default_factory=list)
    exclude_authors_from_contributors: List[Pattern] = field(default_factory=list)
    exclude_commit_with_labels: List[Pattern] = field(default_factory=list)
    custom_filter: Optional[Callable[[Commit], bool]] = None


@dataclass
class ChangelogConfig:
    """Complete configuration for a changelog run."""

    categorization: CategorizationConfig = field(default_factory=CategorizationConfig)
    format: FormatConfig = field(default_factory=FormatConfig)
    intro: Optional[IntroConfig] = None
    contributors: ContributorsConfig = field(default_factory=ContributorsConfig)
    filter: Optional[FilterConfig] = None


@dataclass
class ReleaseOptions:
    """Release-specific values used while rendering."""

    version: str
    last_release: str
    release: str
    date: date


@dataclass
class Contributors:
    team: List[str] = field(default_factory=list)
    community: List[str] = field(default_factory=list)
    all: List[str] = field(default_factory=list)


@dataclass
class ChangelogResult:
    markdown: str
    sections: List[ChangelogSection]
    contributors: Contributors


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


__all__ = [
    "AuthorAssociation",
    "CategorizationConfig",
    "CategorizedCommit",
    "CategoryMap",
    "ChangelogConfig",
    "ChangelogResult",
    "ChangelogSection",
    "Commit",
    "CommitAuthor",
    "Contributors",
    "ContributorsConfig",
    "FilterConfig",
    "FlagConfig",
    "FlatSection",
    "FormatConfig",
    "GroupedSection",
    "IntroConfig",
    "LabelConfig",
    "PackageInfo",
    "PackageNamingConfig",
    "ParsedLabels",
    "Pattern",
    "PlanMessageConfig",
    "PluralizedMessage",
    "ReleaseOptions",
    "SectionsConfig",
]
