"""Section building and ordering for the changelog."""

from __future__ import annotations

import unicodedata
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import ConfigError
from .categorize import COMPONENT_STRATEGY, PACKAGE_STRATEGY
from .models import (
    CategorizationConfig,
    CategoryMap,
    ChangelogSection,
    FlatSection,
    GroupedSection,
    PackageInfo,
)

BASE_PLAN = "base"
SECTION_LEVEL = 3
SUBSECTION_LEVEL = 4

# Root collation order for the punctuation that shows up in tags and section names.
_PUNCTUATION_ORDER = "_-,;:!?.'\"()[]{}@*/\\&#%`^+<=>|~$"

CollationKey = Tuple[Tuple[Tuple[int, int], ...], str]


def locale_key(value: str) -> CollationKey:
    """Sort key approximating root locale collation.

    Characters compare case-insensitively by class: whitespace, punctuation,
    other symbols, digits and then letters. Control characters such as the
    NUL tag separator are ignored. Ties put lower case first.
    """
    weights = tuple(
        _collation_weight(char)
        for char in value.casefold()
        if char.isspace() or not unicodedata.category(char).startswith("C")
    )
    return weights, value.swapcase()


def _collation_weight(char: str) -> Tuple[int, int]:
    if char.isspace():
        return 0, ord(char)
    if char in _PUNCTUATION_ORDER:
        return 1, _PUNCTUATION_ORDER.index(char)
    category = unicodedata.category(char)
    if category.startswith(("P", "S")):
        return 2, ord(char)
    if char.isdigit():
        return 3, ord(char)
    return 4, ord(char)


def build_sections(
    categories: CategoryMap,
    config: CategorizationConfig,
    package_versions: Optional[Mapping[str, str]] = None,
) -> List[ChangelogSection]:
    """Convert categorized commits into an ordered list of sections."""
    if config.strategy == COMPONENT_STRATEGY:
        return _build_component_sections(categories, config)
    if config.strategy == PACKAGE_STRATEGY:
        return _build_package_sections(categories, config, package_versions or {})
    raise ConfigError(f"Unknown categorization strategy: {config.strategy}")


def sort_sections(
    sections: Sequence[ChangelogSection], config: CategorizationConfig
) -> List[ChangelogSection]:
    """Order top-level sections by configured priority, then by key.

    Sections missing from ``sections.order`` get priority 0. Subsections keep
    the plan order they were built with.
    """
    order = config.sections.order
    return sorted(sections, key=lambda section: (order.get(section.key, 0), locale_key(section.key)))


def _build_component_sections(
    categories: CategoryMap, config: CategorizationConfig
) -> List[ChangelogSection]:
    fallback = config.sections.fallback_section
    ordered: List[str] = [fallback] if fallback in categories else []
    ordered.extend(sorted(key for key in categories if key != fallback))

    sections: List[ChangelogSection] = []
    for key in ordered:
        commits = categories.get(key) or []
        if not commits:
            continue
        sections.append(FlatSection(key=key, level=SECTION_LEVEL, commits=commits))
    return sections


def _build_package_sections(
    categories: CategoryMap,
    config: CategorizationConfig,
    package_versions: Mapping[str, str],
) -> List[ChangelogSection]:
    naming = config.package_naming
    mappings = naming.mappings if naming else {}
    plans = naming.plans if naming else {}
    generic_scopes = naming.generic_scopes if naming else []

    scope_by_package = {package: scope for scope, package in mappings.items()}

    universe: Dict[str, None] = dict.fromkeys(categories)
    for plan_mappings in plans.values():
        universe.update(dict.fromkeys(plan_mappings))
    universe.update(dict.fromkeys(mappings.values()))
    universe.update(dict.fromkeys(generic_scopes))

    plan_order = [BASE_PLAN, *plans]

    groups: Dict[str, Dict[str, str]] = {}
    for key in universe:
        base_package = _base_package(key, config)
        group = groups.setdefault(base_package, {})
        plan = _package_plan(key, config)
        group[plan] = key
        group.setdefault(BASE_PLAN, key if plan == BASE_PLAN else base_package)

    for base_package, group in groups.items():
        if base_package in generic_scopes:
            continue
        for plan_name, plan_mappings in plans.items():
            plan_package = plan_mappings.get(group[BASE_PLAN])
            if plan_package and plan_name not in group:
                group[plan_name] = plan_package

    fallback = config.sections.fallback_section
    sections: List[ChangelogSection] = []
    for base_package in sorted(key for key in groups if key != fallback):
        group = groups[base_package]
        if base_package in generic_scopes:
            commits = categories.get(base_package) or []
            if commits:
                sections.append(FlatSection(key=base_package, level=SECTION_LEVEL, commits=commits))
            continue

        subsections = _build_plan_subsections(group, plan_order, categories, package_versions)
        if subsections:
            sections.append(
                GroupedSection(
                    key=scope_by_package.get(base_package, base_package),
                    level=SECTION_LEVEL,
                    subsections=subsections,
                )
            )

    if fallback:
        sections.append(
            FlatSection(key=fallback, level=SECTION_LEVEL, commits=categories.get(fallback) or [])
        )
    return sections


def _build_plan_subsections(
    group: Mapping[str, str],
    plan_order: Sequence[str],
    categories: CategoryMap,
    package_versions: Mapping[str, str],
) -> List[FlatSection]:
    subsections: List[FlatSection] = []
    for plan in plan_order:
        package = group.get(plan)
        if not package:
            continue
        subsections.append(
            FlatSection(
                key=package,
                level=SUBSECTION_LEVEL,
                commits=categories.get(package) or [],
                pkg_info=PackageInfo(name=package, version=package_versions.get(package), plan=plan),
            )
        )
    return subsections


def _base_package(key: str, config: CategorizationConfig) -> str:
    naming = config.package_naming
    if naming is None or key in naming.generic_scopes:
        return key
    for plan_mappings in naming.plans.values():
        for base, plan_package in plan_mappings.items():
            if plan_package == key:
                return base
    return key


def _package_plan(key: str, config: CategorizationConfig) -> str:
    naming = config.package_naming
    if naming is not None:
        for plan_name, plan_mappings in naming.plans.items():
            if key in plan_mappings.values():
                return plan_name
    return BASE_PLAN


__all__ = ["BASE_PLAN", "build_sections", "locale_key", "sort_sections"]
