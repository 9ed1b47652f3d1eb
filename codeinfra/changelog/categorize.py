"""Commit categorization strategies."""

from __future__ import annotations

from typing import Iterable, List

from ..errors import ConfigError
from .labels import parse_commit_labels
from .models import CategorizationConfig, CategorizedCommit, CategoryMap, Commit

COMPONENT_STRATEGY = "component"
PACKAGE_STRATEGY = "package"
STRATEGIES = (COMPONENT_STRATEGY, PACKAGE_STRATEGY)


def categorize_commits(commits: Iterable[Commit], config: CategorizationConfig) -> CategoryMap:
    """Group commits by category key.

    A commit with several scope or component labels is added to every matching
    category; the same :class:`CategorizedCommit` instance is shared between them.

    Raises:
        ConfigError: when the strategy is unknown or a required mapping is missing.
    """
    categories: CategoryMap = {}
    for commit in commits:
        parsed = parse_commit_labels(commit, config.labels)
        categorized = CategorizedCommit(commit=commit, parsed=parsed)
        for key in _category_keys(categorized, config):
            categories.setdefault(key, []).append(categorized)
    return categories


def _category_keys(commit: CategorizedCommit, config: CategorizationConfig) -> List[str]:
    if commit.parsed.category_override:
        return [commit.parsed.category_override]
    if config.strategy == COMPONENT_STRATEGY:
        return _component_keys(commit, config)
    if config.strategy == PACKAGE_STRATEGY:
        return _package_keys(commit, config)
    raise ConfigError(f"Unknown categorization strategy: {config.strategy}")


def _component_keys(commit: CategorizedCommit, config: CategorizationConfig) -> List[str]:
    if commit.parsed.components:
        return list(commit.parsed.components)
    return [config.sections.fallback_section]


def _package_keys(commit: CategorizedCommit, config: CategorizationConfig) -> List[str]:
    scopes = commit.parsed.scopes
    plan = commit.parsed.plan
    if not scopes:
        return [config.sections.fallback_section]

    naming = config.package_naming
    if naming is None:
        raise ConfigError("Package naming configuration is required for package-first strategy")

    pr_number = commit.commit.pr_number
    keys: List[str] = []
    for scope in scopes:
        if scope in naming.generic_scopes:
            keys.append(scope)
            continue

        base_package = naming.mappings.get(scope)
        if not base_package:
            available = ", ".join(naming.mappings)
            raise ConfigError(
                f'No package mapping found for scope "{scope}" in commit #{pr_number}. '
                f"Available mappings: {available}"
            )

        if plan and plan in naming.plans:
            plan_package = naming.plans[plan].get(base_package)
            if not plan_package:
                raise ConfigError(
                    f'No {plan} plan package mapping found for base package "{base_package}" '
                    f"in commit #{pr_number}"
                )
            keys.append(plan_package)
        else:
            keys.append(base_package)
    return keys


__all__ = ["COMPONENT_STRATEGY", "PACKAGE_STRATEGY", "STRATEGIES", "categorize_commits"]
