"""Commit label parsing."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .models import Commit, LabelConfig, ParsedLabels

PLAN_PREFIX = "plan:"


def parse_commit_labels(commit: Commit, config: LabelConfig) -> ParsedLabels:
    """Extract scopes, components, plan, flags and category override from a commit.

    When ``config.extract_labels_from_title`` is set, labels derived from the
    commit title are merged into ``commit.labels`` in place before parsing.
    """
    if config.extract_labels_from_title is not None:
        extracted = config.extract_labels_from_title(commit.title)
        _merge_labels(commit.labels, extracted or [])

    parsed = ParsedLabels()
    plan_values = {value.lower() for value in config.plan_values}

    for label in commit.labels:
        override = config.category_overrides.get(label)
        if override is not None:
            parsed.category_override = override
            continue

        scope = _strip_prefix(label, config.scope_prefixes)
        if scope is not None:
            parsed.scopes.append(scope)
            continue

        component = _strip_prefix(label, config.component_prefixes)
        if component is not None:
            parsed.components.append(component)
            continue

        if label.startswith(PLAN_PREFIX):
            plan = label[len(PLAN_PREFIX):].strip().lower()
            if plan in plan_values:
                parsed.plan = plan
            continue

        if label in config.flags:
            parsed.flags.append(label)

    return parsed


def _strip_prefix(label: str, prefixes: Iterable[str]) -> Optional[str]:
    for prefix in prefixes:
        if label.startswith(prefix):
            return label[len(prefix):].strip()
    return None


def _merge_labels(labels: List[str], extra: Iterable[str]) -> None:
    seen = set(labels)
    for label in extra:
        if label not in seen:
            labels.append(label)
            seen.add(label)


__all__ = ["PLAN_PREFIX", "parse_commit_labels"]
