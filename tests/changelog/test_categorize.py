"""Tests for commit categorization."""

from __future__ import annotations

import pytest

from codeinfra.changelog.categorize import categorize_commits
from codeinfra.changelog.models import CategorizationConfig, LabelConfig
from codeinfra.config import ConfigError
from tests._fixtures.commits import make_commit, package_categorization


def test_component_strategy_fans_out_to_every_component() -> None:
    commit = make_commit(1, labels=["component: Button", "component: Menu"])
    config = CategorizationConfig(strategy="component")

    categories = categorize_commits([commit], config)

    assert list(categories) == ["Button", "Menu"]
    assert categories["Button"][0] is categories["Menu"][0]
    assert categories["Button"][0].commit is commit


def test_component_strategy_uses_fallback_without_components() -> None:
    config = CategorizationConfig(strategy="component")

    categories = categorize_commits([make_commit(1), make_commit(2)], config)

    assert list(categories) == ["Other"]
    assert [item.commit.pr_number for item in categories["Other"]] == [1, 2]


def test_category_override_wins_over_components() -> None:
    config = CategorizationConfig(
        strategy="component",
        labels=LabelConfig(category_overrides={"docs": "Docs"}),
    )
    commit = make_commit(1, labels=["component: Button", "docs"])

    categories = categorize_commits([commit], config)

    assert list(categories) == ["Docs"]


def test_package_strategy_resolves_packages_and_plans() -> None:
    commits = [
        make_commit(1, labels=["scope: data grid", "plan: Pro"]),
        make_commit(2, labels=["scope: data grid"]),
        make_commit(3, labels=["scope: docs"]),
        make_commit(4, labels=["scope: pickers", "scope: data grid"]),
        make_commit(5),
    ]

    categories = categorize_commits(commits, package_categorization())

    assert {key: [item.commit.pr_number for item in items] for key, items in categories.items()} == {
        "@mui/x-data-grid-pro": [1],
        "@mui/x-data-grid": [2, 4],
        "docs": [3],
        "@mui/x-date-pickers": [4],
        "Other": [5],
    }


def test_package_strategy_reports_missing_scope_mapping() -> None:
    commit = make_commit(12, labels=["scope: charts"])

    with pytest.raises(ConfigError) as excinfo:
        categorize_commits([commit], package_categorization())

    assert str(excinfo.value) == (
        'No package mapping found for scope "charts" in commit #12. '
        "Available mappings: data grid, pickers"
    )


def test_package_strategy_reports_missing_plan_mapping() -> None:
    commit = make_commit(7, labels=["scope: pickers", "plan: premium"])

    with pytest.raises(ConfigError) as excinfo:
        categorize_commits([commit], package_categorization())

    assert str(excinfo.value) == (
        'No premium plan package mapping found for base package "@mui/x-date-pickers" in commit #7'
    )


def test_package_strategy_reports_empty_plan_table() -> None:
    config = package_categorization()
    config.package_naming.plans["pro"] = {}
    commit = make_commit(9, labels=["scope: data grid", "plan: pro"])

    with pytest.raises(ConfigError) as excinfo:
        categorize_commits([commit], config)

    assert str(excinfo.value) == (
        'No pro plan package mapping found for base package "@mui/x-data-grid" in commit #9'
    )


def test_package_strategy_uses_base_package_for_unconfigured_plan() -> None:
    config = package_categorization()
    del config.package_naming.plans["premium"]
    commit = make_commit(10, labels=["scope: data grid", "plan: premium"])

    categories = categorize_commits([commit], config)

    assert [item.commit.pr_number for item in categories["@mui/x-data-grid"]] == [10]


def test_package_strategy_requires_package_naming() -> None:
    config = package_categorization()
    config.package_naming = None

    with pytest.raises(ConfigError, match="Package naming configuration is required"):
        categorize_commits([make_commit(1, labels=["scope: data grid"])], config)


def test_unknown_strategy_is_rejected() -> None:
    with pytest.raises(ConfigError, match="Unknown categorization strategy: weird"):
        categorize_commits([make_commit(1)], CategorizationConfig(strategy="weird"))
