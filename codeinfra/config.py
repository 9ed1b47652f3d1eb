"""Configuration loading for changelog generation (YAML)."""

from __future__ import annotations

import importlib
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

from .changelog.models import (
    CategorizationConfig,
    ChangelogConfig,
    ContributorsConfig,
    FilterConfig,
    FlagConfig,
    FormatConfig,
    IntroConfig,
    LabelConfig,
    PackageNamingConfig,
    Pattern,
    PlanMessageConfig,
    PluralizedMessage,
    SectionsConfig,
)
from .errors import ConfigError

CONFIG_SUFFIXES = (".yml", ".yaml")
_REGEX_LITERAL = re.compile(r"/(?P<pattern>.+)/(?P<flags>[imsx]*)", re.DOTALL)
_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}


def load_changelog_config(config_path: Path) -> ChangelogConfig:
    """Load and validate a changelog configuration file."""
    path = Path(config_path).expanduser()
    if path.suffix.lower() not in CONFIG_SUFFIXES:
        raise ConfigError(f"Unsupported config file type: {path.name} (expected .yml or .yaml)")
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return parse_changelog_config(data)


def parse_changelog_config(data: Any, *, allow_callables: bool = True) -> ChangelogConfig:
    """Build a :class:`ChangelogConfig` from already-deserialized data.

    With ``allow_callables=False`` any ``{callable: "module:attribute"}`` hook is
    rejected with :class:`ConfigError` instead of being imported. Configs that
    arrive over the network are parsed this way.
    """
    if not isinstance(data, dict):
        raise ConfigError("Changelog config must contain a mapping at the root")
    if not isinstance(data.get("categorization"), dict):
        raise ConfigError("Changelog config requires a 'categorization' mapping")

    filter_data = data.get("filter")
    intro_data = _as_dict(data.get("intro"))
    return ChangelogConfig(
        categorization=_parse_categorization(data["categorization"], allow_callables),
        format=_parse_format(_as_dict(data.get("format")), allow_callables),
        intro=IntroConfig(
            thanks_message=_as_str(intro_data.get("thanks_message")),
            highlights_prefix=_as_str(intro_data.get("highlights_prefix")),
        )
        if intro_data
        else None,
        contributors=_parse_contributors(_as_dict(data.get("contributors"))),
        filter=_parse_filter(filter_data, allow_callables) if isinstance(filter_data, dict) else None,
    )


def _parse_categorization(data: Dict[str, Any], allow_callables: bool) -> CategorizationConfig:
    strategy = _as_str(data.get("strategy")) or "component"
    if strategy not in ("component", "package"):
        raise ConfigError(f"Unknown categorization strategy: {strategy}")

    labels_data = _as_dict(data.get("labels"))
    plan_data = _as_dict(labels_data.get("plan"))
    plan_values = plan_data.get("values", [])
    if not isinstance(plan_values, list):
        raise ConfigError("categorization.labels.plan.values must be a list")

    flags = {
        str(key): FlagConfig(
            name=_as_str(_as_dict(value).get("name")) or str(key),
            prefix=_as_str(_as_dict(value).get("prefix")),
        )
        for key, value in _as_dict(labels_data.get("flags")).items()
    }
    labels = LabelConfig(
        plan_values=[str(value) for value in plan_values],
        category_overrides=_as_str_mapping(
            labels_data.get("category_overrides"), "categorization.labels.category_overrides"
        ),
        flags=flags,
        extract_labels_from_title=_as_callable(
            labels_data.get("extract_labels_from_title"),
            "categorization.labels.extract_labels_from_title",
            allow_callables,
        ),
    )
    if "scope_prefixes" in labels_data:
        labels.scope_prefixes = _as_str_list(labels_data["scope_prefixes"])
    if "component_prefixes" in labels_data:
        labels.component_prefixes = _as_str_list(labels_data["component_prefixes"])

    sections_data = _as_dict(data.get("sections"))
    fallback = sections_data.get("fallback_section", "Other")
    if not isinstance(fallback, str):
        raise ConfigError("categorization.sections.fallback_section must be a string")
    order = {}
    for key, value in _as_dict(sections_data.get("order")).items():
        if not isinstance(value, int) or isinstance(value, bool):
            raise ConfigError(f"categorization.sections.order.{key} must be an integer")
        order[str(key)] = value
    sections = SectionsConfig(
        fallback_section=fallback,
        order=order,
        titles=_as_str_mapping(sections_data.get("titles"), "categorization.sections.titles"),
    )

    package_naming = None
    naming_data = data.get("package_naming")
    if naming_data is not None or strategy == "package":
        package_naming = _parse_package_naming(naming_data)

    return CategorizationConfig(
        strategy=strategy, labels=labels, sections=sections, package_naming=package_naming
    )


def _parse_package_naming(data: Any) -> PackageNamingConfig:
    if not isinstance(data, dict) or not isinstance(data.get("mappings"), dict):
        raise ConfigError(
            "categorization.package_naming.mappings is required for the package strategy"
        )
    plans_data = data.get("plans") or {}
    if not isinstance(plans_data, dict):
        raise ConfigError("categorization.package_naming.plans must be a mapping")
    plans = {
        str(plan): _as_str_mapping(mapping, f"categorization.package_naming.plans.{plan}")
        for plan, mapping in plans_data.items()
    }
    return PackageNamingConfig(
        mappings=_as_str_mapping(data["mappings"], "categorization.package_naming.mappings"),
        plans=plans,
        generic_scopes=_as_str_list(data.get("generic_scopes")),
    )


def _parse_format(data: Dict[str, Any], allow_callables: bool) -> FormatConfig:
    fmt = FormatConfig()
    if "version" in data:
        fmt.version = _as_str(data["version"]) or fmt.version
    if "date_format" in data:
        fmt.date_format = _as_str(data["date_format"]) or fmt.date_format

    message = data.get("changelog_message")
    if isinstance(message, dict):
        fmt.changelog_message = _as_callable(message, "format.changelog_message", allow_callables)
    else:
        fmt.changelog_message = _as_str(message)

    fmt.section_title_for_package = _as_str(_as_dict(data.get("section_title")).get("for_package"))
    plan_message = _as_dict(data.get("plan_message"))
    if plan_message:
        fmt.plan_message = PlanMessageConfig(
            same=_as_str(plan_message.get("same")) or "",
            plus=_as_str(plan_message.get("plus")) or "",
        )
    fmt.plan_badge = _as_str_mapping(data.get("plan_badge"), "format.plan_badge")
    fmt.show_internal_changes_message = bool(data.get("show_internal_changes_message", False))
    return fmt


def _parse_contributors(data: Dict[str, Any]) -> ContributorsConfig:
    message = _as_dict(data.get("message"))
    return ContributorsConfig(
        disabled=bool(data.get("disabled", False)),
        contributors_message=_as_pluralized(message.get("contributors")),
        team_message=_as_pluralized(message.get("team")),
        community_message=_as_pluralized(message.get("community")),
        add_contributors_to_intro=bool(data.get("add_contributors_to_intro", False)),
    )


def _parse_filter(data: Dict[str, Any], allow_callables: bool) -> FilterConfig:
    return FilterConfig(
        exclude_commit_by_authors=_as_patterns(data.get("exclude_commit_by_authors")),
        exclude_authors_from_contributors=_as_patterns(data.get("exclude_authors_from_contributors")),
        exclude_commit_with_labels=_as_patterns(data.get("exclude_commit_with_labels")),
        custom_filter=_as_callable(data.get("custom_filter"), "filter.custom_filter", allow_callables),
    )


def as_pattern(value: str) -> Pattern:
    """Compile ``/pattern/flags`` strings to regexes; return other strings unchanged."""
    match = _REGEX_LITERAL.fullmatch(value)
    if match is None:
        return value
    flags = 0
    for flag in match.group("flags"):
        flags |= _REGEX_FLAGS[flag]
    try:
        return re.compile(match.group("pattern"), flags)
    except re.error as exc:
        raise ConfigError(f"Invalid regular expression {value!r}: {exc}") from exc


def _as_patterns(value: Any) -> List[Pattern]:
    return [as_pattern(item) for item in _as_str_list(value)]


def _as_callable(value: Any, where: str, allow_callables: bool) -> Optional[Callable[..., Any]]:
    if value is None:
        return None
    if not allow_callables:
        raise ConfigError(f"{where}: callables are not allowed in this configuration")
    target = value.get("callable") if isinstance(value, dict) else None
    if not isinstance(target, str) or ":" not in target:
        raise ConfigError(f"Expected {{callable: 'module:attribute'}}, got {value!r}")
    module_name, attribute = target.split(":", 1)
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"Cannot import module {module_name!r}: {exc}") from exc
    func = getattr(module, attribute, None)
    if not callable(func):
        raise ConfigError(f"{target!r} does not name a callable")
    return func


def _as_pluralized(value: Any) -> Optional[PluralizedMessage]:
    if isinstance(value, dict):
        return {str(key): str(text) for key, text in value.items() if key in ("one", "many")}
    return _as_str(value)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


def _as_str_mapping(value: Any, where: str) -> Dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{where} must be a mapping")
    result: Dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(item, str):
            raise ConfigError(f"{where}.{key} must be a string")
        result[str(key)] = item
    return result


__all__ = ["ConfigError", "as_pattern", "load_changelog_config", "parse_changelog_config"]
