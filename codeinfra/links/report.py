"""Issue filtering and reporting for crawl results."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..logging import get_logger
from .models import CrawlResult, IgnoreRule, Issue, Matcher, MatcherSpec, PageData

logger = get_logger("links.report")


def apply_ignore_rules(
    issues: Iterable[Issue], rules: Sequence[IgnoreRule], pages: Mapping[str, PageData]
) -> List[Issue]:
    """Drop issues matched by any rule."""
    if not rules:
        return list(issues)
    return [issue for issue in issues if not any(_rule_matches(rule, issue, pages) for rule in rules)]


def report_issues(issues: Sequence[Issue]) -> None:
    """Log issues grouped by the page they were found on."""
    if not issues:
        return
    logger.error("Broken links found:")
    for source, grouped in group_by_source(issues).items():
        logger.error("Source %s:", source)
        for issue in grouped:
            reason = "target not found" if issue.kind == "broken-target" else issue.message.lower()
            logger.error("  [%s](%s) (%s)", issue.link.text, issue.link.href, reason)


def group_by_source(issues: Iterable[Issue]) -> Dict[str, List[Issue]]:
    grouped: Dict[str, List[Issue]] = {}
    for issue in issues:
        grouped.setdefault(issue.link.src or "(unknown)", []).append(issue)
    return grouped


def log_summary(result: CrawlResult, duration: float, out_path: Optional[object] = None) -> None:
    logger.info("Crawl completed in %.2f s", duration)
    logger.info("  Total links found: %d", len(result.links))
    logger.info("  Total broken links: %d", result.broken_links)
    logger.info("  Total broken link targets: %d", result.broken_targets)
    if out_path:
        logger.info("Output written to: %s", out_path)


def _rule_matches(rule: IgnoreRule, issue: Issue, pages: Mapping[str, PageData]) -> bool:
    source = issue.link.src
    page = pages.get(source) if source else None
    checks = (
        (rule.path, source),
        (rule.href, issue.link.href),
        (rule.content_type, page.content_type if page else None),
    )
    active = [(spec, value) for spec, value in checks if spec is not None]
    if not active:
        return False
    return all(value is not None and _matches(spec, value) for spec, value in active)


def _matches(spec: MatcherSpec, value: str) -> bool:
    matchers: Iterable[Matcher] = [spec] if isinstance(spec, (str, re.Pattern)) else spec or []
    for matcher in matchers:
        if isinstance(matcher, re.Pattern):
            if matcher.search(value):
                return True
        elif matcher == value:
            return True
    return False


__all__ = ["apply_ignore_rules", "group_by_source", "log_summary", "report_issues"]
