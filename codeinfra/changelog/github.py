"""GitHub and git collaborators for changelog generation.

Commits are listed with the compare endpoint and enriched with pull request
details, both through the ``gh`` CLI so authentication follows the user's
existing ``gh auth`` session.
"""

from __future__ import annotations

import json
import re
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from ..logging import get_logger
from .models import AuthorAssociation, Commit, CommitAuthor

Runner = Callable[..., str]

_PR_NUMBER_RE = re.compile(r"#(\d+)")
_TEAM_ASSOCIATIONS = {"OWNER", "MEMBER"}
_FIRST_TIMER_ASSOCIATIONS = {"MANNEQUIN", "NONE", "FIRST_TIMER", "FIRST_TIME_CONTRIBUTOR"}

logger = get_logger("changelog.github")


class GitHubError(RuntimeError):
    """Raised when the git or gh command line fails."""


def find_latest_tagged_version(*, cwd: Path | str = ".", runner: Optional[Runner] = None) -> str:
    """Return the most recent ``v*`` tag reachable from HEAD."""
    output = _run(
        ["git", "describe", "--tags", "--abbrev=0", "--match", "v*"],
        cwd=Path(cwd),
        runner=runner,
    )
    return output.strip()


def fetch_commits_between_refs(
    repo: str,
    last_release: str,
    release: str,
    *,
    org: str = "mui",
    cwd: Path | str = ".",
    runner: Optional[Runner] = None,
) -> List[Commit]:
    """Fetch commits in ``last_release...release`` together with their PR metadata.

    Commits whose message does not reference a pull request are skipped.
    """
    listing = _run(
        [
            "gh",
            "api",
            "--paginate",
            f"repos/{org}/{repo}/compare/{last_release}...{release}",
            "--jq",
            ".commits[] | {sha: .sha, message: .commit.message}",
        ],
        cwd=Path(cwd),
        runner=runner,
    )

    commits: List[Commit] = []
    for entry in _json_lines(listing):
        message = str(entry.get("message", ""))
        match = _PR_NUMBER_RE.search(message)
        if match is None:
            logger.debug("Skipping %s: no pull request reference", entry.get("sha"))
            continue
        pr_number = int(match.group(1))
        pr_data = _load_json(
            _run(
                ["gh", "api", f"repos/{org}/{repo}/pulls/{pr_number}"],
                cwd=Path(cwd),
                runner=runner,
            )
        )
        commits.append(_to_commit(entry, pr_number, pr_data))

    logger.info("Fetched %d commits between %s and %s", len(commits), last_release, release)
    return commits


def author_association(value: Optional[str]) -> AuthorAssociation:
    """Collapse GitHub's author association into team, first_timer or contributor."""
    if value in _TEAM_ASSOCIATIONS:
        return "team"
    if value in _FIRST_TIMER_ASSOCIATIONS:
        return "first_timer"
    return "contributor"


def _to_commit(entry: Dict[str, Any], pr_number: int, pr_data: Dict[str, Any]) -> Commit:
    user = pr_data.get("user") or {}
    author = None
    if user.get("login"):
        author = CommitAuthor(
            login=str(user["login"]),
            association=author_association(pr_data.get("author_association")),
        )
    commit = Commit.from_dict(
        {
            "sha": entry.get("sha", ""),
            "message": entry.get("message", ""),
            "labels": [label.get("name", "") for label in pr_data.get("labels") or []],
            "pr_number": pr_number,
            "html_url": pr_data.get("html_url") or "",
            "merged_at": pr_data.get("merged_at"),
            "created_at": pr_data.get("created_at"),
        }
    )
    commit.author = author
    return commit


def _json_lines(text: str) -> Iterable[Dict[str, Any]]:
    for line in text.splitlines():
        if line.strip():
            yield _load_json(line)


def _load_json(text: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise GitHubError(f"Unexpected response from gh: {exc}") from exc
    if not isinstance(data, dict):
        raise GitHubError("Unexpected response from gh: expected a JSON object")
    return data


def _run(args: Sequence[str], *, cwd: Path, runner: Optional[Runner]) -> str:
    try:
        return (runner or _default_runner)(args, cwd=cwd)
    except FileNotFoundError as exc:
        raise GitHubError(f"Command not found: {args[0]}") from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
        raise GitHubError(f"{' '.join(args[:2])} failed: {detail}") from exc


def _default_runner(args: Sequence[str], *, cwd: Path) -> str:
    completed = subprocess.run(
        list(args),
        cwd=str(cwd),
        check=True,
        text=True,
        capture_output=True,
    )
    return completed.stdout


__all__ = [
    "GitHubError",
    "author_association",
    "fetch_commits_between_refs",
    "find_latest_tagged_version",
]
