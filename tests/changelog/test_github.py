from __future__ import annotations

import json
import subprocess
from datetime import datetime, timezone
from pathlib import Path

import pytest

from codeinfra.changelog.github import (
    GitHubError,
    author_association,
    fetch_commits_between_refs,
    find_latest_tagged_version,
)
from codeinfra.changelog.models import CommitAuthor


class FakeGh:
    """Answers ``gh api`` calls from canned compare and pull request payloads."""

    def __init__(self, compare, pulls) -> None:
        self.compare = compare
        self.pulls = pulls
        self.calls = []

    def __call__(self, args, *, cwd):
        self.calls.append((list(args), cwd))
        endpoint = args[3] if args[2] == "--paginate" else args[2]
        if "/compare/" in endpoint:
            return "\n".join(json.dumps(entry) for entry in self.compare) + "\n"
        number = int(endpoint.rsplit("/", 1)[1])
        return json.dumps(self.pulls[number])


def test_fetch_commits_enriches_with_pull_request_data(tmp_path: Path) -> None:
    gh = FakeGh(
        compare=[
            {"sha": "a1", "message": "[button] Fix ripple (#12)\n\nDetails"},
            {"sha": "b2", "message": "Direct push without PR"},
            {"sha": "c3", "message": "Bump deps (#15)"},
        ],
        pulls={
            12: {
                "user": {"login": "alice"},
                "author_association": "MEMBER",
                "labels": [{"name": "component: button"}, {"name": "bug"}],
                "html_url": "https://github.com/mui/material-ui/pull/12",
                "merged_at": "2024-02-01T10:00:00Z",
                "created_at": "2024-01-30T09:00:00Z",
            },
            15: {
                "user": None,
                "author_association": "NONE",
                "labels": [],
                "html_url": "https://github.com/mui/material-ui/pull/15",
                "merged_at": None,
            },
        },
    )

    commits = fetch_commits_between_refs(
        "material-ui", "v1.0.0", "master", cwd=tmp_path, runner=gh
    )

    assert [commit.pr_number for commit in commits] == [12, 15]
    first = commits[0]
    assert first.sha == "a1"
    assert first.title == "[button] Fix ripple (#12)"
    assert first.labels == ["component: button", "bug"]
    assert first.author == CommitAuthor(login="alice", association="team")
    assert first.merged_at == datetime(2024, 2, 1, 10, tzinfo=timezone.utc)
    assert commits[1].author is None
    assert commits[1].merged_at is None

    assert gh.calls[0][0] == [
        "gh",
        "api",
        "--paginate",
        "repos/mui/material-ui/compare/v1.0.0...master",
        "--jq",
        ".commits[] | {sha: .sha, message: .commit.message}",
    ]
    assert [call[0][2] for call in gh.calls[1:]] == [
        "repos/mui/material-ui/pulls/12",
        "repos/mui/material-ui/pulls/15",
    ]
    assert all(call[1] == tmp_path for call in gh.calls)


def test_fetch_commits_uses_given_organization() -> None:
    gh = FakeGh(compare=[], pulls={})

    assert fetch_commits_between_refs("mui-x", "v7.0.0", "next", org="acme", runner=gh) == []
    assert gh.calls[0][0][3] == "repos/acme/mui-x/compare/v7.0.0...next"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("OWNER", "team"),
        ("MEMBER", "team"),
        ("FIRST_TIME_CONTRIBUTOR", "first_timer"),
        ("FIRST_TIMER", "first_timer"),
        ("NONE", "first_timer"),
        ("MANNEQUIN", "first_timer"),
        ("CONTRIBUTOR", "contributor"),
        ("COLLABORATOR", "contributor"),
        (None, "contributor"),
    ],
)
def test_author_association(value, expected) -> None:
    assert author_association(value) == expected


def test_find_latest_tagged_version_strips_output() -> None:
    calls = []

    def runner(args, *, cwd):
        calls.append(list(args))
        return "v5.15.3\n"

    assert find_latest_tagged_version(runner=runner) == "v5.15.3"
    assert calls == [["git", "describe", "--tags", "--abbrev=0", "--match", "v*"]]


def test_command_failures_raise_github_error() -> None:
    def failing(args, *, cwd):
        raise subprocess.CalledProcessError(1, list(args), stderr="HTTP 404: Not Found\n")

    with pytest.raises(GitHubError, match="gh api failed: HTTP 404: Not Found"):
        fetch_commits_between_refs("material-ui", "v1", "v2", runner=failing)


def test_missing_executable_raises_github_error() -> None:
    def missing(args, *, cwd):
        raise FileNotFoundError(args[0])

    with pytest.raises(GitHubError, match="Command not found: git"):
        find_latest_tagged_version(runner=missing)


def test_malformed_output_raises_github_error() -> None:
    def garbage(args, *, cwd):
        return "not json\n"

    with pytest.raises(GitHubError, match="Unexpected response from gh"):
        fetch_commits_between_refs("material-ui", "v1", "v2", runner=garbage)
