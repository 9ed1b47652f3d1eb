from __future__ import annotations

import json
import subprocess

from codeinfra.changelog.workspace import get_workspace_versions


def test_get_workspace_versions_maps_names_to_versions(tmp_path) -> None:
    calls = []

    def runner(args, *, cwd):
        calls.append((list(args), cwd))
        return json.dumps(
            [
                {"name": "@mui/material", "version": "6.1.0", "path": "/repo/packages/mui-material"},
                {"name": "@mui/private-scripts", "private": True},
                {"name": "@mui/utils", "version": "6.0.2"},
                "garbage",
            ]
        )

    versions = get_workspace_versions(cwd=tmp_path, runner=runner)

    assert versions == {"@mui/material": "6.1.0", "@mui/utils": "6.0.2"}
    assert calls == [(["pnpm", "ls", "-r", "--json", "--depth", "-1"], tmp_path)]


def test_get_workspace_versions_returns_empty_mapping_on_failure() -> None:
    def failing(args, *, cwd):
        raise subprocess.CalledProcessError(1, list(args))

    def missing(args, *, cwd):
        raise FileNotFoundError("pnpm")

    assert get_workspace_versions(runner=failing) == {}
    assert get_workspace_versions(runner=missing) == {}
    assert get_workspace_versions(runner=lambda args, *, cwd: "{broken") == {}
    assert get_workspace_versions(runner=lambda args, *, cwd: '{"name": "x"}') == {}
