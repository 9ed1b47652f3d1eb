"""Workspace package version lookup through pnpm."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

from ..logging import get_logger

Runner = Callable[..., str]

logger = get_logger("changelog.workspace")


def get_workspace_versions(
    *, cwd: Path | str = ".", runner: Optional[Runner] = None
) -> Dict[str, str]:
    """Map every workspace package name to its version.

    Any failure (pnpm missing, non-zero exit, malformed output) is logged and
    yields an empty mapping so changelog generation can continue without
    versions.
    """
    try:
        output = (runner or _default_runner)(
            ["pnpm", "ls", "-r", "--json", "--depth", "-1"], cwd=Path(cwd)
        )
        packages = json.loads(output)
    except (OSError, subprocess.CalledProcessError, json.JSONDecodeError) as exc:
        logger.warning("Could not read workspace package versions: %s", exc)
        return {}

    if not isinstance(packages, list):
        logger.warning("Unexpected pnpm output: expected a list of packages")
        return {}

    versions: Dict[str, str] = {}
    for package in packages:
        if not isinstance(package, dict):
            continue
        name = package.get("name")
        version = package.get("version")
        if isinstance(name, str) and isinstance(version, str):
            versions[name] = version
        else:
            logger.debug("Ignoring workspace entry without name/version: %s", package)
    return versions


def _default_runner(args: Sequence[str], *, cwd: Path) -> str:
    completed = subprocess.run(
        list(args),
        cwd=str(cwd),
        check=True,
        text=True,
        capture_output=True,
    )
    return completed.stdout


__all__ = ["get_workspace_versions"]
