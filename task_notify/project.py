"""Guess a human-friendly project name for the working directory.

Priority: package.json / pyproject.toml name > git remote repo name > directory name.
"""

import json
import re
import subprocess
import tomllib
from pathlib import Path

import structlog

logger = structlog.get_logger()

UNKNOWN_PROJECT = "unknown project"
_REMOTE_NAME_RE = re.compile(r"[/:]([^/:]+?)(?:\.git)?/?$")


def _from_manifest(cwd: Path) -> str | None:
    package_json = cwd / "package.json"
    if package_json.is_file():
        try:
            name = json.loads(package_json.read_text(encoding="utf-8")).get("name")
        except (OSError, ValueError, AttributeError):
            name = None
        if name:
            return str(name)

    pyproject = cwd / "pyproject.toml"
    if pyproject.is_file():
        try:
            name = tomllib.loads(pyproject.read_text(encoding="utf-8")).get("project", {}).get("name")
        except (OSError, ValueError, AttributeError):
            name = None
        if name:
            return str(name)
    return None


def repo_name_from_remote(remote: str) -> str | None:
    """``git@host:org/repo.git`` / ``https://host/org/repo`` -> ``repo``."""
    match = _REMOTE_NAME_RE.search(remote.strip())
    return match.group(1) if match else None


def _from_git(cwd: Path) -> str | None:
    try:
        proc = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if proc.returncode != 0:
        return None
    return repo_name_from_remote(proc.stdout)


def detect_project_name(cwd: Path | None = None) -> str:
    cwd = cwd or Path.cwd()

    name = _from_manifest(cwd)
    if name:
        logger.debug("project.detected", source="manifest", name=name)
        return name

    name = _from_git(cwd)
    if name:
        logger.debug("project.detected", source="git", name=name)
        return name

    if cwd.name:
        logger.debug("project.detected", source="directory", name=cwd.name)
        return cwd.name
    return UNKNOWN_PROJECT
