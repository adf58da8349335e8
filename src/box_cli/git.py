"""Git queries used around a generator invocation."""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List

import questionary

from box_cli.config import RuntimeConfig
from box_cli.exceptions import GitError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str


def _run(argv: list[str], *, cwd: Path, check: bool) -> CommandResult:
    proc = subprocess.run(
        argv,
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=False,
    )
    result = CommandResult(
        argv=argv,
        returncode=proc.returncode,
        stdout=proc.stdout,
        stderr=proc.stderr,
    )
    if check and result.returncode != 0:
        msg = result.stderr.strip() or result.stdout.strip() or "command failed"
        raise GitError(f"{' '.join(argv)}: {msg}")
    return result


def has_project_git(context: Path) -> bool:
    """True when ``context`` is inside a git work tree and git is installed."""
    try:
        result = _run(["git", "status"], cwd=context, check=False)
    except FileNotFoundError:
        return False
    return result.returncode == 0


def is_git_dirty(context: Path) -> bool:
    result = _run(["git", "status", "--porcelain"], cwd=context, check=True)
    return bool(result.stdout.strip())


def list_changed_files(context: Path) -> List[str]:
    """Modified and untracked files, honouring ignore rules."""
    result = _run(
        ["git", "ls-files", "--exclude-standard", "--modified", "--others"],
        cwd=context,
        check=True,
    )
    return [line for line in result.stdout.splitlines() if line.strip()]


def confirm_if_git_dirty(context: Path, runtime: RuntimeConfig) -> bool:
    """Ask before touching a work tree with uncommitted changes.

    Returns ``True`` when the invocation may proceed.
    """
    if runtime.skip_dirty_git_prompt:
        return True
    if not has_project_git(context):
        return True
    if not is_git_dirty(context):
        return True

    logger.warning("⚠️  There are uncommitted changes in the current repository, it's recommended to commit or stash them first.")
    proceed = questionary.confirm("Still proceed?", default=False).ask()
    return bool(proceed)
