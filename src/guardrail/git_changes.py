"""Before/after file contents from git, for ``guardrail check``.

All git calls go through _run_git(), which is the single mock target in tests.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class GitChangesError(Exception):
    """Raised when changed files cannot be read from git."""


@dataclass
class FileChange:
    file_name: str
    before: str
    after: str


def _run_git(
    args: list[str],
    *,
    cwd: str | Path | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run a git command, raising GitChangesError if git cannot be run."""
    try:
        return subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=30,
            cwd=cwd,
        )
    except FileNotFoundError:
        raise GitChangesError("git binary not found")
    except subprocess.TimeoutExpired:
        raise GitChangesError(f"git {args[0]} timed out")


def _list_files(args: list[str], cwd: str | Path | None, failure: str) -> list[str]:
    result = _run_git(args, cwd=cwd)
    if result.returncode != 0:
        raise GitChangesError(failure)
    return [line for line in result.stdout.strip().split("\n") if line]


def _show(revision_path: str, cwd: str | Path | None) -> str | None:
    result = _run_git(["show", revision_path], cwd=cwd)
    if result.returncode != 0:
        return None
    return result.stdout


def _collect(
    files: list[str],
    before_ref: str,
    after_ref: str,
    cwd: str | Path | None,
) -> list[FileChange]:
    changes: list[FileChange] = []
    for file_name in files:
        after = _show(f"{after_ref}:{file_name}", cwd)
        if after is None:
            # Deleted, binary or otherwise unreadable
            logger.debug(f"Skipping {file_name}: no content at {after_ref or 'index'}")
            continue
        before = _show(f"{before_ref}:{file_name}", cwd) or ""
        changes.append(FileChange(file_name=file_name, before=before, after=after))
    return changes


def get_staged_changes(cwd: str | Path | None = None) -> list[FileChange]:
    """Files in the index, compared against HEAD. New files have an empty ``before``."""
    files = _list_files(
        ["diff", "--cached", "--name-only"],
        cwd,
        "Failed to get staged changes. Make sure you are in a git repository.",
    )
    return _collect(files, "HEAD", "", cwd)


def get_commit_changes(commit: str = "HEAD", cwd: str | Path | None = None) -> list[FileChange]:
    """Files changed by *commit*, compared against its first parent."""
    files = _list_files(
        ["diff-tree", "--no-commit-id", "--name-only", "-r", commit],
        cwd,
        f"Failed to get changes for commit {commit}. Make sure the commit exists.",
    )
    return _collect(files, f"{commit}^", commit, cwd)
