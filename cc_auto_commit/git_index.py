#!/usr/bin/env python3

import logging

from .errors import DiffError, GitIndexError
from .git_query import Repository
from .shell import run_command

__all__ = [
    "MAX_DIFF_LENGTH",
    "TRUNCATION_MARKER",
    "stage_file",
    "stage_all",
    "staged_diff",
    "truncate_diff",
]

log = logging.getLogger(__name__)

MAX_DIFF_LENGTH = 5000
TRUNCATION_MARKER = "\n\n[... truncated ...]"


async def stage_file(repo: Repository, path: str) -> None:
    """Add a single path to the index.

    A deleted tracked file stages its removal.  Paths matched by the
    repository's ignore rules are added anyway, since the agent wrote them
    on purpose.

    Args:
        repo: The repository
        path: Path relative to ``repo.workdir`` (or absolute)

    Raises:
        GitIndexError: If git refuses to add the path
    """
    result = await run_command(
        ["git", "add", "--force", "--", path],
        cwd=repo.workdir,
        check=False,
    )
    if result.returncode != 0:
        raise GitIndexError(f"Failed to add file to index: {path}: {result.stderr.strip()}")


async def stage_all(repo: Repository) -> None:
    """Stage every change (new, modified, deleted) in the whole work tree.

    Raises:
        GitIndexError: If the index cannot be updated
    """
    result = await run_command(
        ["git", "add", "--all"],
        cwd=repo.root,
        check=False,
    )
    if result.returncode != 0:
        raise GitIndexError(f"Failed to stage changes: {result.stderr.strip()}")


def truncate_diff(diff_text: str) -> str:
    """Trim a diff and cap it at MAX_DIFF_LENGTH characters.

    Longer diffs keep their first MAX_DIFF_LENGTH characters followed by
    TRUNCATION_MARKER.
    """
    diff_text = diff_text.strip()
    if len(diff_text) > MAX_DIFF_LENGTH:
        log.debug("Truncating diff of %d characters", len(diff_text))
        return diff_text[:MAX_DIFF_LENGTH] + TRUNCATION_MARKER
    return diff_text


async def staged_diff(repo: Repository) -> str:
    """Get the patch between the HEAD tree and the index.

    The working tree is not consulted, so unstaged edits never show up.  On
    a branch with no commits the index is compared against the empty tree.
    Added, removed and context lines carry their ``+``/``-``/space marker;
    file and hunk headers are left as git prints them.  Binary files appear
    as a "Binary files differ" line.

    Returns:
        The trimmed patch, truncated per truncate_diff(); empty when nothing
        is staged

    Raises:
        DiffError: If git cannot produce the diff
    """
    result = await run_command(
        [
            "git",
            "diff",
            "--cached",
            "--no-color",
            "--no-ext-diff",
            "--no-textconv",
            "--no-renames",
        ],
        cwd=repo.root,
        check=False,
    )
    if result.returncode != 0:
        raise DiffError(f"Failed to compute staged diff: {result.stderr.strip()}")

    return truncate_diff(result.stdout)
