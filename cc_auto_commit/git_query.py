#!/usr/bin/env python3

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .errors import RepositoryAccessError
from .shell import run_command

__all__ = [
    "Repository",
    "DETACHED_HEAD",
    "get_repository_root",
    "current_branch",
    "get_head_commit_hash",
]

log = logging.getLogger(__name__)

DETACHED_HEAD = "HEAD"


@dataclass(frozen=True)
class Repository:
    """A git work tree located from some directory inside it.

    Attributes:
        root: Absolute path of the top-level of the work tree
        workdir: Directory the repository was discovered from; relative
            paths handed to git commands are resolved against it
    """

    root: str
    workdir: str

    @classmethod
    async def discover(cls, path: str) -> "Repository":
        """Locate the repository containing ``path``.

        Raises:
            RepositoryAccessError: If ``path`` is not inside a git work tree
        """
        workdir = os.path.abspath(path)
        root = await get_repository_root(workdir)
        log.debug("Discovered repository %s from %s", root, workdir)
        return cls(root=root, workdir=workdir)


async def get_repository_root(path: str) -> str:
    """Get the root directory of the Git repository containing the path.

    Args:
        path: An existing directory inside the work tree

    Returns:
        The absolute path to the repository root

    Raises:
        RepositoryAccessError: If the directory does not exist or is not in a Git repository
    """
    if not os.path.isdir(path):
        raise RepositoryAccessError(f"Directory does not exist: {path}")

    result = await run_command(
        ["git", "rev-parse", "--show-toplevel"],
        cwd=path,
        check=False,
    )
    if result.returncode != 0:
        raise RepositoryAccessError(
            f"Path '{path}' is not in a Git repository: {result.stderr.strip()}"
        )

    return str(result.stdout.strip())


async def current_branch(repo: Repository) -> str:
    """Get the short name of the checked-out branch.

    On an unborn branch (no commits yet) the branch name is still returned.

    Returns:
        The branch name, or DETACHED_HEAD if HEAD is detached

    Raises:
        RepositoryAccessError: If HEAD cannot be read
    """
    result = await run_command(
        ["git", "symbolic-ref", "--quiet", "--short", "HEAD"],
        cwd=repo.workdir,
        check=False,
    )

    # symbolic-ref exits 1 when HEAD is not a symbolic ref, i.e. detached
    if result.returncode == 1:
        return DETACHED_HEAD
    if result.returncode != 0:
        raise RepositoryAccessError(f"Failed to read HEAD: {result.stderr.strip()}")

    return str(result.stdout.strip())


async def get_head_commit_hash(repo: Repository) -> Optional[str]:
    """Get the full hash of the commit HEAD points at.

    Returns:
        The commit hash, or None if the current branch has no commits yet
    """
    result = await run_command(
        ["git", "rev-parse", "--verify", "--quiet", "HEAD^{commit}"],
        cwd=repo.workdir,
        check=False,
    )

    if result.returncode != 0:
        return None
    return str(result.stdout.strip())
