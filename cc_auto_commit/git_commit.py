#!/usr/bin/env python3

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .errors import BranchError, CommitError
from .git_query import Repository, get_head_commit_hash
from .shell import run_command

__all__ = [
    "Identity",
    "SESSION_BRANCH_PREFIX",
    "resolve_identity",
    "create_commit",
    "session_branch_name",
    "create_session_branch",
]

log = logging.getLogger(__name__)

SESSION_BRANCH_PREFIX = "session/"

# "A U Thor <author@example.com> 1112911993 -0700"
IDENT_RE = re.compile(r"^(?P<name>.*?) <(?P<email>[^>]*)> \d+ [+-]\d{4}$")


@dataclass(frozen=True)
class Identity:
    name: str
    email: str


async def _config_value(repo: Repository, key: str) -> Optional[str]:
    result = await run_command(
        ["git", "config", "--includes", "--get", key],
        cwd=repo.workdir,
        check=False,
    )
    if result.returncode != 0:
        return None
    return str(result.stdout.strip()) or None


async def resolve_identity(repo: Repository) -> Identity:
    """Determine who the commit is attributed to.

    ``user.name`` and ``user.email`` are read through git itself so that
    ``include`` and ``includeIf`` directives apply.  When either is missing,
    git's own default committer identity is used instead.

    Raises:
        CommitError: If git cannot come up with any identity
    """
    name = await _config_value(repo, "user.name")
    email = await _config_value(repo, "user.email")
    if name and email:
        return Identity(name=name, email=email)

    log.debug("user.name/user.email not configured, asking git for a default")
    result = await run_command(
        ["git", "var", "GIT_COMMITTER_IDENT"],
        cwd=repo.workdir,
        check=False,
    )
    match = IDENT_RE.match(result.stdout.strip()) if result.returncode == 0 else None
    if match is None:
        raise CommitError(
            f"Unable to determine a committer identity: {result.stderr.strip()}"
        )
    return Identity(name=match.group("name"), email=match.group("email"))


async def create_commit(repo: Repository, message: str) -> str:
    """Commit the current index on top of HEAD.

    The commit is built with plumbing (write-tree, commit-tree, update-ref)
    so no commit hooks run and GPG signing is never attempted.  HEAD is
    advanced only if it still points at the parent that was read, so a
    concurrent commit makes this one fail instead of being overwritten.

    Args:
        repo: The repository
        message: Full commit message

    Returns:
        The hash of the new commit

    Raises:
        CommitError: If any step fails
    """
    identity = await resolve_identity(repo)

    tree_result = await run_command(
        ["git", "write-tree"],
        cwd=repo.root,
        check=False,
    )
    if tree_result.returncode != 0:
        raise CommitError(f"Failed to write tree: {tree_result.stderr.strip()}")
    tree_hash = str(tree_result.stdout.strip())

    # Root commit when the branch is unborn
    parent_hash = await get_head_commit_hash(repo)
    parent_arg = ["-p", parent_hash] if parent_hash else []

    commit_result = await run_command(
        [
            "git",
            "commit-tree",
            "--no-gpg-sign",
            tree_hash,
            *parent_arg,
            "-m",
            message,
        ],
        cwd=repo.root,
        check=False,
        env={
            "GIT_AUTHOR_NAME": identity.name,
            "GIT_AUTHOR_EMAIL": identity.email,
            "GIT_COMMITTER_NAME": identity.name,
            "GIT_COMMITTER_EMAIL": identity.email,
        },
    )
    if commit_result.returncode != 0:
        raise CommitError(f"Failed to create commit: {commit_result.stderr.strip()}")
    commit_hash = str(commit_result.stdout.strip())

    subject = message.splitlines()[0] if message else ""
    update_result = await run_command(
        [
            "git",
            "update-ref",
            "-m",
            f"commit: {subject}",
            "HEAD",
            commit_hash,
            parent_hash or "",
        ],
        cwd=repo.root,
        check=False,
    )
    if update_result.returncode != 0:
        raise CommitError(f"Failed to update HEAD: {update_result.stderr.strip()}")

    log.info("Created commit %s: %s", commit_hash, subject)
    return commit_hash


def session_branch_name(session_id: str, now: Optional[datetime] = None) -> str:
    """Name of the branch for an agent session.

    The timestamp is in local time, formatted ``YYYYMMDD_HHMMSS``.
    """
    if now is None:
        now = datetime.now()
    return f"{SESSION_BRANCH_PREFIX}{session_id}_{now.strftime('%Y%m%d_%H%M%S')}"


async def create_session_branch(
    repo: Repository, name: str, base_commit: Optional[str] = None
) -> None:
    """Create branch ``name`` and check it out.

    Args:
        repo: The repository
        name: Full branch name, e.g. from session_branch_name()
        base_commit: Commit to start the branch at, defaults to HEAD

    Raises:
        BranchError: If the repository has no commits, the branch already
            exists, or git refuses to create or check it out
    """
    if base_commit is None:
        base_commit = await get_head_commit_hash(repo)
        if base_commit is None:
            raise BranchError(
                f"Cannot create branch {name}: repository has no commits yet"
            )

    exists_result = await run_command(
        ["git", "show-ref", "--verify", "--quiet", f"refs/heads/{name}"],
        cwd=repo.root,
        check=False,
    )
    if exists_result.returncode == 0:
        raise BranchError(f"Branch already exists: {name}")

    branch_result = await run_command(
        ["git", "branch", "--no-track", name, base_commit],
        cwd=repo.root,
        check=False,
    )
    if branch_result.returncode != 0:
        raise BranchError(
            f"Failed to create branch {name}: {branch_result.stderr.strip()}"
        )

    checkout_result = await run_command(
        ["git", "checkout", "--quiet", name],
        cwd=repo.root,
        check=False,
    )
    if checkout_result.returncode != 0:
        raise BranchError(
            f"Failed to check out branch {name}: {checkout_result.stderr.strip()}"
        )

    log.info("Switched to session branch %s at %s", name, base_commit)
