#!/usr/bin/env python3

"""Exception hierarchy for cc-auto-commit.

MalformedEventError is recoverable: the entry point falls back to treating
the input as raw diff text. Every GitOperationError is fatal for the current
invocation.
"""

__all__ = [
    "AutoCommitError",
    "MalformedEventError",
    "GitOperationError",
    "RepositoryAccessError",
    "GitIndexError",
    "DiffError",
    "BranchError",
    "CommitError",
]


class AutoCommitError(Exception):
    """Base class for all errors raised by cc-auto-commit."""


class MalformedEventError(AutoCommitError, ValueError):
    """The input is not a recognizable hook event."""


class GitOperationError(AutoCommitError):
    """A git command failed."""


class RepositoryAccessError(GitOperationError):
    """The repository could not be located or read."""


class GitIndexError(GitOperationError):
    """A path could not be added to the index."""


class DiffError(GitOperationError):
    """The staged diff could not be computed."""


class BranchError(GitOperationError):
    """A session branch could not be created or checked out."""


class CommitError(GitOperationError):
    """A commit could not be created."""
