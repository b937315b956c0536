#!/usr/bin/env python3

"""Git operations and utilities.

Every operation shells out to the ``git`` executable, so repository state is
re-read from disk on each call.  The implementation is split across several
modules:
- git_query.py: Repository discovery, HEAD and branch inspection
- git_index.py: Staging and the staged diff
- git_commit.py: Identity resolution, commit creation, session branches
"""

# Re-export all functionality from the specialized modules
from .git_commit import (
    Identity,
    create_commit,
    create_session_branch,
    resolve_identity,
    session_branch_name,
)
from .git_index import (
    MAX_DIFF_LENGTH,
    TRUNCATION_MARKER,
    stage_all,
    stage_file,
    staged_diff,
    truncate_diff,
)
from .git_query import (
    DETACHED_HEAD,
    Repository,
    current_branch,
    get_head_commit_hash,
    get_repository_root,
)

__all__ = [
    "Repository",
    "Identity",
    "DETACHED_HEAD",
    "MAX_DIFF_LENGTH",
    "TRUNCATION_MARKER",
    "get_repository_root",
    "get_head_commit_hash",
    "current_branch",
    "stage_file",
    "stage_all",
    "staged_diff",
    "truncate_diff",
    "resolve_identity",
    "create_commit",
    "session_branch_name",
    "create_session_branch",
]
