#!/usr/bin/env python3

import logging
from datetime import datetime
from pathlib import PurePath
from typing import Callable, Optional

from .config import GeneratorConfig, InvocationContext
from .events import (
    HookEvent,
    PostToolUse,
    SessionSource,
    SessionStart,
    ToolName,
)
from .git import (
    Repository,
    create_commit,
    create_session_branch,
    current_branch,
    session_branch_name,
    stage_all,
    stage_file,
    staged_diff,
)
from .message_generator import CommitMessageGenerator

__all__ = [
    "TRUNK_BRANCHES",
    "SESSION_END_SOURCES",
    "FILE_EDIT_TOOLS",
    "Committer",
    "relative_to_cwd",
]

log = logging.getLogger(__name__)

TRUNK_BRANCHES = frozenset({"main", "master", "develop"})

# Sources that mean the previous session in this process is over
SESSION_END_SOURCES = frozenset(
    {SessionSource.CLEAR, SessionSource.COMPACT, SessionSource.RESUME}
)

FILE_EDIT_TOOLS = frozenset({ToolName.EDIT, ToolName.MULTI_EDIT, ToolName.WRITE})


def relative_to_cwd(file_path: str, cwd: str) -> str:
    """Make an absolute ``file_path`` relative to ``cwd``.

    Relative paths, and absolute paths outside ``cwd``, are returned unchanged.
    """
    path = PurePath(file_path)
    if not path.is_absolute():
        return file_path
    try:
        return str(path.relative_to(cwd))
    except ValueError:
        return file_path


class Committer:
    """Turn hook events into staging, commits and session branches.

    Git failures propagate to the caller; message generation never fails.
    """

    def __init__(
        self,
        repo: Repository,
        generator_config: GeneratorConfig,
        context: Optional[InvocationContext] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.repo = repo
        self.generator_config = generator_config
        self.context = context or InvocationContext()
        self.clock = clock

    def _generator(self, language: str) -> CommitMessageGenerator:
        context = InvocationContext(language=language, nested=self.context.nested)
        return CommitMessageGenerator(
            self.generator_config, context, cwd=self.repo.workdir
        )

    async def handle_event(
        self, event: HookEvent, language: Optional[str] = None
    ) -> Optional[str]:
        """Act on a single hook event.

        Args:
            event: The decoded hook event
            language: Commit message language, defaults to the context's

        Returns:
            The hash of the last commit created, or None if nothing was committed

        Raises:
            GitOperationError: If any git step fails
        """
        language = language or self.context.language

        if isinstance(event, SessionStart):
            return await self._handle_session_start(event, language)

        if isinstance(event, PostToolUse):
            if event.tool_name in FILE_EDIT_TOOLS and event.tool_response.success:
                return await self._handle_file_commit(event, language)
            log.debug(
                "Ignoring %s (success=%s)",
                event.tool_name.value,
                event.tool_response.success,
            )

        return None

    async def _handle_session_start(
        self, event: SessionStart, language: str
    ) -> Optional[str]:
        branch = await current_branch(self.repo)
        commit_hash = None

        # Close out the previous session on the branch it was using, before
        # any branch switch below
        if event.source in SESSION_END_SOURCES:
            log.info(
                "Session %s started from %s, committing pending work",
                event.session_id,
                event.source.value,
            )
            commit_hash = await self._handle_session_end(language)

        if branch in TRUNK_BRANCHES:
            name = session_branch_name(event.session_id, self.clock())
            await create_session_branch(self.repo, name)
        else:
            log.debug("On branch %s, not creating a session branch", branch)

        return commit_hash

    async def _handle_session_end(self, language: str) -> Optional[str]:
        await stage_all(self.repo)
        return await self._commit_staged(language)

    async def _handle_file_commit(
        self, event: PostToolUse, language: str
    ) -> Optional[str]:
        relative_path = relative_to_cwd(event.tool_input.file_path, event.cwd)
        await stage_file(self.repo, relative_path)
        return await self._commit_staged(language)

    async def _commit_staged(self, language: str) -> Optional[str]:
        diff = await staged_diff(self.repo)
        if not diff:
            log.info("Nothing staged, not committing")
            return None

        message = await self._generator(language).generate(diff)
        return await create_commit(self.repo, message)
