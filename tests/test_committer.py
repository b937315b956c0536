#!/usr/bin/env python3

import os
import unittest
from datetime import datetime

from cc_auto_commit.committer import Committer, relative_to_cwd
from cc_auto_commit.config import InvocationContext
from cc_auto_commit.errors import GitIndexError
from cc_auto_commit.events import (
    PostToolUse,
    SessionSource,
    SessionStart,
    ToolInput,
    ToolName,
    ToolResponse,
)
from cc_auto_commit.testing import GitTestCase, script_generator_config

FIXED_TIME = datetime(2025, 1, 2, 3, 4, 5)


class RelativeToCwdTest(unittest.TestCase):
    def test_absolute_path_under_cwd(self):
        self.assertEqual(
            relative_to_cwd("/work/project/src/app.py", "/work/project"),
            "src/app.py",
        )

    def test_absolute_path_outside_cwd(self):
        self.assertEqual(
            relative_to_cwd("/elsewhere/app.py", "/work/project"), "/elsewhere/app.py"
        )

    def test_relative_path_unchanged(self):
        self.assertEqual(relative_to_cwd("src/app.py", "/work/project"), "src/app.py")

    def test_sibling_with_common_prefix_is_not_under_cwd(self):
        self.assertEqual(
            relative_to_cwd("/work/project-old/app.py", "/work/project"),
            "/work/project-old/app.py",
        )


class CommitterTestCase(GitTestCase):
    generator_script = "print('feat: update files')"

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.committer = Committer(
            self.repo,
            script_generator_config(self.generator_script),
            InvocationContext(language="English"),
            clock=lambda: FIXED_TIME,
        )

    def post_tool_use(self, tool_name=ToolName.WRITE, file_path="a.txt", success=True):
        return PostToolUse(
            cwd=self.work_dir,
            tool_name=tool_name,
            tool_input=ToolInput(file_path=file_path),
            tool_response=ToolResponse(success=success),
            session_id="abc123",
        )

    def session_start(self, source=None, session_id="abc123"):
        return SessionStart(session_id=session_id, cwd=self.work_dir, source=source)


class PostToolUseTest(CommitterTestCase):
    async def test_write_commits_only_that_file(self):
        path = self.write_file("a.txt", "a\n")
        self.write_file("b.txt", "b\n")

        commit_hash = await self.committer.handle_event(
            self.post_tool_use(file_path=path)
        )

        self.assertIsNotNone(commit_hash)
        self.assertEqual(await self.commit_count(), 2)
        self.assertEqual(await self.head_message(), "feat: update files")
        changed = await self.git_output(
            ["diff-tree", "--no-commit-id", "--name-only", "-r", "HEAD"]
        )
        self.assertEqual(changed, "a.txt")
        untracked = await self.git_output(["status", "--porcelain"])
        self.assertEqual(untracked, "?? b.txt")

    async def test_edit_and_multi_edit(self):
        for i, tool in enumerate([ToolName.EDIT, ToolName.MULTI_EDIT]):
            self.write_file("README.md", f"# revision {i}\n")
            await self.committer.handle_event(
                self.post_tool_use(tool_name=tool, file_path="README.md")
            )
        self.assertEqual(await self.commit_count(), 3)

    async def test_unchanged_file_creates_no_commit(self):
        path = os.path.join(self.work_dir, "README.md")
        result = await self.committer.handle_event(self.post_tool_use(file_path=path))
        self.assertIsNone(result)
        self.assertEqual(await self.commit_count(), 1)

    async def test_read_never_touches_git(self):
        path = self.write_file("a.txt", "a\n")
        for success in (True, False):
            await self.committer.handle_event(
                self.post_tool_use(tool_name=ToolName.READ, file_path=path, success=success)
            )
        self.assertEqual(await self.commit_count(), 1)
        self.assertEqual(await self.git_output(["diff", "--cached", "--name-only"]), "")

    async def test_unknown_tool_is_ignored(self):
        path = self.write_file("a.txt", "a\n")
        await self.committer.handle_event(
            self.post_tool_use(tool_name=ToolName.UNKNOWN, file_path=path)
        )
        self.assertEqual(await self.commit_count(), 1)

    async def test_failed_write_is_ignored(self):
        path = self.write_file("a.txt", "a\n")
        await self.committer.handle_event(
            self.post_tool_use(file_path=path, success=False)
        )
        self.assertEqual(await self.commit_count(), 1)
        self.assertEqual(await self.git_output(["diff", "--cached", "--name-only"]), "")

    async def test_missing_file_is_fatal(self):
        with self.assertRaises(GitIndexError):
            await self.committer.handle_event(
                self.post_tool_use(file_path=os.path.join(self.work_dir, "gone.txt"))
            )

    async def test_write_to_ignored_file_is_committed(self):
        self.write_file(".gitignore", "*.log\n")
        await self.git_run(["add", ".gitignore"])
        await self.git_run(["commit", "-m", "chore: ignore logs"])

        path = self.write_file("out.log", "build output\n")
        commit_hash = await self.committer.handle_event(
            self.post_tool_use(file_path=path)
        )

        self.assertIsNotNone(commit_hash)
        self.assertEqual(await self.commit_count(), 3)
        changed = await self.git_output(
            ["diff-tree", "--no-commit-id", "--name-only", "-r", "HEAD"]
        )
        self.assertEqual(changed, "out.log")


class GeneratorWorkingDirectoryTest(CommitterTestCase):
    generator_script = "import os; print('test: ' + os.getcwd())"

    async def test_generator_runs_in_repository(self):
        path = self.write_file("a.txt", "a\n")
        await self.committer.handle_event(self.post_tool_use(file_path=path))
        self.assertEqual(await self.head_message(), "test: " + self.work_dir)


class FailingGeneratorTest(CommitterTestCase):
    generator_script = "import sys; sys.exit(1)"

    async def test_commit_uses_default_message(self):
        path = self.write_file("a.txt", "a\n")
        await self.committer.handle_event(self.post_tool_use(file_path=path))
        self.assertEqual(await self.commit_count(), 2)
        self.assertEqual(await self.head_message(), "chore: auto-commit changes")


class SessionStartTest(CommitterTestCase):
    async def test_new_session_on_trunk_creates_branch(self):
        await self.committer.handle_event(self.session_start())
        self.assertEqual(
            await self.current_branch_name(), "session/abc123_20250102_030405"
        )
        self.assertEqual(await self.commit_count(), 1)

    async def test_startup_source_does_not_commit(self):
        self.write_file("README.md", "# pending\n")
        await self.committer.handle_event(
            self.session_start(source=SessionSource.STARTUP)
        )
        self.assertEqual(await self.commit_count("main"), 1)
        self.assertEqual(
            await self.current_branch_name(), "session/abc123_20250102_030405"
        )

    async def test_different_instants_give_different_branches(self):
        await self.committer.handle_event(self.session_start())
        await self.git_run(["checkout", "main"])

        self.committer.clock = lambda: datetime(2025, 1, 2, 3, 4, 6)
        await self.committer.handle_event(self.session_start())

        branches = await self.git_output(
            ["for-each-ref", "--format=%(refname:short)", "refs/heads/session/"]
        )
        self.assertEqual(
            branches.splitlines(),
            [
                "session/abc123_20250102_030405",
                "session/abc123_20250102_030406",
            ],
        )

    async def test_master_and_develop_are_trunks(self):
        for trunk in ("master", "develop"):
            await self.git_run(["checkout", "-b", trunk, "main"])
            await self.committer.handle_event(self.session_start(session_id=trunk))
            self.assertEqual(
                await self.current_branch_name(), f"session/{trunk}_20250102_030405"
            )

    async def test_non_trunk_branch_is_left_alone(self):
        await self.git_run(["checkout", "-b", "feature"])
        await self.committer.handle_event(self.session_start())
        self.assertEqual(await self.current_branch_name(), "feature")

    async def test_detached_head_is_left_alone(self):
        await self.git_run(["checkout", "--detach", "HEAD"])
        await self.committer.handle_event(self.session_start())
        self.assertEqual(await self.current_branch_name(), "HEAD")

    async def test_resume_commits_on_vacated_branch_before_switching(self):
        self.write_file("README.md", "# work from the previous session\n")
        self.write_file("notes.txt", "new file\n")

        commit_hash = await self.committer.handle_event(
            self.session_start(source=SessionSource.RESUME)
        )

        self.assertIsNotNone(commit_hash)
        self.assertEqual(await self.git_output(["rev-parse", "main"]), commit_hash)
        self.assertEqual(await self.commit_count("main"), 2)
        self.assertEqual(
            await self.current_branch_name(), "session/abc123_20250102_030405"
        )
        self.assertEqual(await self.git_output(["rev-parse", "HEAD"]), commit_hash)
        self.assertEqual(await self.git_output(["status", "--porcelain"]), "")

    async def test_clear_and_compact_commit_on_session_branch(self):
        await self.git_run(["checkout", "-b", "session/old_20250101_000000"])
        for i, source in enumerate([SessionSource.CLEAR, SessionSource.COMPACT]):
            self.write_file("README.md", f"# pass {i}\n")
            await self.committer.handle_event(self.session_start(source=source))

        self.assertEqual(await self.current_branch_name(), "session/old_20250101_000000")
        self.assertEqual(await self.commit_count(), 3)
        self.assertEqual(await self.commit_count("main"), 1)

    async def test_resume_with_clean_tree_does_not_commit(self):
        await self.committer.handle_event(
            self.session_start(source=SessionSource.RESUME)
        )
        self.assertEqual(await self.commit_count(), 1)

    async def test_unknown_source_does_not_commit(self):
        self.write_file("README.md", "# pending\n")
        await self.git_run(["checkout", "-b", "feature"])
        await self.committer.handle_event(
            self.session_start(source=SessionSource.UNKNOWN)
        )
        self.assertEqual(await self.commit_count(), 1)


if __name__ == "__main__":
    unittest.main()
