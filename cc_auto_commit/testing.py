#!/usr/bin/env python3

import asyncio
import os
import subprocess
import sys
import tempfile
import unittest
from typing import Any, List, Optional, Union
from unittest import mock

from expecttest import TestCase

from .config import GeneratorConfig
from .git import Repository

__all__ = [
    "GitTestCase",
    "script_generator_config",
]


def script_generator_config(
    script: str,
    default_commit_message: str = "chore: auto-commit changes",
    prompt_template: str = "lang={language}\n{diff_content}",
) -> GeneratorConfig:
    """A generator configuration that runs ``script`` with the current interpreter.

    The prompt is the script's last argument (``sys.argv[-1]``).
    """
    return GeneratorConfig(
        prompt_template=prompt_template,
        generator_command=sys.executable,
        generator_args=("-c", script),
        default_commit_message=default_commit_message,
    )


class GitTestCase(TestCase, unittest.IsolatedAsyncioTestCase):
    """Base class for tests that need a scratch git repository."""

    async def asyncSetUp(self):
        """Async setup method to prepare the test environment."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.repo_dir = os.path.realpath(self.temp_dir.name)
        self.testing_time = "1112911993"  # Fixed timestamp for git

        self.env = os.environ.copy()
        # Keep the user's global and system git config out of the tests
        self.global_config = os.path.join(self.repo_dir, ".gitconfig-global")
        with open(self.global_config, "w"):  # noqa: ASYNC230
            pass
        self.env["GIT_CONFIG_GLOBAL"] = self.global_config
        self.env["GIT_CONFIG_NOSYSTEM"] = "1"
        self.env.setdefault("GIT_TERMINAL_PROMPT", "0")
        self.env.setdefault("EDITOR", ":")
        self.env.setdefault("LANG", "C")
        self.env.setdefault("LC_ALL", "C")
        self.env.setdefault("PAGER", "cat")
        self.env.setdefault("TZ", "UTC")
        self.env.setdefault("TERM", "dumb")
        # For deterministic commit times
        self.env["GIT_AUTHOR_EMAIL"] = "author@example.com"
        self.env["GIT_AUTHOR_NAME"] = "A U Thor"
        self.env["GIT_COMMITTER_EMAIL"] = "committer@example.com"
        self.env["GIT_COMMITTER_NAME"] = "C O Mitter"
        self.env["GIT_COMMITTER_DATE"] = f"{self.testing_time} -0700"
        self.env["GIT_AUTHOR_DATE"] = f"{self.testing_time} -0700"
        self.env.pop("CLAUDE_AUTO_COMMIT_RUNNING", None)

        self.env_patcher = mock.patch(
            "cc_auto_commit.shell.get_subprocess_env", return_value=self.env
        )
        self.env_patcher.start()

        # The global config file lives in the work tree; keep it out of commits
        self.work_dir = os.path.join(self.repo_dir, "work")
        os.makedirs(self.work_dir)

        await self.setup_repository()
        self.repo = Repository(root=self.work_dir, workdir=self.work_dir)

    async def asyncTearDown(self):
        """Async teardown to clean up after the test."""
        self.env_patcher.stop()
        self.temp_dir.cleanup()

    async def setup_repository(self):
        """Initialize a repository on ``main`` with one commit containing README.md.

        Subclasses can override this to customize the repository setup.
        """
        await self.git_run(["init", "-b", "main"])
        await self.git_run(["config", "user.email", "test@example.com"])
        await self.git_run(["config", "user.name", "Test User"])

        self.write_file("README.md", "# Test Repository\n")
        await self.git_run(["add", "README.md"])
        await self.git_run(["commit", "-m", "Initial commit"])

    def write_file(self, relative_path: str, content: str) -> str:
        """Write ``content`` to a file in the work tree, returning its absolute path."""
        path = os.path.join(self.work_dir, relative_path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:  # noqa: ASYNC230
            f.write(content)
        return path

    async def git_run(
        self,
        args: List[str],
        check: bool = True,
        capture_output: bool = False,
        text: bool = False,
        **kwargs: Any,
    ) -> Union[subprocess.CompletedProcess[bytes], str]:
        """Run git command asynchronously with appropriate work_dir and env settings.

        Args:
            args: List of git command arguments (without 'git' prefix)
            check: If True, raises if the command returns a non-zero exit code
            capture_output: If True, captures stdout and stderr
            text: If True, decodes stdout and returns it stripped
            **kwargs: Additional keyword arguments to pass to the subprocess

        Returns:
            If capture_output is True and text is True: The stdout content as string
            Otherwise: subprocess.CompletedProcess instance
        """
        cmd = ["git"] + args

        kwargs.setdefault("cwd", self.work_dir)
        kwargs.setdefault("env", self.env)

        if capture_output:
            kwargs.setdefault("stdout", subprocess.PIPE)
            kwargs.setdefault("stderr", subprocess.PIPE)

        proc = await asyncio.create_subprocess_exec(
            *cmd,
            **kwargs,
        )

        stdout, stderr = await proc.communicate()

        result = subprocess.CompletedProcess[bytes](
            args=cmd,
            returncode=proc.returncode or 0,
            stdout=stdout,
            stderr=stderr,
        )

        if check and result.returncode != 0:
            raise subprocess.CalledProcessError(
                result.returncode, cmd, output=stdout, stderr=stderr
            )

        if capture_output and text and stdout is not None:
            return stdout.decode().strip()

        return result

    async def git_output(self, args: List[str]) -> str:
        """Shorthand for git_run(..., capture_output=True, text=True)."""
        output = await self.git_run(args, capture_output=True, text=True)
        assert isinstance(output, str)
        return output

    async def commit_count(self, ref: str = "HEAD") -> int:
        return int(await self.git_output(["rev-list", "--count", ref]))

    async def head_message(self, ref: str = "HEAD") -> str:
        return await self.git_output(["log", "-1", "--pretty=%B", ref])

    async def current_branch_name(self) -> Optional[str]:
        return await self.git_output(["rev-parse", "--abbrev-ref", "HEAD"])
