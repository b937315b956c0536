#!/usr/bin/env python3

import logging
import re
from typing import Optional

from .config import RECURSION_GUARD_ENV, GeneratorConfig, InvocationContext
from .shell import run_command

__all__ = [
    "CONVENTIONAL_COMMIT_RE",
    "CommitMessageGenerator",
    "build_prompt",
    "normalize_message",
]

log = logging.getLogger(__name__)

CONVENTIONAL_COMMIT_RE = re.compile(r"^[a-z]+:\s.+")


def build_prompt(template: str, language: str, diff_content: str) -> str:
    """Fill the ``{language}`` and ``{diff_content}`` placeholders.

    Plain substitution rather than str.format(), since both the template
    and the diff can contain other braces.
    """
    return template.replace("{language}", language).replace(
        "{diff_content}", diff_content
    )


def normalize_message(candidate: str, default_message: str) -> str:
    """Make sure the message starts with a conventional-commit header.

    A candidate whose first line already looks like ``type: summary`` is
    kept as is; anything else gets the default message as its header.
    """
    lines = candidate.splitlines()
    first_line = lines[0].strip() if lines else ""
    if CONVENTIONAL_COMMIT_RE.match(first_line):
        return candidate
    return f"{default_message}\n\n{candidate}"


class CommitMessageGenerator:
    """Produce commit messages by running an external text generator."""

    def __init__(
        self,
        config: GeneratorConfig,
        context: Optional[InvocationContext] = None,
        cwd: Optional[str] = None,
    ) -> None:
        self.config = config
        self.context = context or InvocationContext()
        # Directory the generator runs in, normally the repository being committed
        self.cwd = cwd

    async def generate(self, diff_content: str) -> str:
        """Return a commit message for ``diff_content``.

        Never raises; when the generator fails or prints nothing the
        configured default message is returned verbatim.
        """
        candidate = await self._try_generate(diff_content)
        if candidate is None:
            return self.config.default_commit_message
        return normalize_message(candidate, self.config.default_commit_message)

    async def _try_generate(self, diff_content: str) -> Optional[str]:
        prompt = build_prompt(
            self.config.prompt_template, self.context.language, diff_content
        )
        cmd = [
            self.config.generator_command,
            *self.config.generator_args,
            prompt,
        ]

        try:
            result = await run_command(
                cmd,
                cwd=self.cwd,
                check=False,
                env={RECURSION_GUARD_ENV: "1"},
            )
        # ValueError: the prompt cannot be passed as an argument (NUL byte)
        except (OSError, ValueError) as e:
            log.warning(
                "Could not run commit message generator %s: %s",
                self.config.generator_command,
                e,
            )
            return None

        if result.returncode != 0:
            log.warning(
                "Commit message generator exited with code %d: %s",
                result.returncode,
                result.stderr.strip(),
            )
            return None

        message = result.stdout.strip()
        if not message:
            log.warning("Commit message generator produced no output")
            return None
        return message
