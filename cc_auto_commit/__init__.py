#!/usr/bin/env python3

from .committer import Committer
from .events import parse_hook_event
from .main import cli, configure_logging, run
from .message_generator import CommitMessageGenerator
from .shell import get_subprocess_env, run_command

__all__ = [
    "configure_logging",
    "run",
    "cli",
    "Committer",
    "CommitMessageGenerator",
    "parse_hook_event",
    "run_command",
    "get_subprocess_env",
]
