#!/usr/bin/env python3

import asyncio
import logging
import os
import sys
from typing import Optional

import click

from .committer import Committer
from .config import (
    LANGUAGE_ENV,
    GeneratorConfig,
    InvocationContext,
    get_language_preference,
    load_generator_config,
)
from .errors import AutoCommitError, MalformedEventError
from .events import parse_hook_event
from .git import Repository
from .message_generator import CommitMessageGenerator

log = logging.getLogger(__name__)


def configure_logging(log_file: str = "cc-auto-commit.log") -> None:
    """Configure logging to write to both a file and stderr.

    The log level is determined from the configuration file.
    It can be overridden by setting the CC_AUTO_COMMIT_DEBUG_LEVEL environment
    variable, and CC_AUTO_COMMIT_DEBUG=1 forces DEBUG.

    The log directory is read from the configuration file's logger.path setting.
    By default, logs are written to $HOME/.cc-auto-commit.

    Console output goes to stderr only; stdout carries generated messages.
    """
    from .config import get_logger_path, get_logger_verbosity

    log_dir = get_logger_path()
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, log_file)

    # Get log level from config, with environment variable override
    log_level_str = os.environ.get("CC_AUTO_COMMIT_DEBUG_LEVEL") or get_logger_verbosity()

    # Map string log level to logging constants
    log_level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    # Convert string to logging level, default to INFO if invalid
    log_level = log_level_map.get(log_level_str.upper(), logging.INFO)

    if os.environ.get("CC_AUTO_COMMIT_DEBUG"):
        log_level = logging.DEBUG

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear any existing handlers
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logging.debug(f"Logging configured. Log file: {log_path}")


async def run(
    raw_input: str,
    context: InvocationContext,
    generator_config: Optional[GeneratorConfig] = None,
) -> Optional[str]:
    """Process one invocation's standard input.

    A hook event is handled by the Committer.  Any other input is taken to
    be a diff and a commit message is generated for it without committing.

    Args:
        raw_input: Everything read from stdin
        context: Language preference and recursion guard state
        generator_config: Overrides the configuration from load_generator_config()

    Returns:
        The generated message in diff mode, None after handling a hook event

    Raises:
        GitOperationError: If handling the hook event failed
    """
    if context.nested:
        log.debug("Started by our own commit message generator, doing nothing")
        return None

    config = generator_config or load_generator_config()

    try:
        event = parse_hook_event(raw_input)
    except MalformedEventError as e:
        log.debug(f"Input is not a hook event ({e}), treating it as a diff")
        return await CommitMessageGenerator(config, context).generate(raw_input)

    log.info(f"Handling {type(event).__name__} event in {event.cwd}")
    repo = await Repository.discover(event.cwd)
    await Committer(repo, config, context).handle_event(event, context.language)
    return None


@click.command()
@click.option(
    "--language",
    "-l",
    envvar=LANGUAGE_ENV,
    default=None,
    help="Language to use for commit messages (default: Japanese)",
)
@click.version_option(package_name="cc-auto-commit")
def cli(language: Optional[str]) -> None:
    """Commit agent edits from hook events read on stdin.

    If stdin is not a SessionStart or PostToolUse hook event, it is treated
    as a diff and a commit message for it is printed instead.
    """
    context = InvocationContext.from_environment(
        language or get_language_preference()
    )
    if context.nested:
        return

    configure_logging()

    raw_input = sys.stdin.read()

    try:
        output = asyncio.run(run(raw_input, context))
    except AutoCommitError as e:
        logging.error(f"Aborting: {e}", exc_info=True)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output is not None:
        click.echo(output)
