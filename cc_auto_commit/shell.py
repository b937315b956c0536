#!/usr/bin/env python3

import asyncio
import logging
import os
import subprocess
from typing import Dict, List, Optional

__all__ = [
    "run_command",
    "get_subprocess_env",
]


def get_subprocess_env() -> Optional[Dict[str, str]]:
    """
    Get the environment variables to be used for subprocess execution.
    This function can be mocked in tests to control the environment.

    Returns:
        Optional dictionary of environment variables, or None to use the current environment.
    """
    return None


def _build_env(extra_env: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    base = get_subprocess_env()
    if not extra_env:
        return base
    env = dict(os.environ if base is None else base)
    env.update(extra_env)
    return env


async def run_command(
    cmd: List[str],
    cwd: Optional[str] = None,
    check: bool = True,
    capture_output: bool = True,
    input: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess[str]:
    """
    Run a subprocess command with consistent logging asynchronously.

    Args:
        cmd: Command to run as a list of strings
        cwd: Current working directory for the command
        check: If True, raise RuntimeError if the command returns non-zero exit code
        capture_output: If True, capture stdout and stderr
        input: Input to pass to the subprocess's stdin
        env: Extra environment variables layered over get_subprocess_env()

    Returns:
        CompletedProcess instance with attributes args, returncode, stdout, stderr.
        Output is decoded as UTF-8, undecodable bytes are replaced.

    Raises:
        RuntimeError: If check=True and process returns non-zero exit code
        OSError: If the executable cannot be started
        ValueError: If an argument contains a NUL byte
    """
    # Log the command being run at INFO level, the final argument can be a
    # whole prompt so keep the line bounded
    log_cmd = " ".join(str(c) for c in cmd)
    if len(log_cmd) > 200:
        log_cmd = log_cmd[:200] + "..."
    logging.info(f"Running command: {log_cmd}")

    stdout_pipe = asyncio.subprocess.PIPE if capture_output else None
    stderr_pipe = asyncio.subprocess.PIPE if capture_output else None
    stdin_pipe = asyncio.subprocess.PIPE if input is not None else None

    input_bytes = None
    if input is not None:
        input_bytes = input.encode()

    process = await asyncio.create_subprocess_exec(
        *cmd,
        cwd=cwd,
        env=_build_env(env),
        stdout=stdout_pipe,
        stderr=stderr_pipe,
        stdin=stdin_pipe,
    )

    stdout_data, stderr_data = await process.communicate(input=input_bytes)

    stdout = ""
    stderr = ""
    if capture_output:
        if stdout_data:
            stdout = stdout_data.decode("utf-8", errors="replace")
            logging.debug(f"Command stdout: {stdout}")
        if stderr_data:
            stderr = stderr_data.decode("utf-8", errors="replace")
            logging.debug(f"Command stderr: {stderr}")

    returncode = process.returncode
    logging.debug(f"Command return code: {returncode}")

    result = subprocess.CompletedProcess[str](
        args=cmd,
        returncode=0 if returncode is None else returncode,
        stdout=stdout,
        stderr=stderr,
    )

    if check and result.returncode != 0:
        error_message = f"Command failed with exit code {result.returncode}: {' '.join(str(c) for c in cmd)}"
        if result.stdout:
            error_message += f"\nStdout: {result.stdout}"
        if result.stderr:
            error_message += f"\nStderr: {result.stderr}"
        raise RuntimeError(error_message)

    return result
