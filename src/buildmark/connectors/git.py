"""Async wrapper for local git commands.

Commands are executed without a shell; arguments are passed as a list so
tag names cannot be interpreted by a shell. Tag names and ids are still
validated before use because a value starting with "-" would be read as
an option by git.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

from buildmark.exceptions import ConnectorError

TAG_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9._/+][a-zA-Z0-9._/+-]*$")
NUMERIC_ID_PATTERN = re.compile(r"^\d+$")


def validate_tag(tag: str) -> str:
    """Return tag unchanged, or raise ValueError if it is not a safe ref name."""
    if not TAG_NAME_PATTERN.match(tag):
        raise ValueError(f"Invalid tag name: {tag!r}")
    return tag


def validate_id(value: str) -> str:
    """Return value unchanged, or raise ValueError if it is not numeric."""
    if not NUMERIC_ID_PATTERN.match(value):
        raise ValueError(f"Invalid id: {value!r}")
    return value


async def run_git(*args: str, cwd: str | Path = ".") -> str:
    """Run a git command and return its stripped stdout.

    Args:
        *args: Arguments after "git"
        cwd: Working directory (the repository checkout)

    Returns:
        Command output with trailing whitespace removed

    Raises:
        ConnectorError: If git is missing or exits with a non-zero status
    """
    command = " ".join(("git", *args))
    try:
        process = await asyncio.create_subprocess_exec(
            "git",
            *args,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ConnectorError(
            f"Could not run '{command}': {exc}", operation="git"
        ) from exc

    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        error = stderr.decode(errors="replace").strip()
        raise ConnectorError(
            f"Command '{command}' failed with exit code {process.returncode}: {error}",
            operation="git",
            stderr=error,
        )
    return stdout.decode(errors="replace").rstrip()

