"""Common git utility functions.

This module provides shared helpers used by the git status, history and
operation modules: git directory resolution, byte/string conversion and the
subprocess runner every git command goes through.
"""

import os
from pathlib import Path

import anyio

from sink.exceptions import GitCommandError

# Default timeout for a single git subprocess, in seconds
DEFAULT_GIT_TIMEOUT: float = 60.0

_GIT_ENV = {
    "GIT_TERMINAL_PROMPT": "0",
    "LC_ALL": "C",
}


def decode_bytes(value: bytes | str) -> str:
    """Decode bytes to str if needed.

    Args:
        value: A bytes or str value.

    Returns:
        The value as a string.
    """
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def resolve_git_dir(worktree: Path) -> Path | None:
    """Locate the git metadata directory for a working copy.

    Handles both a regular ``.git`` directory and the ``.git`` file that
    linked worktrees and submodules use (``gitdir: <path>``).

    Args:
        worktree: The working copy root.

    Returns:
        Path to the metadata directory, or None if there is none.
    """
    dot_git = worktree / ".git"
    if dot_git.is_dir():
        return dot_git
    if dot_git.is_file():
        try:
            content = dot_git.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        if content.startswith("gitdir:"):
            target = Path(content.removeprefix("gitdir:").strip())
            if not target.is_absolute():
                target = (worktree / target).resolve()
            return target if target.is_dir() else None
    return None


def is_git_worktree(path: Path) -> bool:
    """Return True if the directory is the root of a git working copy."""
    return resolve_git_dir(path) is not None


async def run_git(
    args: tuple[str, ...] | list[str],
    *,
    cwd: Path | str,
    timeout: float = DEFAULT_GIT_TIMEOUT,  # noqa: ASYNC109
) -> str:
    """Run a git command and return its standard output.

    Args:
        args: Arguments after ``git``.
        cwd: Working directory for the command.
        timeout: Seconds before the process is abandoned.

    Returns:
        Decoded standard output.

    Raises:
        GitCommandError: If git cannot be started, times out, or exits
            with a non-zero status.
    """
    command = tuple(args)
    env = {**os.environ, **_GIT_ENV}
    try:
        with anyio.fail_after(timeout):
            result = await anyio.run_process(
                ["git", *command],
                cwd=cwd,
                env=env,
                check=False,
            )
    except TimeoutError as e:
        msg = f"git {' '.join(command)} timed out after {timeout}s"
        raise GitCommandError(msg, command=command) from e
    except OSError as e:
        msg = f"Failed to run git: {e}"
        raise GitCommandError(msg, command=command) from e

    stdout = decode_bytes(result.stdout)
    stderr = decode_bytes(result.stderr)
    if result.returncode != 0:
        detail = stderr.strip() or stdout.strip() or f"exit code {result.returncode}"
        raise GitCommandError(
            detail,
            command=command,
            exit_code=result.returncode,
            stderr=stderr,
        )
    return stdout
