"""Commit history reading using dulwich.

Reads commits straight from the object store, so history queries never
spawn a git process. All functions are blocking; async callers run them in
a worker thread.
"""

# ruff: noqa: TC002, TC003  # Path and Repo needed at runtime
from pathlib import Path

import pendulum
from dulwich.errors import NotGitRepository
from dulwich.objects import Commit
from dulwich.repo import Repo

from sink.repository._models import LatestCommit
from sink.utils._git._common import decode_bytes

SHORT_HASH_LENGTH = 7


def _author_name(author: bytes) -> str:
    """Strip the ``<email>`` part from a git identity line."""
    name, _, _ = decode_bytes(author).partition(" <")
    return name.strip()


def commit_to_model(commit: Commit) -> LatestCommit:
    """Convert a dulwich commit into the wire model.

    Args:
        commit: The commit object.

    Returns:
        LatestCommit with the summary line as message and epoch-millis time.
    """
    sha = decode_bytes(commit.id)
    message = decode_bytes(commit.message).strip()
    summary = message.splitlines()[0] if message else ""
    author_time: int = commit.author_time
    return LatestCommit(
        hash=sha,
        short_hash=sha[:SHORT_HASH_LENGTH],
        message=summary,
        author=_author_name(commit.author),
        date=pendulum.from_timestamp(author_time, tz="UTC").to_iso8601_string(),
        timestamp=author_time * 1000,
    )


def read_log(path: Path, limit: int = 20) -> list[LatestCommit]:
    """Read the most recent commits reachable from HEAD.

    Args:
        path: The working copy root.
        limit: Maximum number of commits to return.

    Returns:
        Commits newest first. Empty for a repository without commits or a
        path that is not a repository.
    """
    try:
        repo = Repo(str(path))
    except NotGitRepository:
        return []

    try:
        try:
            head = repo.head()
        except KeyError:
            return []
        walker = repo.get_walker(include=[head], max_entries=limit)
        return [commit_to_model(entry.commit) for entry in walker]
    finally:
        repo.close()


def read_latest_commit(path: Path) -> LatestCommit | None:
    """Return the commit HEAD points at, or None if there are no commits."""
    commits = read_log(path, limit=1)
    return commits[0] if commits else None
