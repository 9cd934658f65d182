"""Data models for repositories and their snapshots.

These are the wire types exchanged between Sink nodes. Attributes are
snake_case in Python and camelCase on the wire (``isClean``,
``latestCommit``), so nodes and browser clients share one JSON shape.
"""

import hashlib
from pathlib import Path
from typing import ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

REPOSITORY_ID_LENGTH = 12


def repository_id(path: str | Path) -> str:
    """Compute the stable identifier for a repository path.

    The id is the first 12 hex digits of the SHA-256 of the absolute path
    string. It depends on nothing but the path, so rescans reproduce it.

    Args:
        path: Absolute path of the working copy.

    Returns:
        The repository id.
    """
    digest = hashlib.sha256(str(path).encode("utf-8")).hexdigest()
    return digest[:REPOSITORY_ID_LENGTH]


class WireModel(BaseModel):
    """Base for immutable camelCase wire models."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, object]:
        """Serialize with wire aliases to JSON-compatible values."""
        return self.model_dump(mode="json", by_alias=True)


class RepositoryIdentity(WireModel):
    """Identity of one working copy on one machine.

    Attributes:
        id: Stable hash of the absolute path.
        name: Display label (the directory name).
        path: Absolute filesystem path.
    """

    id: str
    name: str
    path: str

    @classmethod
    def from_path(cls, path: str | Path) -> Self:
        """Build an identity for an absolute working-copy path."""
        resolved = Path(path)
        return cls(id=repository_id(resolved), name=resolved.name, path=str(resolved))


class RepositoryStatus(WireModel):
    """Working-copy status at one point in time.

    Attributes:
        branch: Current branch, or "HEAD" when detached.
        ahead: Commits not yet on the upstream.
        behind: Upstream commits not yet merged.
        staged: Number of staged paths.
        modified: Number of modified or deleted unstaged paths.
        untracked: Number of untracked paths.
        stashes: Number of stash entries.
        is_clean: True when nothing is staged, modified, untracked or conflicted.
        has_remote: True when the branch tracks an upstream.
        conflicted: Number of paths with unresolved conflicts.
        conflicted_files: Repository-relative paths with unresolved conflicts.
        merge_in_progress: A merge is stopped waiting for resolution.
        rebase_in_progress: A rebase is stopped waiting for resolution.
    """

    branch: str = "HEAD"
    ahead: int = 0
    behind: int = 0
    staged: int = 0
    modified: int = 0
    untracked: int = 0
    stashes: int = 0
    is_clean: bool = True
    has_remote: bool = False
    conflicted: int = 0
    conflicted_files: tuple[str, ...] = ()
    merge_in_progress: bool = False
    rebase_in_progress: bool = False


class LatestCommit(WireModel):
    """The most recent commit on the checked-out branch.

    Attributes:
        hash: Full commit id.
        short_hash: First seven characters of the commit id.
        message: Commit message summary line.
        author: Author name.
        date: ISO 8601 author date for display.
        timestamp: Author time in epoch milliseconds.
    """

    hash: str
    short_hash: str
    message: str
    author: str
    date: str
    timestamp: int


class RepositorySnapshot(RepositoryIdentity):
    """Identity plus status and latest commit; the unit exchanged between machines.

    ``status`` is None when status collection failed. ``error`` then says why.
    """

    status: RepositoryStatus | None = None
    latest_commit: LatestCommit | None = None
    error: str | None = Field(default=None)

    @property
    def identity(self) -> RepositoryIdentity:
        """Return the identity part of the snapshot."""
        return RepositoryIdentity(id=self.id, name=self.name, path=self.path)

    @property
    def commit_timestamp(self) -> int | None:
        """Return the latest commit timestamp, or None without commits."""
        if self.latest_commit is None:
            return None
        return self.latest_commit.timestamp
