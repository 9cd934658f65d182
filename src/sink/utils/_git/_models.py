"""Result models for git operations."""

from sink.repository._models import WireModel


class GitOperationResult(WireModel):
    """Outcome of a mutating git operation.

    Attributes:
        success: Whether git exited successfully.
        message: Human-readable summary or git's error output.
        data: Optional operation-specific payload.
    """

    success: bool
    message: str
    data: object | None = None


class BranchInfo(WireModel):
    """A local branch and its upstream tracking state."""

    name: str
    current: bool
    tracking: str | None = None
    ahead: int = 0
    behind: int = 0


class StashEntry(WireModel):
    """One entry of ``git stash list``."""

    index: int
    message: str


class ChangedFiles(WireModel):
    """Repository-relative paths grouped by working-copy state."""

    staged: tuple[str, ...] = ()
    modified: tuple[str, ...] = ()
    untracked: tuple[str, ...] = ()
    conflicted: tuple[str, ...] = ()


class ConflictedFileContent(WireModel):
    """The three versions of a conflicted file.

    Attributes:
        path: Repository-relative path.
        ours: Content from the current branch, or None if absent there.
        theirs: Content from the branch being merged, or None if absent there.
        merged: Working-tree content with conflict markers.
    """

    path: str
    ours: str | None = None
    theirs: str | None = None
    merged: str = ""
