"""Git status collection.

Status comes from ``git status --porcelain=v2 --branch``, which reports
branch, upstream, ahead/behind and per-path state (including unmerged
entries) in one machine-readable call. In-progress merge and rebase are read
from marker files in the git directory.
"""

from dataclasses import dataclass, field
from pathlib import Path

from sink.exceptions import GitCommandError
from sink.repository._models import RepositoryStatus
from sink.utils._git._common import resolve_git_dir, run_git

_DETACHED = "(detached)"


@dataclass(slots=True)
class PorcelainStatus:
    """Parsed ``git status --porcelain=v2 --branch`` output.

    All paths are repository-relative strings.

    Attributes:
        branch: Branch name, or None when HEAD is detached.
        upstream: Upstream tracking ref, or None.
        ahead: Commits ahead of upstream.
        behind: Commits behind upstream.
        staged: Paths with index changes.
        modified: Paths with worktree changes (including deletions).
        untracked: Untracked paths.
        conflicted: Paths with unmerged entries.
    """

    branch: str | None = None
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    staged: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)
    conflicted: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        """Return True when no path is in any non-clean state."""
        return not (self.staged or self.modified or self.untracked or self.conflicted)


def _parse_header(status: PorcelainStatus, line: str) -> None:
    key, _, value = line[2:].partition(" ")
    if key == "branch.head":
        status.branch = None if value == _DETACHED else value
    elif key == "branch.upstream":
        status.upstream = value
    elif key == "branch.ab":
        ahead, _, behind = value.partition(" ")
        status.ahead = int(ahead.lstrip("+") or 0)
        status.behind = abs(int(behind or 0))


def _record_change(status: PorcelainStatus, xy: str, path: str) -> None:
    index_state, worktree_state = xy[0], xy[1]
    if index_state != ".":
        status.staged.append(path)
    if worktree_state != ".":
        status.modified.append(path)


def parse_porcelain_v2(output: str) -> PorcelainStatus:
    """Parse ``git status --porcelain=v2 --branch`` output.

    Args:
        output: Raw command output (newline separated, not ``-z``).

    Returns:
        The parsed status.
    """
    status = PorcelainStatus()
    for line in output.splitlines():
        if not line:
            continue
        kind = line[0]
        if kind == "#":
            _parse_header(status, line)
        elif kind == "1":
            parts = line.split(" ", 8)
            _record_change(status, parts[1], parts[8])
        elif kind == "2":
            parts = line.split(" ", 9)
            path = parts[9].split("\t", 1)[0]
            _record_change(status, parts[1], path)
        elif kind == "u":
            parts = line.split(" ", 10)
            status.conflicted.append(parts[10])
        elif kind == "?":
            status.untracked.append(line[2:])
        # "!" (ignored) entries are not requested and not counted
    return status


def count_stashes(output: str) -> int:
    """Count entries in ``git stash list`` output."""
    return sum(1 for line in output.splitlines() if line.strip())


def in_progress_flags(git_dir: Path | None) -> tuple[bool, bool]:
    """Return (merge_in_progress, rebase_in_progress) from git-dir markers."""
    if git_dir is None:
        return False, False
    merge = (git_dir / "MERGE_HEAD").exists()
    rebase = (
        (git_dir / "rebase-merge").is_dir()
        or (git_dir / "rebase-apply").is_dir()
        or (git_dir / "REBASE_HEAD").exists()
    )
    return merge, rebase


def build_repository_status(
    parsed: PorcelainStatus,
    *,
    stashes: int = 0,
    merge_in_progress: bool = False,
    rebase_in_progress: bool = False,
) -> RepositoryStatus:
    """Convert parsed porcelain output into the wire status model."""
    return RepositoryStatus(
        branch=parsed.branch or "HEAD",
        ahead=parsed.ahead,
        behind=parsed.behind,
        staged=len(parsed.staged),
        modified=len(parsed.modified),
        untracked=len(parsed.untracked),
        stashes=stashes,
        is_clean=parsed.is_clean,
        has_remote=parsed.upstream is not None,
        conflicted=len(parsed.conflicted),
        conflicted_files=tuple(parsed.conflicted),
        merge_in_progress=merge_in_progress,
        rebase_in_progress=rebase_in_progress,
    )


async def read_porcelain_status(path: Path) -> PorcelainStatus:
    """Run and parse ``git status`` for a working copy.

    Raises:
        GitCommandError: If git fails.
    """
    output = await run_git(
        ("status", "--porcelain=v2", "--branch", "--untracked-files=normal"),
        cwd=path,
    )
    return parse_porcelain_v2(output)


async def get_repository_status(path: Path) -> RepositoryStatus:
    """Collect the full status of a working copy.

    Args:
        path: The working copy root.

    Returns:
        A fresh RepositoryStatus.

    Raises:
        GitCommandError: If ``git status`` fails.
    """
    parsed = await read_porcelain_status(path)
    try:
        stashes = count_stashes(await run_git(("stash", "list"), cwd=path))
    except GitCommandError:
        stashes = 0
    merge, rebase = in_progress_flags(resolve_git_dir(path))
    return build_repository_status(
        parsed,
        stashes=stashes,
        merge_in_progress=merge,
        rebase_in_progress=rebase,
    )
