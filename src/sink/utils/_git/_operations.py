"""Per-operation git wrappers.

Each function runs one git command in a working copy. Mutating operations
never raise for git failures: they return a GitOperationResult with
``success=False`` and git's error output as the message. Query functions
raise GitCommandError.
"""

import re
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Literal

from sink.exceptions import GitCommandError, PathOutsideRepositoryError
from sink.utils._git._common import run_git
from sink.utils._git._models import (
    BranchInfo,
    ChangedFiles,
    ConflictedFileContent,
    GitOperationResult,
    StashEntry,
)
from sink.utils._git._status import read_porcelain_status

ConflictSide = Literal["ours", "theirs"]

_TRACK_PATTERN = re.compile(r"(ahead|behind) (\d+)")
_STASH_PATTERN = re.compile(r"^stash@\{(\d+)\}: (.*)$")


async def _attempt(
    action: Callable[[], Awaitable[str]],
    success_message: str | Callable[[str], str],
    failure_message: str,
) -> GitOperationResult:
    try:
        output = await action()
    except GitCommandError as e:
        return GitOperationResult(success=False, message=str(e) or failure_message)

    if callable(success_message):
        return GitOperationResult(success=True, message=success_message(output))
    return GitOperationResult(success=True, message=success_message)


def _pull_message(output: str) -> str:
    if "Already up to date" in output:
        return "Already up to date"
    return "Pulled changes"


async def pull(path: Path) -> GitOperationResult:
    """Pull the upstream of the current branch."""
    return await _attempt(lambda: run_git(("pull",), cwd=path), _pull_message, "Pull failed")


async def push(path: Path) -> GitOperationResult:
    """Push the current branch to its upstream."""
    return await _attempt(
        lambda: run_git(("push",), cwd=path), "Pushed successfully", "Push failed"
    )


async def fetch(path: Path) -> GitOperationResult:
    """Fetch all remotes, pruning deleted branches."""
    return await _attempt(
        lambda: run_git(("fetch", "--all", "--prune"), cwd=path),
        "Fetched successfully",
        "Fetch failed",
    )


async def checkout(path: Path, branch: str) -> GitOperationResult:
    """Check out an existing branch."""
    return await _attempt(
        lambda: run_git(("checkout", branch), cwd=path),
        f"Checked out {branch}",
        "Checkout failed",
    )


async def rebase(path: Path, branch: str | None = None) -> GitOperationResult:
    """Rebase onto a branch, or onto the upstream when no branch is given."""
    args = ("rebase", branch) if branch else ("rebase",)
    return await _attempt(
        lambda: run_git(args, cwd=path),
        f"Rebased onto {branch}" if branch else "Rebased successfully",
        "Rebase failed",
    )


async def rebase_abort(path: Path) -> GitOperationResult:
    """Abort a rebase in progress."""
    return await _attempt(
        lambda: run_git(("rebase", "--abort"), cwd=path), "Rebase aborted", "Abort failed"
    )


async def merge_abort(path: Path) -> GitOperationResult:
    """Abort a merge in progress."""
    return await _attempt(
        lambda: run_git(("merge", "--abort"), cwd=path), "Merge aborted", "Abort failed"
    )


async def stash(path: Path, message: str | None = None) -> GitOperationResult:
    """Stash working-copy changes."""
    args = ("stash", "push", "-m", message) if message else ("stash", "push")
    return await _attempt(lambda: run_git(args, cwd=path), "Stashed changes", "Stash failed")


async def stash_pop(path: Path) -> GitOperationResult:
    """Apply and drop the most recent stash."""
    return await _attempt(
        lambda: run_git(("stash", "pop"), cwd=path), "Popped stash", "Stash pop failed"
    )


async def stash_list(path: Path) -> list[StashEntry]:
    """List stash entries, newest first. Returns [] if git fails."""
    try:
        output = await run_git(("stash", "list"), cwd=path)
    except GitCommandError:
        return []

    entries: list[StashEntry] = []
    for line in output.splitlines():
        match = _STASH_PATTERN.match(line)
        if match is not None:
            entries.append(StashEntry(index=int(match.group(1)), message=match.group(2)))
    return entries


async def reset(path: Path, *, hard: bool = False) -> GitOperationResult:
    """Reset the index (and with ``hard`` the working tree) to HEAD."""
    args = ("reset", "--hard", "HEAD") if hard else ("reset", "HEAD")
    return await _attempt(
        lambda: run_git(args, cwd=path),
        "Hard reset to HEAD" if hard else "Reset to HEAD",
        "Reset failed",
    )


async def stage_all(path: Path) -> GitOperationResult:
    """Stage every change, including deletions and untracked files."""
    return await _attempt(
        lambda: run_git(("add", "-A"), cwd=path), "Staged all changes", "Stage failed"
    )


async def commit(path: Path, message: str) -> GitOperationResult:
    """Commit the staged changes."""

    async def _commit() -> str:
        await run_git(("commit", "-m", message), cwd=path)
        return await run_git(("rev-parse", "--short", "HEAD"), cwd=path)

    return await _attempt(
        _commit, lambda sha: f"Committed: {sha.strip()}", "Commit failed"
    )


async def stage_and_commit(path: Path, message: str) -> GitOperationResult:
    """Stage everything, then commit."""
    staged = await stage_all(path)
    if not staged.success:
        return staged
    return await commit(path, message)


async def resolve_conflict(
    path: Path, file_path: str, side: ConflictSide
) -> GitOperationResult:
    """Resolve one conflicted file by taking our or their version, then stage it."""

    async def _resolve() -> str:
        await run_git(("checkout", f"--{side}", "--", file_path), cwd=path)
        return await run_git(("add", "--", file_path), cwd=path)

    return await _attempt(
        _resolve, f"Resolved {file_path} using {side}", "Conflict resolution failed"
    )


async def mark_resolved(path: Path, file_path: str) -> GitOperationResult:
    """Stage a conflicted file after it was resolved by hand."""
    return await _attempt(
        lambda: run_git(("add", "--", file_path), cwd=path),
        f"Marked {file_path} as resolved",
        "Mark resolved failed",
    )


async def merge_continue(path: Path) -> GitOperationResult:
    """Conclude a merge whose conflicts are all resolved."""
    return await _attempt(
        lambda: run_git(("commit", "--no-edit"), cwd=path),
        "Merge completed",
        "Merge continue failed",
    )


async def rebase_continue(path: Path) -> GitOperationResult:
    """Continue a rebase whose conflicts are all resolved."""
    return await _attempt(
        lambda: run_git(("-c", "core.editor=true", "rebase", "--continue"), cwd=path),
        "Rebase continued",
        "Rebase continue failed",
    )


async def _stage_content(path: Path, stage: int, file_path: str) -> str | None:
    try:
        return await run_git(("show", f":{stage}:{file_path}"), cwd=path)
    except GitCommandError:
        return None


async def conflicted_file_content(path: Path, file_path: str) -> ConflictedFileContent:
    """Return our, their and the merged version of a conflicted file.

    Raises:
        PathOutsideRepositoryError: If ``file_path`` resolves outside ``path``.
    """
    target = (path / file_path).resolve()
    if not target.is_relative_to(path.resolve()):
        msg = f"File path is outside the repository: {file_path}"
        raise PathOutsideRepositoryError(msg, file_path=file_path)

    try:
        merged = target.read_text(encoding="utf-8", errors="replace")
    except OSError:
        merged = ""
    return ConflictedFileContent(
        path=file_path,
        ours=await _stage_content(path, 2, file_path),
        theirs=await _stage_content(path, 3, file_path),
        merged=merged,
    )


async def changed_files(path: Path) -> ChangedFiles:
    """List changed paths by state.

    Raises:
        GitCommandError: If ``git status`` fails.
    """
    parsed = await read_porcelain_status(path)
    return ChangedFiles(
        staged=tuple(parsed.staged),
        modified=tuple(parsed.modified),
        untracked=tuple(parsed.untracked),
        conflicted=tuple(parsed.conflicted),
    )


def parse_branches(output: str) -> list[BranchInfo]:
    """Parse tab-separated ``git for-each-ref`` branch output."""
    branches: list[BranchInfo] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        name, head, upstream, track = (line.split("\t") + ["", "", ""])[:4]
        counts = {kind: int(count) for kind, count in _TRACK_PATTERN.findall(track)}
        branches.append(
            BranchInfo(
                name=name,
                current=head.strip() == "*",
                tracking=upstream or None,
                ahead=counts.get("ahead", 0),
                behind=counts.get("behind", 0),
            )
        )
    return branches


async def branches(path: Path) -> list[BranchInfo]:
    """List local branches with upstream tracking state.

    Raises:
        GitCommandError: If git fails.
    """
    output = await run_git(
        (
            "for-each-ref",
            "--format=%(refname:short)%09%(HEAD)%09%(upstream:short)%09%(upstream:track)",
            "refs/heads",
        ),
        cwd=path,
    )
    return parse_branches(output)


async def commit_diff(path: Path, commit_hash: str) -> str:
    """Return the stat and patch of one commit.

    Raises:
        GitCommandError: If git fails.
    """
    return await run_git(("show", commit_hash, "--stat", "--patch"), cwd=path)


async def working_diff(path: Path) -> str:
    """Return the staged diff followed by the unstaged diff.

    Raises:
        GitCommandError: If git fails.
    """
    staged_diff = await run_git(("diff", "--cached"), cwd=path)
    unstaged_diff = await run_git(("diff",), cwd=path)
    separator = "\n" if staged_diff and unstaged_diff else ""
    return staged_diff + separator + unstaged_diff


async def file_diff(path: Path, file_path: str) -> str:
    """Return the staged diff of one file, or its unstaged diff if not staged."""
    try:
        staged_diff = await run_git(("diff", "--cached", "--", file_path), cwd=path)
        if staged_diff:
            return staged_diff
        return await run_git(("diff", "--", file_path), cwd=path)
    except GitCommandError:
        return ""
