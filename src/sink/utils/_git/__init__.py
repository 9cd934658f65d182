"""Git utilities for Sink.

This package provides git-related utilities: status collection, commit
history, and the thin per-operation wrappers behind the HTTP surface.
"""

from sink.utils._git import _operations as operations
from sink.utils._git._common import (
    decode_bytes,
    is_git_worktree,
    resolve_git_dir,
    run_git,
)
from sink.utils._git._history import commit_to_model, read_latest_commit, read_log
from sink.utils._git._models import (
    BranchInfo,
    ChangedFiles,
    ConflictedFileContent,
    GitOperationResult,
    StashEntry,
)
from sink.utils._git._status import (
    PorcelainStatus,
    build_repository_status,
    count_stashes,
    get_repository_status,
    in_progress_flags,
    parse_porcelain_v2,
)

__all__ = [
    "BranchInfo",
    "ChangedFiles",
    "ConflictedFileContent",
    "GitOperationResult",
    "PorcelainStatus",
    "StashEntry",
    "build_repository_status",
    "commit_to_model",
    "count_stashes",
    "decode_bytes",
    "get_repository_status",
    "in_progress_flags",
    "is_git_worktree",
    "operations",
    "parse_porcelain_v2",
    "read_latest_commit",
    "read_log",
    "resolve_git_dir",
    "run_git",
]
