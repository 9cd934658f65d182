"""Mutating git operations.

Git failures are not HTTP errors: every route answers 200 with a
GitOperationResult whose ``success`` is False and whose message is git's
error output.
"""

from fastapi import APIRouter

from sink.server._deps import RepositoryPathDep
from sink.server._schemas import (
    BranchRequest,
    CommitRequest,
    FileRequest,
    RebaseRequest,
    ResetRequest,
    StashRequest,
)
from sink.utils._git import GitOperationResult, operations

router = APIRouter(prefix="/repos/{repo_id}", tags=["git"])


@router.post("/pull")
async def pull(path: RepositoryPathDep) -> GitOperationResult:
    return await operations.pull(path)


@router.post("/push")
async def push(path: RepositoryPathDep) -> GitOperationResult:
    return await operations.push(path)


@router.post("/fetch")
async def fetch(path: RepositoryPathDep) -> GitOperationResult:
    return await operations.fetch(path)


@router.post("/checkout")
async def checkout(path: RepositoryPathDep, body: BranchRequest) -> GitOperationResult:
    return await operations.checkout(path, body.branch)


@router.post("/rebase")
async def rebase(path: RepositoryPathDep, body: RebaseRequest | None = None) -> GitOperationResult:
    return await operations.rebase(path, body.branch if body else None)


@router.post("/rebase/abort")
async def rebase_abort(path: RepositoryPathDep) -> GitOperationResult:
    return await operations.rebase_abort(path)


@router.post("/rebase/continue")
async def rebase_continue(path: RepositoryPathDep) -> GitOperationResult:
    return await operations.rebase_continue(path)


@router.post("/merge/abort")
async def merge_abort(path: RepositoryPathDep) -> GitOperationResult:
    return await operations.merge_abort(path)


@router.post("/merge/continue")
async def merge_continue(path: RepositoryPathDep) -> GitOperationResult:
    return await operations.merge_continue(path)


@router.post("/stash")
async def stash(path: RepositoryPathDep, body: StashRequest | None = None) -> GitOperationResult:
    return await operations.stash(path, body.message if body else None)


@router.post("/stash/pop")
async def stash_pop(path: RepositoryPathDep) -> GitOperationResult:
    return await operations.stash_pop(path)


@router.post("/reset")
async def reset(path: RepositoryPathDep, body: ResetRequest | None = None) -> GitOperationResult:
    return await operations.reset(path, hard=body.hard if body else False)


@router.post("/stage")
async def stage(path: RepositoryPathDep) -> GitOperationResult:
    return await operations.stage_all(path)


@router.post("/commit")
async def commit(path: RepositoryPathDep, body: CommitRequest) -> GitOperationResult:
    return await operations.commit(path, body.message)


@router.post("/commit-all")
async def commit_all(path: RepositoryPathDep, body: CommitRequest) -> GitOperationResult:
    return await operations.stage_and_commit(path, body.message)


@router.post("/conflicts/resolve-ours")
async def resolve_ours(path: RepositoryPathDep, body: FileRequest) -> GitOperationResult:
    return await operations.resolve_conflict(path, body.file, "ours")


@router.post("/conflicts/resolve-theirs")
async def resolve_theirs(path: RepositoryPathDep, body: FileRequest) -> GitOperationResult:
    return await operations.resolve_conflict(path, body.file, "theirs")


@router.post("/conflicts/mark-resolved")
async def mark_resolved(path: RepositoryPathDep, body: FileRequest) -> GitOperationResult:
    return await operations.mark_resolved(path, body.file)
