import anyio.to_thread
from fastapi import APIRouter, HTTPException, Query

from sink.exceptions import GitCommandError, PathOutsideRepositoryError
from sink.repository import (
    LatestCommit,
    RepositoryIdentity,
    RepositorySnapshot,
    RepositoryStatus,
    collect_snapshot,
)
from sink.server._deps import NodeDep, RepositoryDep, RepositoryPathDep
from sink.server._schemas import DiffResponse, ScanResponse
from sink.utils._git import (
    BranchInfo,
    ChangedFiles,
    ConflictedFileContent,
    StashEntry,
    get_repository_status,
    operations,
    read_log,
)

router = APIRouter(prefix="/repos", tags=["repos"])


def _git_failure(e: GitCommandError) -> HTTPException:
    return HTTPException(status_code=500, detail=str(e) or "git failed")


@router.get("")
async def list_repos(node: NodeDep) -> list[RepositoryIdentity]:
    return list(await node.scanner.scan())


@router.get("/detailed")
async def list_repos_detailed(node: NodeDep) -> list[RepositorySnapshot]:
    return await node.local_snapshots()


@router.post("/scan")
async def rescan(node: NodeDep) -> ScanResponse:
    repos = await node.rescan()
    return ScanResponse(count=len(repos), repos=repos)


@router.get("/{repo_id}")
async def get_repo(repository: RepositoryDep) -> RepositoryIdentity:
    return repository


@router.get("/{repo_id}/snapshot")
async def get_snapshot(repository: RepositoryDep) -> RepositorySnapshot:
    return await collect_snapshot(repository)


@router.get("/{repo_id}/status")
async def get_status(path: RepositoryPathDep) -> RepositoryStatus:
    try:
        return await get_repository_status(path)
    except GitCommandError as e:
        raise _git_failure(e) from e


@router.get("/{repo_id}/log")
async def get_log(
    path: RepositoryPathDep,
    limit: int = Query(default=20, ge=1, le=500),
) -> list[LatestCommit]:
    return await anyio.to_thread.run_sync(read_log, path, limit)


@router.get("/{repo_id}/branches")
async def get_branches(path: RepositoryPathDep) -> list[BranchInfo]:
    try:
        return await operations.branches(path)
    except GitCommandError as e:
        raise _git_failure(e) from e


@router.get("/{repo_id}/changes")
async def get_changes(path: RepositoryPathDep) -> ChangedFiles:
    try:
        return await operations.changed_files(path)
    except GitCommandError as e:
        raise _git_failure(e) from e


@router.get("/{repo_id}/stash")
async def get_stash(path: RepositoryPathDep) -> list[StashEntry]:
    return await operations.stash_list(path)


@router.get("/{repo_id}/diff")
async def get_working_diff(path: RepositoryPathDep) -> DiffResponse:
    try:
        return DiffResponse(diff=await operations.working_diff(path))
    except GitCommandError as e:
        raise _git_failure(e) from e


@router.get("/{repo_id}/diff/file")
async def get_file_diff(
    path: RepositoryPathDep,
    file: str = Query(min_length=1),
) -> DiffResponse:
    return DiffResponse(diff=await operations.file_diff(path, file))


@router.get("/{repo_id}/commits/{commit_hash}/diff")
async def get_commit_diff(path: RepositoryPathDep, commit_hash: str) -> DiffResponse:
    try:
        return DiffResponse(diff=await operations.commit_diff(path, commit_hash))
    except GitCommandError as e:
        raise _git_failure(e) from e


@router.get("/{repo_id}/conflicts/file")
async def get_conflicted_file(
    path: RepositoryPathDep,
    file: str = Query(min_length=1),
) -> ConflictedFileContent:
    try:
        return await operations.conflicted_file_content(path, file)
    except PathOutsideRepositoryError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
