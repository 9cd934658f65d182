"""Snapshot collection for local repositories.

``collect_snapshot`` never raises: a failed status query yields a snapshot
with ``status=None`` and the failure in ``error``, so one broken working
copy never hides the others.
"""

from collections.abc import Iterable
from pathlib import Path

import anyio
import anyio.to_thread
from structlog.typing import FilteringBoundLogger

from sink.exceptions import GitCommandError
from sink.repository._models import LatestCommit, RepositoryIdentity, RepositorySnapshot
from sink.utils import get_logger
from sink.utils._git._history import read_latest_commit
from sink.utils._git._status import get_repository_status

DEFAULT_CONCURRENCY = 8


async def _latest_commit(path: Path, logger: FilteringBoundLogger) -> LatestCommit | None:
    try:
        return await anyio.to_thread.run_sync(read_latest_commit, path)
    except (OSError, KeyError, ValueError) as e:
        logger.warning("latest_commit_failed", path=str(path), error=str(e))
        return None


async def collect_snapshot(
    identity: RepositoryIdentity,
    *,
    logger: FilteringBoundLogger | None = None,
) -> RepositorySnapshot:
    """Collect a fresh snapshot of one working copy.

    Args:
        identity: The repository to query.
        logger: Logger for failures. Defaults to a stderr logger.

    Returns:
        The snapshot; ``status`` is None if git status failed.
    """
    log = logger or get_logger("status")
    path = Path(identity.path)

    try:
        status = await get_repository_status(path)
    except GitCommandError as e:
        log.warning("status_unavailable", repo_id=identity.id, path=identity.path, error=str(e))
        return RepositorySnapshot(
            id=identity.id,
            name=identity.name,
            path=identity.path,
            status=None,
            latest_commit=await _latest_commit(path, log),
            error=str(e) or "Status unavailable",
        )

    return RepositorySnapshot(
        id=identity.id,
        name=identity.name,
        path=identity.path,
        status=status,
        latest_commit=await _latest_commit(path, log),
    )


async def collect_snapshots(
    identities: Iterable[RepositoryIdentity],
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    logger: FilteringBoundLogger | None = None,
) -> list[RepositorySnapshot]:
    """Collect snapshots for many repositories concurrently.

    Returns:
        Snapshots in the order of ``identities``.
    """
    ordered = list(identities)
    results: list[RepositorySnapshot | None] = [None] * len(ordered)
    limiter = anyio.CapacityLimiter(concurrency)

    async def _collect(index: int, identity: RepositoryIdentity) -> None:
        async with limiter:
            results[index] = await collect_snapshot(identity, logger=logger)

    async with anyio.create_task_group() as tg:
        for index, identity in enumerate(ordered):
            tg.start_soon(_collect, index, identity)

    return [snapshot for snapshot in results if snapshot is not None]
