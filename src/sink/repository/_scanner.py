"""Repository discovery on the local filesystem.

Scan roots are walked at most ``max_depth`` levels deep. A directory holding
``.git`` (a directory, or a file for linked worktrees) is a repository and
is not descended into. Dot-directories and configured names are skipped.
"""

import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import final

import anyio
import anyio.to_thread
from structlog.typing import FilteringBoundLogger

from sink.config import ScanConfig
from sink.exceptions import RepositoryNotFoundError
from sink.repository._models import RepositoryIdentity
from sink.utils import get_logger
from sink.utils._git._common import is_git_worktree


def _walk(
    directory: Path,
    *,
    ignore: frozenset[str],
    depth: int,
    max_depth: int,
    found: list[Path],
) -> None:
    if is_git_worktree(directory):
        found.append(directory)
        return
    if depth >= max_depth:
        return

    try:
        children = sorted(directory.iterdir())
    except OSError:
        return

    for child in children:
        if child.name.startswith(".") or child.name in ignore:
            continue
        try:
            if not child.is_dir():
                continue
        except OSError:
            continue
        _walk(child, ignore=ignore, depth=depth + 1, max_depth=max_depth, found=found)


def discover_repositories(
    roots: Iterable[Path],
    *,
    ignore: Iterable[str] = (),
    manual_repos: Iterable[Path] = (),
    max_depth: int = 4,
) -> list[RepositoryIdentity]:
    """Find git working copies below the given roots.

    Args:
        roots: Directories to walk. Missing roots are skipped.
        ignore: Directory names never entered.
        manual_repos: Working copies included even outside the roots.
        max_depth: How many levels below a root are examined.

    Returns:
        Identities in discovery order, unique by absolute path.
    """
    ignored = frozenset(ignore)
    found: list[Path] = []

    for root in roots:
        resolved = root.expanduser().resolve()
        if resolved.is_dir():
            _walk(resolved, ignore=ignored, depth=0, max_depth=max_depth, found=found)

    for manual in manual_repos:
        resolved = manual.expanduser().resolve()
        if resolved.is_dir() and is_git_worktree(resolved):
            found.append(resolved)

    seen: set[Path] = set()
    identities: list[RepositoryIdentity] = []
    for path in found:
        if path in seen:
            continue
        seen.add(path)
        identities.append(RepositoryIdentity.from_path(path))
    return identities


@final
class RepositoryScanner:
    """Caches the set of repositories found on this machine.

    A scan result is reused for ``cache_seconds`` unless a forced scan is
    requested. Concurrent callers share a single walk.
    """

    def __init__(
        self,
        config: ScanConfig,
        *,
        logger: FilteringBoundLogger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._logger = logger or get_logger("scanner")
        self._clock = clock
        self._lock = anyio.Lock()
        self._repositories: tuple[RepositoryIdentity, ...] = ()
        self._by_id: dict[str, RepositoryIdentity] = {}
        self._scanned_at: float | None = None

    @property
    def repositories(self) -> tuple[RepositoryIdentity, ...]:
        """Return the result of the last scan."""
        return self._repositories

    def _is_fresh(self) -> bool:
        if self._scanned_at is None:
            return False
        return self._clock() - self._scanned_at < self._config.cache_seconds

    async def scan(self, *, force: bool = False) -> tuple[RepositoryIdentity, ...]:
        """Return the repositories on this machine, rescanning if stale.

        Args:
            force: Ignore the cached result.

        Returns:
            The current repository identities.
        """
        async with self._lock:
            if not force and self._is_fresh():
                return self._repositories

            started = self._clock()
            identities = await anyio.to_thread.run_sync(
                lambda: discover_repositories(
                    self._config.paths,
                    ignore=self._config.ignore,
                    manual_repos=self._config.manual_repos,
                    max_depth=self._config.max_depth,
                )
            )
            self._repositories = tuple(identities)
            self._by_id = {identity.id: identity for identity in identities}
            self._scanned_at = self._clock()
            self._logger.info(
                "scan_completed",
                repositories=len(identities),
                elapsed=round(self._scanned_at - started, 3),
            )
            return self._repositories

    def get(self, repo_id: str) -> RepositoryIdentity:
        """Look up a repository from the last scan.

        Raises:
            RepositoryNotFoundError: If the id is unknown.
        """
        try:
            return self._by_id[repo_id]
        except KeyError:
            msg = f"Repository not found: {repo_id}"
            raise RepositoryNotFoundError(msg, repo_id=repo_id) from None

    def find_by_path(self, path: str | Path) -> RepositoryIdentity | None:
        """Return the repository at an absolute path, if scanned."""
        target = str(Path(path).expanduser().resolve())
        return next((r for r in self._repositories if r.path == target), None)
