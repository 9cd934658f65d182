"""Debounced change detection for local repositories.

Each watched repository has its git metadata directory observed with
watchfiles. Only mutations that change what a status query reports are
considered: HEAD, the index, commit/merge/rebase markers, refs and reflogs.
Bursts of such mutations (a commit touches several files) are collapsed
into one change event per repository by a quiet-window timer that restarts
on every trigger.
"""

from collections.abc import AsyncIterator, Callable, Iterable
from pathlib import Path
from typing import final

import anyio
from anyio.abc import TaskGroup, TaskStatus
from structlog.typing import FilteringBoundLogger
from watchfiles import Change, awatch

from sink.exceptions import WatchError
from sink.repository._models import RepositoryIdentity
from sink.utils import Callback, Subscribers, get_logger
from sink.utils._git._common import resolve_git_dir

DEFAULT_DEBOUNCE = 0.3

# First path component, relative to the git dir, of mutations that matter
WATCHED_ENTRIES = frozenset(
    {"HEAD", "index", "COMMIT_EDITMSG", "MERGE_HEAD", "REBASE_HEAD", "refs", "logs"}
)

type ChangeSource = Callable[[Path], AsyncIterator[set[tuple[Change, str]]]]


def is_relevant_change(git_dir: Path, changed_path: str) -> bool:
    """Return True if a path below the git dir affects repository status."""
    changed = Path(changed_path)
    try:
        relative = changed.relative_to(git_dir)
    except ValueError:
        try:
            relative = changed.resolve().relative_to(git_dir.resolve())
        except ValueError:
            return False
    return bool(relative.parts) and relative.parts[0] in WATCHED_ENTRIES


def watchfiles_source(git_dir: Path) -> AsyncIterator[set[tuple[Change, str]]]:
    """Observe a git dir with watchfiles, filtered to relevant entries."""
    return awatch(
        git_dir,
        watch_filter=lambda _change, path: is_relevant_change(git_dir, path),
        recursive=True,
    )


@final
class ChangeWatcher:
    """Watches repositories and announces debounced change events.

    The watcher owns a task group for the lifetime of ``run()``; ``watch()``
    and ``trigger()`` schedule work inside it and may be called from any task
    in the same event loop. Subscribers receive the identity of the changed
    repository.

    Example:
        >>> async with anyio.create_task_group() as tg:
        ...     await tg.start(watcher.run)
        ...     watcher.subscribe(on_change)
        ...     watcher.reconcile(identities)
    """

    def __init__(
        self,
        *,
        debounce: float = DEFAULT_DEBOUNCE,
        logger: FilteringBoundLogger | None = None,
        source: ChangeSource = watchfiles_source,
    ) -> None:
        self._debounce = debounce
        self._logger = logger or get_logger("watcher")
        self._source = source
        self._subscribers: Subscribers[RepositoryIdentity] = Subscribers(
            "repository_changed", self._logger
        )
        self._task_group: TaskGroup | None = None
        self._observers: dict[str, anyio.CancelScope] = {}
        self._timers: dict[str, anyio.CancelScope] = {}
        self._delivery_locks: dict[str, anyio.Lock] = {}

    @property
    def watched(self) -> frozenset[str]:
        """Return the ids of repositories currently observed."""
        return frozenset(self._observers)

    @property
    def pending(self) -> frozenset[str]:
        """Return the ids of repositories with a debounce timer running."""
        return frozenset(self._timers)

    def subscribe(self, callback: Callback[RepositoryIdentity]) -> Callable[[], None]:
        """Register a change callback. Returns the unsubscribe function."""
        return self._subscribers.subscribe(callback)

    async def run(
        self, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED
    ) -> None:
        """Own observation and timer tasks until cancelled."""
        async with anyio.create_task_group() as tg:
            self._task_group = tg
            task_status.started()
            try:
                await anyio.sleep_forever()
            finally:
                self.stop_all()
                self._task_group = None

    def _require_running(self) -> TaskGroup:
        if self._task_group is None:
            msg = "ChangeWatcher is not running"
            raise WatchError(msg)
        return self._task_group

    def watch(self, identity: RepositoryIdentity) -> bool:
        """Start observing a repository.

        Watching an already watched repository is a no-op. A repository
        whose git dir cannot be found is logged and left unwatched.

        Returns:
            True if the repository is being observed afterwards.

        Raises:
            WatchError: If the watcher is not running.
        """
        tg = self._require_running()
        if identity.id in self._observers:
            return True

        git_dir = resolve_git_dir(Path(identity.path))
        if git_dir is None:
            self._logger.warning(
                "watch_skipped",
                repo_id=identity.id,
                path=identity.path,
                reason="git directory not found",
            )
            return False

        scope = anyio.CancelScope()
        self._observers[identity.id] = scope
        tg.start_soon(self._observe, identity, git_dir, scope)
        self._logger.debug("watch_started", repo_id=identity.id, git_dir=str(git_dir))
        return True

    def unwatch(self, repo_id: str) -> None:
        """Stop observing a repository and drop its pending event.

        Unwatching an unknown or already unwatched id is a no-op.
        """
        observer = self._observers.pop(repo_id, None)
        if observer is not None:
            observer.cancel()
            self._logger.debug("watch_stopped", repo_id=repo_id)
        timer = self._timers.pop(repo_id, None)
        if timer is not None:
            timer.cancel()
        self._delivery_locks.pop(repo_id, None)

    def reconcile(self, identities: Iterable[RepositoryIdentity]) -> None:
        """Watch exactly the given repositories.

        New repositories are watched, vanished ones unwatched. Repositories
        that previously failed to watch are retried.
        """
        wanted = {identity.id: identity for identity in identities}
        for repo_id in self._observers.keys() - wanted.keys():
            self.unwatch(repo_id)
        for identity in wanted.values():
            self.watch(identity)

    def stop_all(self) -> None:
        """Unwatch every repository. Subscribers stay registered."""
        for repo_id in list(self._observers.keys() | self._timers.keys()):
            self.unwatch(repo_id)

    def trigger(self, identity: RepositoryIdentity) -> None:
        """Record a mutation, restarting the repository's quiet window.

        Raises:
            WatchError: If the watcher is not running.
        """
        tg = self._require_running()
        previous = self._timers.pop(identity.id, None)
        if previous is not None:
            previous.cancel()

        scope = anyio.CancelScope()
        self._timers[identity.id] = scope
        tg.start_soon(self._deliver_after_quiet, identity, scope)

    async def _deliver_after_quiet(
        self, identity: RepositoryIdentity, scope: anyio.CancelScope
    ) -> None:
        with scope:
            await anyio.sleep(self._debounce)
        if scope.cancel_called or self._timers.get(identity.id) is not scope:
            return
        del self._timers[identity.id]

        lock = self._delivery_locks.setdefault(identity.id, anyio.Lock())
        async with lock:
            self._logger.debug("repository_changed", repo_id=identity.id)
            await self._subscribers.publish(identity)

    async def _observe(
        self, identity: RepositoryIdentity, git_dir: Path, scope: anyio.CancelScope
    ) -> None:
        with scope:
            try:
                async for changes in self._source(git_dir):
                    if changes:
                        self.trigger(identity)
            except OSError as e:
                self._logger.warning(
                    "watch_failed",
                    repo_id=identity.id,
                    git_dir=str(git_dir),
                    error=str(e),
                )

        if self._observers.get(identity.id) is scope:
            del self._observers[identity.id]
