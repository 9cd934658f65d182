"""Observer-side repository list."""

import threading
from collections.abc import Iterable
from typing import final

from sink.repository._models import RepositorySnapshot


@final
class RepositoryCache:
    """A machine's repository list as an observer last saw it.

    ``load`` replaces the whole list (initial fetch, resync after reconnect).
    ``apply`` replaces a single entry in place; a snapshot for an id the list
    does not contain is ignored until the next ``load``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[RepositorySnapshot] = []
        self._positions: dict[str, int] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def load(self, snapshots: Iterable[RepositorySnapshot]) -> None:
        """Replace every entry."""
        entries = list(snapshots)
        with self._lock:
            self._entries = entries
            self._positions = {snapshot.id: index for index, snapshot in enumerate(entries)}

    def apply(self, snapshot: RepositorySnapshot) -> bool:
        """Replace the entry with the same id.

        Returns:
            True if an entry was replaced.
        """
        with self._lock:
            index = self._positions.get(snapshot.id)
            if index is None:
                return False
            self._entries[index] = snapshot
            return True

    def get(self, repo_id: str) -> RepositorySnapshot | None:
        """Return the entry with ``repo_id``, or None."""
        with self._lock:
            index = self._positions.get(repo_id)
            return None if index is None else self._entries[index]

    def snapshots(self) -> tuple[RepositorySnapshot, ...]:
        """Return the entries in load order."""
        with self._lock:
            return tuple(self._entries)
