"""Local change detection."""

from ._watcher import (
    DEFAULT_DEBOUNCE,
    WATCHED_ENTRIES,
    ChangeSource,
    ChangeWatcher,
    is_relevant_change,
    watchfiles_source,
)

__all__ = [
    "DEFAULT_DEBOUNCE",
    "WATCHED_ENTRIES",
    "ChangeSource",
    "ChangeWatcher",
    "is_relevant_change",
    "watchfiles_source",
]
