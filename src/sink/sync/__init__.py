"""Cross-machine synchronization: fetching peer snapshots and merging them."""

from ._aggregate import (
    ALL_MACHINES,
    AggregatedEntry,
    AggregatedView,
    Freshness,
    MachineEntry,
    RepositoryGroup,
    Summary,
    build_view,
    collect_entries,
    compare_freshness,
    dedupe_peers,
    group_by_name,
    sort_entries,
    summarize,
)
from ._cache import PeerSnapshotCache
from ._engine import DEFAULT_POLL_INTERVAL, AggregationEngine, LocalSnapshots
from ._fetcher import DEFAULT_FETCH_TIMEOUT, DETAILED_REPOS_PATH, SnapshotFetcher

__all__ = [
    "ALL_MACHINES",
    "DEFAULT_FETCH_TIMEOUT",
    "DEFAULT_POLL_INTERVAL",
    "DETAILED_REPOS_PATH",
    "AggregatedEntry",
    "AggregatedView",
    "AggregationEngine",
    "Freshness",
    "LocalSnapshots",
    "MachineEntry",
    "PeerSnapshotCache",
    "RepositoryGroup",
    "SnapshotFetcher",
    "Summary",
    "build_view",
    "collect_entries",
    "compare_freshness",
    "dedupe_peers",
    "group_by_name",
    "sort_entries",
    "summarize",
]
