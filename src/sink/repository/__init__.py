"""Local repositories: identities, scanning and status snapshots."""

from ._models import (
    REPOSITORY_ID_LENGTH,
    LatestCommit,
    RepositoryIdentity,
    RepositorySnapshot,
    RepositoryStatus,
    WireModel,
    repository_id,
)
from ._scanner import RepositoryScanner, discover_repositories
from ._snapshot import collect_snapshot, collect_snapshots

__all__ = [
    "REPOSITORY_ID_LENGTH",
    "LatestCommit",
    "RepositoryIdentity",
    "RepositoryScanner",
    "RepositorySnapshot",
    "RepositoryStatus",
    "WireModel",
    "collect_snapshot",
    "collect_snapshots",
    "discover_repositories",
    "repository_id",
]
