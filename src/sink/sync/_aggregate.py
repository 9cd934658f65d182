"""Cross-machine aggregation of repository snapshots.

Everything here is a pure function of its inputs: the local snapshots, the
peer list and the per-peer cache. A view is rebuilt from scratch on every
call and never mutates what it was given.
"""

from collections.abc import Iterable, Mapping, Sequence
from enum import StrEnum

from pydantic import Field

from sink.discovery._models import Peer
from sink.repository._models import RepositorySnapshot, WireModel

ALL_MACHINES = "all"


class Freshness(StrEnum):
    """How one copy's latest commit compares to another's."""

    NEWER = "newer"
    OLDER = "older"
    SYNCED = "synced"


def compare_freshness(a: RepositorySnapshot, b: RepositorySnapshot) -> Freshness:
    """Compare the latest commit of two copies of a repository.

    A copy without commits is older than any copy with one; two copies
    without commits are synced. Only timestamps are compared, so this is an
    advisory hint and says nothing about ancestry.

    Returns:
        How ``a`` compares to ``b``.
    """
    a_time, b_time = a.commit_timestamp, b.commit_timestamp
    if a_time is None and b_time is None:
        return Freshness.SYNCED
    if a_time is None:
        return Freshness.OLDER
    if b_time is None:
        return Freshness.NEWER
    if a_time > b_time:
        return Freshness.NEWER
    if a_time < b_time:
        return Freshness.OLDER
    return Freshness.SYNCED


class MachineEntry(WireModel):
    """One repository snapshot tagged with the machine it came from.

    Attributes:
        machine: Display label of the machine.
        machine_id: Directory id of the machine.
        peer: The peer, or None for this node.
        repo: The snapshot.
    """

    machine: str
    machine_id: str
    peer: Peer | None = None
    repo: RepositorySnapshot

    @property
    def is_local(self) -> bool:
        """Return True for this node's own repositories."""
        return self.peer is None


class RepositoryGroup(WireModel):
    """Every machine's copy of repositories sharing a name, one per machine."""

    name: str
    entries: tuple[MachineEntry, ...] = ()

    @property
    def machine_ids(self) -> tuple[str, ...]:
        """Return the ids of machines holding a copy."""
        return tuple(entry.machine_id for entry in self.entries)

    def others(self, entry: MachineEntry) -> tuple[MachineEntry, ...]:
        """Return the copies on machines other than ``entry``'s."""
        return tuple(other for other in self.entries if other.machine_id != entry.machine_id)

    def newer_elsewhere(self, entry: MachineEntry) -> tuple[MachineEntry, ...]:
        """Return the copies whose latest commit is newer than ``entry``'s."""
        return tuple(
            other
            for other in self.others(entry)
            if compare_freshness(other.repo, entry.repo) is Freshness.NEWER
        )


class AggregatedEntry(MachineEntry):
    """A displayed entry with its advisory freshness against other machines.

    Attributes:
        newer_on: Labels of machines holding a newer commit of this repository.
        other_machines: Labels of every other machine holding a copy.
    """

    newer_on: tuple[str, ...] = ()
    other_machines: tuple[str, ...] = ()


class Summary(WireModel):
    """Counts over the displayed entries.

    A repository whose status is unavailable counts towards ``total`` and
    ``unavailable`` only.
    """

    total: int = 0
    clean: int = 0
    modified: int = 0
    ahead: int = 0
    behind: int = 0
    unavailable: int = 0


class AggregatedView(WireModel):
    """The merged cross-machine view for one scope."""

    scope: str = ALL_MACHINES
    machines: tuple[Peer, ...] = ()
    entries: tuple[AggregatedEntry, ...] = ()
    groups: tuple[RepositoryGroup, ...] = ()
    summary: Summary = Field(default_factory=Summary)


def dedupe_peers(peers: Iterable[Peer]) -> list[Peer]:
    """Drop peers whose ``host:port`` was already seen, keeping the first."""
    seen: set[str] = set()
    unique: list[Peer] = []
    for peer in peers:
        if peer.address in seen:
            continue
        seen.add(peer.address)
        unique.append(peer)
    return unique


def collect_entries(
    local_machine: Peer,
    local_snapshots: Iterable[RepositorySnapshot],
    peers: Iterable[Peer],
    cache: Mapping[str, Sequence[RepositorySnapshot]],
) -> list[MachineEntry]:
    """Tag every known snapshot with its machine.

    Local snapshots come first, then each distinct peer's cached snapshots in
    directory order. Peers without a cache entry contribute nothing.
    """
    entries = [
        MachineEntry(machine=local_machine.name, machine_id=local_machine.id, repo=snapshot)
        for snapshot in local_snapshots
    ]
    for peer in dedupe_peers(peers):
        if peer.id == local_machine.id:
            continue
        entries.extend(
            MachineEntry(machine=peer.name, machine_id=peer.id, peer=peer, repo=snapshot)
            for snapshot in cache.get(peer.id, ())
        )
    return entries


def group_by_name(entries: Iterable[MachineEntry]) -> dict[str, RepositoryGroup]:
    """Group entries by repository name, keeping the first entry per machine."""
    grouped: dict[str, list[MachineEntry]] = {}
    for entry in entries:
        members = grouped.setdefault(entry.repo.name, [])
        if all(member.machine_id != entry.machine_id for member in members):
            members.append(entry)
    return {
        name: RepositoryGroup(name=name, entries=tuple(members))
        for name, members in grouped.items()
    }


def sort_entries[E: MachineEntry](entries: Iterable[E]) -> list[E]:
    """Sort by latest commit, newest first; entries without commits last.

    The sort is stable, so ties keep their collection order.
    """
    return sorted(
        entries,
        key=lambda entry: (
            entry.repo.commit_timestamp is None,
            -(entry.repo.commit_timestamp or 0),
        ),
    )


def summarize(entries: Iterable[MachineEntry]) -> Summary:
    """Count clean, modified, ahead, behind and unavailable entries."""
    total = clean = modified = ahead = behind = unavailable = 0
    for entry in entries:
        total += 1
        status = entry.repo.status
        if status is None:
            unavailable += 1
            continue
        if status.is_clean:
            clean += 1
        else:
            modified += 1
        if status.ahead > 0:
            ahead += 1
        if status.behind > 0:
            behind += 1
    return Summary(
        total=total,
        clean=clean,
        modified=modified,
        ahead=ahead,
        behind=behind,
        unavailable=unavailable,
    )


def _in_scope(entry: MachineEntry, scope: str | None) -> bool:
    return scope in (None, ALL_MACHINES) or entry.machine_id == scope


def build_view(
    local_machine: Peer,
    local_snapshots: Iterable[RepositorySnapshot],
    peers: Iterable[Peer],
    cache: Mapping[str, Sequence[RepositorySnapshot]],
    scope: str | None = None,
) -> AggregatedView:
    """Merge local and peer snapshots into one view.

    Args:
        local_machine: This node, as a Peer.
        local_snapshots: This node's snapshots.
        peers: Live peers in directory order.
        cache: Latest snapshot list per peer id.
        scope: None or "all" for every machine, otherwise a machine id.
            An unknown or unreachable machine yields an empty view.

    Returns:
        The view. Groups always cover every machine; entries and summary
        cover the scope only.
    """
    peer_list = list(peers)
    entries = collect_entries(local_machine, local_snapshots, peer_list, cache)
    groups = group_by_name(entries)

    displayed: list[AggregatedEntry] = []
    for entry in entries:
        if not _in_scope(entry, scope):
            continue
        group = groups[entry.repo.name]
        displayed.append(
            AggregatedEntry(
                machine=entry.machine,
                machine_id=entry.machine_id,
                peer=entry.peer,
                repo=entry.repo,
                newer_on=tuple(other.machine for other in group.newer_elsewhere(entry)),
                other_machines=tuple(other.machine for other in group.others(entry)),
            )
        )

    machines = (local_machine, *(p for p in dedupe_peers(peer_list) if p.id != local_machine.id))
    ordered = sort_entries(displayed)
    return AggregatedView(
        scope=scope or ALL_MACHINES,
        machines=machines,
        entries=tuple(ordered),
        groups=tuple(groups.values()),
        summary=summarize(ordered),
    )
