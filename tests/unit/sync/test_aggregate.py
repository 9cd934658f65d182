"""Unit tests for merging local and peer snapshots into one view."""

from collections.abc import Callable

import pytest

from sink.discovery import Peer, PeerSource
from sink.repository import RepositorySnapshot, RepositoryStatus
from sink.sync import (
    Freshness,
    MachineEntry,
    build_view,
    collect_entries,
    compare_freshness,
    dedupe_peers,
    group_by_name,
    sort_entries,
    summarize,
)

SnapshotFactory = Callable[..., RepositorySnapshot]
PeerFactory = Callable[..., Peer]


@pytest.fixture
def studio() -> Peer:
    return Peer(id="studio-3847", name="studio", host="10.0.0.1", port=3847, source=PeerSource.STATIC)


class TestCompareFreshness:
    def test_later_commit_is_newer(self, make_snapshot: SnapshotFactory) -> None:
        newer, older = make_snapshot(timestamp=2_000), make_snapshot(timestamp=1_000)

        assert compare_freshness(newer, older) is Freshness.NEWER
        assert compare_freshness(older, newer) is Freshness.OLDER

    def test_equal_timestamps_are_synced(self, make_snapshot: SnapshotFactory) -> None:
        assert compare_freshness(make_snapshot(timestamp=5), make_snapshot(timestamp=5)) is Freshness.SYNCED

    def test_missing_commit_is_older_than_any_commit(self, make_snapshot: SnapshotFactory) -> None:
        empty, committed = make_snapshot(timestamp=None), make_snapshot(timestamp=1)

        assert compare_freshness(empty, committed) is Freshness.OLDER
        assert compare_freshness(committed, empty) is Freshness.NEWER
        assert compare_freshness(empty, make_snapshot(timestamp=None)) is Freshness.SYNCED


class TestDedupePeers:
    def test_same_address_is_kept_once(self, make_peer: PeerFactory) -> None:
        first = make_peer("laptop", host="10.0.0.2")
        alias = make_peer("laptop-wifi", host="10.0.0.2")
        other = make_peer("nas", host="10.0.0.5")

        assert dedupe_peers([first, alias, other]) == [first, other]

    def test_same_host_on_other_port_is_distinct(self, make_peer: PeerFactory) -> None:
        a = make_peer("laptop", port=3847)
        b = make_peer("laptop", port=3848)

        assert dedupe_peers([a, b]) == [a, b]


class TestCollectEntries:
    def test_local_entries_come_first(
        self, studio: Peer, make_peer: PeerFactory, make_snapshot: SnapshotFactory
    ) -> None:
        laptop = make_peer("laptop")
        entries = collect_entries(
            studio,
            [make_snapshot("app")],
            [laptop],
            {laptop.id: (make_snapshot("api"),)},
        )

        assert [(entry.machine, entry.repo.name) for entry in entries] == [
            ("studio", "app"),
            ("laptop", "api"),
        ]
        assert entries[0].is_local
        assert entries[1].peer == laptop

    def test_uncached_peer_contributes_nothing(
        self, studio: Peer, make_peer: PeerFactory, make_snapshot: SnapshotFactory
    ) -> None:
        entries = collect_entries(studio, [make_snapshot()], [make_peer("laptop")], {})

        assert len(entries) == 1

    def test_duplicate_peer_address_is_shown_once(
        self, studio: Peer, make_peer: PeerFactory, make_snapshot: SnapshotFactory
    ) -> None:
        laptop = make_peer("laptop", host="10.0.0.2")
        alias = make_peer("laptop-eth", host="10.0.0.2")
        cache = {laptop.id: (make_snapshot("api"),), alias.id: (make_snapshot("api"),)}

        entries = collect_entries(studio, [], [laptop, alias], cache)

        assert [entry.machine_id for entry in entries] == [laptop.id]


class TestGroupByName:
    def test_groups_keep_one_entry_per_machine(self, make_snapshot: SnapshotFactory) -> None:
        entries = [
            MachineEntry(machine="studio", machine_id="studio-3847", repo=make_snapshot("app", path="/a/app")),
            MachineEntry(machine="studio", machine_id="studio-3847", repo=make_snapshot("app", path="/b/app")),
            MachineEntry(machine="laptop", machine_id="laptop-3847", repo=make_snapshot("app")),
        ]

        groups = group_by_name(entries)

        assert list(groups) == ["app"]
        assert groups["app"].machine_ids == ("studio-3847", "laptop-3847")
        assert groups["app"].entries[0].repo.path == "/a/app"


class TestSortEntries:
    def test_newest_first_and_no_commit_last(self, make_snapshot: SnapshotFactory) -> None:
        entries = [
            MachineEntry(machine="m", machine_id="m-1", repo=make_snapshot("empty", timestamp=None)),
            MachineEntry(machine="m", machine_id="m-1", repo=make_snapshot("old", timestamp=1)),
            MachineEntry(machine="m", machine_id="m-1", repo=make_snapshot("new", timestamp=3)),
            MachineEntry(machine="m", machine_id="m-1", repo=make_snapshot("tie", timestamp=1)),
        ]

        assert [entry.repo.name for entry in sort_entries(entries)] == ["new", "old", "tie", "empty"]


class TestSummarize:
    def test_counts_each_state(self, make_snapshot: SnapshotFactory) -> None:
        statuses = [
            RepositoryStatus(branch="main"),
            RepositoryStatus(branch="main", is_clean=False, modified=2, ahead=1),
            RepositoryStatus(branch="main", behind=3),
        ]
        entries = [
            MachineEntry(machine="m", machine_id="m-1", repo=make_snapshot(f"r{i}", status=status))
            for i, status in enumerate(statuses)
        ]
        entries.append(
            MachineEntry(machine="m", machine_id="m-1", repo=make_snapshot("broken", error="git failed"))
        )

        summary = summarize(entries)

        assert summary.total == 4
        assert summary.clean == 2
        assert summary.modified == 1
        assert summary.ahead == 1
        assert summary.behind == 1
        assert summary.unavailable == 1


class TestBuildView:
    def test_all_scope_merges_every_machine(
        self, studio: Peer, make_peer: PeerFactory, make_snapshot: SnapshotFactory
    ) -> None:
        laptop = make_peer("laptop")
        view = build_view(
            studio,
            [make_snapshot("app", timestamp=1_000)],
            [laptop],
            {laptop.id: (make_snapshot("app", timestamp=2_000), make_snapshot("api", timestamp=500))},
        )

        assert view.scope == "all"
        assert [machine.id for machine in view.machines] == ["studio-3847", "laptop-3847"]
        assert [(entry.machine, entry.repo.name) for entry in view.entries] == [
            ("laptop", "app"),
            ("studio", "app"),
            ("laptop", "api"),
        ]
        local_app = view.entries[1]
        assert local_app.newer_on == ("laptop",)
        assert local_app.other_machines == ("laptop",)
        assert view.entries[0].newer_on == ()
        assert view.summary.total == 3

    def test_machine_scope_keeps_cross_machine_freshness(
        self, studio: Peer, make_peer: PeerFactory, make_snapshot: SnapshotFactory
    ) -> None:
        laptop = make_peer("laptop")
        view = build_view(
            studio,
            [make_snapshot("app", timestamp=1_000)],
            [laptop],
            {laptop.id: (make_snapshot("app", timestamp=2_000),)},
            scope=studio.id,
        )

        assert [entry.machine for entry in view.entries] == ["studio"]
        assert view.entries[0].newer_on == ("laptop",)
        assert view.summary.total == 1
        assert len(view.groups) == 1

    def test_unknown_scope_is_empty(self, studio: Peer, make_snapshot: SnapshotFactory) -> None:
        view = build_view(studio, [make_snapshot()], [], {}, scope="nowhere-1")

        assert view.entries == ()
        assert view.summary.total == 0

    def test_peer_with_own_id_is_not_merged_twice(
        self, studio: Peer, make_snapshot: SnapshotFactory
    ) -> None:
        view = build_view(studio, [make_snapshot()], [studio], {studio.id: (make_snapshot(),)})

        assert len(view.entries) == 1
        assert len(view.machines) == 1

    def test_view_serializes_with_camel_case(self, studio: Peer, make_snapshot: SnapshotFactory) -> None:
        wire = build_view(studio, [make_snapshot()], [], {}).to_wire()

        entry = wire["entries"][0]  # type: ignore[index]
        assert "machineId" in entry
        assert "newerOn" in entry
        assert "latestCommit" in entry["repo"]
