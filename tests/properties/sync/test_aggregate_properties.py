"""Property-based tests for cross-machine aggregation."""

from hypothesis import given, strategies as st

from sink.discovery import Peer, PeerSource
from sink.repository import LatestCommit, RepositorySnapshot, RepositoryStatus
from sink.sync import Freshness, build_view, compare_freshness, dedupe_peers, sort_entries, summarize

LOCAL = Peer(id="studio-3847", name="studio", host="10.0.0.1", port=3847, source=PeerSource.STATIC)

names = st.sampled_from(["api", "web", "infra", "dotfiles", "notes"])
timestamps = st.one_of(st.none(), st.integers(min_value=0, max_value=2_000_000_000_000))
statuses = st.one_of(
    st.none(),
    st.builds(
        RepositoryStatus,
        branch=st.just("main"),
        ahead=st.integers(min_value=0, max_value=3),
        behind=st.integers(min_value=0, max_value=3),
        modified=st.integers(min_value=0, max_value=3),
    ).map(lambda status: status.model_copy(update={"is_clean": status.modified == 0})),
)


@st.composite
def snapshots(draw: st.DrawFn) -> RepositorySnapshot:
    name = draw(names)
    timestamp = draw(timestamps)
    status = draw(statuses)
    commit = None
    if timestamp is not None:
        commit = LatestCommit(
            hash="a" * 40,
            short_hash="aaaaaaa",
            message="work",
            author="me",
            date="2024-01-01T00:00:00Z",
            timestamp=timestamp,
        )
    return RepositorySnapshot(
        id=f"{name}-{draw(st.integers(min_value=0, max_value=99))}",
        name=name,
        path=f"/code/{name}",
        status=status,
        latest_commit=commit,
        error=None if status is not None else "failed",
    )


peers = st.builds(
    lambda name, host, port: Peer(id=f"{name}-{port}", name=name, host=host, port=port),
    st.sampled_from(["laptop", "nas", "desk"]),
    st.sampled_from(["10.0.0.2", "10.0.0.3"]),
    st.sampled_from([3847, 3848]),
)


@given(st.lists(peers, max_size=8))
def test_dedupe_is_idempotent_and_unique(peer_list: list[Peer]) -> None:
    once = dedupe_peers(peer_list)

    assert dedupe_peers(once) == once
    assert len({peer.address for peer in once}) == len(once)
    assert {peer.address for peer in once} == {peer.address for peer in peer_list}


@given(snapshots(), snapshots())
def test_freshness_is_antisymmetric(a: RepositorySnapshot, b: RepositorySnapshot) -> None:
    forward = compare_freshness(a, b)
    backward = compare_freshness(b, a)

    expected = {
        Freshness.NEWER: Freshness.OLDER,
        Freshness.OLDER: Freshness.NEWER,
        Freshness.SYNCED: Freshness.SYNCED,
    }
    assert backward is expected[forward]


@given(st.lists(snapshots(), max_size=10), st.lists(peers, max_size=3), st.data())
def test_view_is_sorted_and_summarized(
    local: list[RepositorySnapshot], peer_list: list[Peer], data: st.DataObject
) -> None:
    cache = {
        peer.id: data.draw(st.lists(snapshots(), max_size=4)) for peer in dedupe_peers(peer_list)
    }

    view = build_view(LOCAL, local, peer_list, cache)

    assert list(view.entries) == sort_entries(view.entries)
    timestamps_seen = [entry.repo.commit_timestamp for entry in view.entries]
    dated = [value for value in timestamps_seen if value is not None]
    assert dated == sorted(dated, reverse=True)
    assert timestamps_seen == dated + [None] * (len(timestamps_seen) - len(dated))

    summary = view.summary
    assert summary == summarize(view.entries)
    assert summary.total == len(view.entries)
    assert summary.clean + summary.modified + summary.unavailable == summary.total


@given(st.lists(snapshots(), max_size=10), st.lists(peers, max_size=3), st.data())
def test_scoped_views_partition_the_whole(
    local: list[RepositorySnapshot], peer_list: list[Peer], data: st.DataObject
) -> None:
    machines = dedupe_peers(peer_list)
    cache = {peer.id: data.draw(st.lists(snapshots(), max_size=4)) for peer in machines}

    whole = build_view(LOCAL, local, peer_list, cache)
    scoped_total = sum(
        build_view(LOCAL, local, peer_list, cache, machine_id).summary.total
        for machine_id in {machine.id for machine in whole.machines}
    )

    assert scoped_total == whole.summary.total


@given(st.lists(snapshots(), max_size=10))
def test_newer_on_agrees_with_freshness(local: list[RepositorySnapshot]) -> None:
    nas = Peer(id="nas-3847", name="nas", host="10.0.0.9", port=3847)

    view = build_view(LOCAL, local, [nas], {nas.id: local[::-1]})

    for entry in view.entries:
        group = next(group for group in view.groups if group.name == entry.repo.name)
        newer = [
            other.machine
            for other in group.entries
            if other.machine_id != entry.machine_id
            and compare_freshness(other.repo, entry.repo) is Freshness.NEWER
        ]
        assert list(entry.newer_on) == newer
