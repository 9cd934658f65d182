"""Property-based tests for the update channel."""

from hypothesis import given, strategies as st

from sink.channel import (
    ConnectedFrame,
    PingFrame,
    PongFrame,
    RepoChangedFrame,
    RepositoryCache,
    encode_frame,
    parse_frame,
)
from sink.repository import RepositorySnapshot, RepositoryStatus

repo_ids = st.text(alphabet="0123456789abcdef", min_size=12, max_size=12)


def snapshot(repo_id: str, branch: str = "main") -> RepositorySnapshot:
    return RepositorySnapshot(
        id=repo_id,
        name=f"repo-{repo_id[:4]}",
        path=f"/code/{repo_id}",
        status=RepositoryStatus(branch=branch),
    )


frames = st.one_of(
    st.builds(ConnectedFrame, machine=st.text(min_size=1, max_size=20)),
    st.builds(RepoChangedFrame, repo=repo_ids.map(snapshot)),
    st.just(PingFrame()),
    st.just(PongFrame()),
)


@given(frames)
def test_encoded_frames_parse_back(frame: ConnectedFrame | RepoChangedFrame | PingFrame | PongFrame) -> None:
    assert parse_frame(encode_frame(frame)) == frame


@given(st.text(max_size=50))
def test_arbitrary_text_never_raises(text: str) -> None:
    parsed = parse_frame(text)

    assert parsed is None or parsed.type in {"connected", "repo-changed", "ping", "pong"}


@given(st.lists(repo_ids, unique=True, max_size=10), st.lists(repo_ids, max_size=10))
def test_apply_preserves_order_and_length(loaded: list[str], updates: list[str]) -> None:
    cache = RepositoryCache()
    cache.load(snapshot(repo_id) for repo_id in loaded)

    for repo_id in updates:
        applied = cache.apply(snapshot(repo_id, branch="dev"))
        assert applied == (repo_id in loaded)

    entries = cache.snapshots()
    assert [entry.id for entry in entries] == loaded
    for entry in entries:
        expected = "dev" if entry.id in updates else "main"
        assert entry.status is not None
        assert entry.status.branch == expected
