# pyright: reportUnusedCallResult=false
"""Live update command."""

from typing import Annotated

import anyio
from cyclopts import App, Parameter
from rich.console import Console

from sink.channel import FixedBackoff, ObserverState, UpdateObserver, channel_url
from sink.cli._context import CLIContext
from sink.discovery import Peer, PeerSource, peer_id
from sink.repository import RepositorySnapshot
from sink.sync import SnapshotFetcher
from sink.utils import get_logger

from ._shared import node_address

app = App(name="watch", help="Stream repository changes from a node", help_on_error=True)


def describe_change(snapshot: RepositorySnapshot) -> str:
    """Return a one-line summary of a changed repository."""
    status = snapshot.status
    if status is None:
        return f"{snapshot.name}: status unavailable ({snapshot.error or 'unknown error'})"
    state = "clean" if status.is_clean else (
        f"{status.staged} staged, {status.modified} modified, {status.untracked} untracked"
    )
    return f"{snapshot.name} [{status.branch}]: {state}, ahead {status.ahead}, behind {status.behind}"


async def _follow(host: str, port: int, machine: str | None, console: Console) -> None:
    ctx = CLIContext.get_current()
    config = ctx.config
    logger = ctx.logger or get_logger("cli")
    node = Peer(
        id=peer_id(host, port),
        name=machine or host,
        host=host,
        port=port,
        source=PeerSource.STATIC,
    )

    async with SnapshotFetcher(timeout=config.sync.fetch_timeout, logger=logger) as fetcher:
        observer: UpdateObserver

        async def resync() -> None:
            snapshots = await fetcher.fetch_or_raise(node)
            observer.cache.load(snapshots)
            console.print(f"[dim]{len(snapshots)} repositories on {node.address}[/dim]")

        def on_state(state: ObserverState) -> None:
            if state is ObserverState.BACKOFF:
                console.print(f"[yellow]Disconnected, retrying in {config.channel.reconnect_delay}s[/yellow]")

        observer = UpdateObserver(
            channel_url(host, port, machine),
            resync=resync,
            ping_interval=config.channel.ping_interval,
            backoff=FixedBackoff(config.channel.reconnect_delay),
            logger=logger,
        )
        observer.subscribe(lambda snapshot: console.print(describe_change(snapshot)))
        observer.subscribe_state(on_state)
        await observer.run()


@app.default
def watch(
    *,
    machine: Annotated[
        str | None,
        Parameter(help="Only accept the node if it is this machine (name or id)."),
    ] = None,
    host: Annotated[str | None, Parameter(help="Node host. Defaults to this machine.")] = None,
    port: Annotated[int | None, Parameter(help="Node port. Defaults to machine.port.")] = None,
) -> None:
    """Print every repository change a node reports until interrupted."""
    ctx = CLIContext.get_current()
    target_host, target_port = node_address(ctx.config, host, port)
    console = Console()
    try:
        anyio.run(_follow, target_host, target_port, machine, console)
    except KeyboardInterrupt:
        console.print("[dim]Stopped[/dim]")
