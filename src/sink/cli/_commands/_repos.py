# pyright: reportUnusedCallResult=false
"""Client commands that query a running node over HTTP."""

from typing import Annotated

import httpx
from cyclopts import App, Parameter
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from sink.cli._context import CLIContext, OutputFormat
from sink.discovery import Peer
from sink.server._schemas import PeersResponse
from sink.sync import ALL_MACHINES, AggregatedEntry, AggregatedView

from ._shared import ExitCode, exit_with_error, format_json, node_address

repos_app = App(name="repos", help="Show repositories across every machine", help_on_error=True)
peers_app = App(name="peers", help="Show the peers a node knows about", help_on_error=True)

HostOption = Annotated[str | None, Parameter(help="Node host. Defaults to this machine.")]
PortOption = Annotated[int | None, Parameter(help="Node port. Defaults to machine.port.")]
FormatOption = Annotated[OutputFormat, Parameter(name=["--format", "-f"], help="Output format")]


def _get(host: str | None, port: int | None, path: str, params: dict[str, str] | None = None) -> bytes:
    ctx = CLIContext.get_current()
    target_host, target_port = node_address(ctx.config, host, port)
    url = f"http://{target_host}:{target_port}{path}"
    try:
        response = httpx.get(url, params=params, timeout=ctx.config.sync.fetch_timeout)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        exit_with_error(
            f"{url} answered {e.response.status_code}",
            ExitCode.NOT_FOUND if e.response.status_code == 404 else ExitCode.IO_ERROR,
        )
    except httpx.HTTPError as e:
        exit_with_error(f"Cannot reach node at {target_host}:{target_port}: {e}", ExitCode.IO_ERROR)
    return response.content


def _status_cell(entry: AggregatedEntry) -> str:
    status = entry.repo.status
    if status is None:
        return "[red]unavailable[/red]"
    parts: list[str] = []
    if status.conflicted:
        parts.append(f"[red]{status.conflicted} conflicted[/red]")
    if not status.is_clean:
        changed = status.staged + status.modified + status.untracked
        parts.append(f"[yellow]{changed} changed[/yellow]")
    if status.ahead:
        parts.append(f"↑{status.ahead}")
    if status.behind:
        parts.append(f"↓{status.behind}")
    return " ".join(parts) or "[green]clean[/green]"


def render_view(view: AggregatedView) -> Table:
    """Render an aggregated view as a Rich table."""
    table = Table(title=f"Repositories ({view.scope})", show_lines=False)
    table.add_column("Repository", style="bold")
    table.add_column("Machine")
    table.add_column("Branch")
    table.add_column("Status")
    table.add_column("Latest commit")
    table.add_column("Newer on", style="magenta")

    for entry in view.entries:
        commit = entry.repo.latest_commit
        table.add_row(
            entry.repo.name,
            entry.machine,
            entry.repo.status.branch if entry.repo.status else "-",
            _status_cell(entry),
            f"{commit.short_hash} {commit.message}" if commit else "-",
            ", ".join(entry.newer_on),
        )

    summary = view.summary
    table.caption = (
        f"{summary.total} total, {summary.clean} clean, {summary.modified} modified, "
        f"{summary.ahead} ahead, {summary.behind} behind, {summary.unavailable} unavailable"
    )
    return table


@repos_app.default
def repos(
    *,
    scope: Annotated[str, Parameter(help="'all' or a machine id")] = ALL_MACHINES,
    host: HostOption = None,
    port: PortOption = None,
    output_format: FormatOption = OutputFormat.TABLE,
) -> None:
    """Show the aggregated repository view of a node."""
    body = _get(host, port, "/api/aggregate", {"scope": scope})
    try:
        view = AggregatedView.model_validate_json(body)
    except ValidationError as e:
        exit_with_error(f"Malformed response: {e}", ExitCode.VALIDATION_ERROR)

    if output_format is OutputFormat.JSON:
        print(format_json(view.to_wire()))  # noqa: T201
        return
    Console().print(render_view(view))


def render_peers(local: Peer, peers: tuple[Peer, ...]) -> Table:
    """Render a node and its peers as a Rich table."""
    table = Table(title="Machines")
    table.add_column("Id", style="bold")
    table.add_column("Name")
    table.add_column("Address")
    table.add_column("Source")
    table.add_row(local.id, local.name, local.address, "self")
    for peer in peers:
        table.add_row(peer.id, peer.name, peer.address, peer.source.value)
    return table


@peers_app.default
def peers(
    *,
    host: HostOption = None,
    port: PortOption = None,
    output_format: FormatOption = OutputFormat.TABLE,
) -> None:
    """Show a node and the peers it currently knows."""
    body = _get(host, port, "/api/peers")
    try:
        response = PeersResponse.model_validate_json(body)
    except ValidationError as e:
        exit_with_error(f"Malformed response: {e}", ExitCode.VALIDATION_ERROR)

    if output_format is OutputFormat.JSON:
        print(format_json(response.to_wire()))  # noqa: T201
        return
    Console().print(render_peers(response.local, response.peers))
