# pyright: reportUnusedCallResult=false
"""Sink node server command."""

from typing import Annotated, Literal

import uvicorn
from cyclopts import App, Parameter

from sink.cli._context import CLIContext
from sink.server import create_app

app = App(name="serve", help="Run this machine's Sink node", help_on_error=True)

LogLevel = Literal["critical", "error", "warning", "info", "debug", "trace"]


@app.default
def serve(
    *,
    host: Annotated[
        str | None,
        Parameter(help="Bind socket to this host. Defaults to machine.host."),
    ] = None,
    port: Annotated[
        int | None,
        Parameter(help="Bind socket to this port. Defaults to machine.port."),
    ] = None,
    name: Annotated[
        str | None,
        Parameter(help="Machine name to advertise. Defaults to machine.name."),
    ] = None,
    no_discovery: Annotated[
        bool,
        Parameter(name="--no-discovery", help="Do not advertise or browse on the network."),
    ] = False,
    log_level: Annotated[
        LogLevel,
        Parameter(help="Uvicorn log level."),
    ] = "info",
    access_log: Annotated[
        bool,
        Parameter(help="Enable access log."),
    ] = False,
) -> None:
    """Serve the repository API and update channel, and join the network."""
    ctx = CLIContext.get_current()
    config = ctx.config

    machine = config.machine.model_copy(
        update={
            key: value
            for key, value in (("host", host), ("port", port), ("name", name))
            if value is not None
        }
    )
    update: dict[str, object] = {"machine": machine}
    if no_discovery:
        update["discovery"] = config.discovery.model_copy(update={"enabled": False})
    config = config.model_copy(update=update)

    if not ctx.quiet:
        print(f"Starting Sink node {machine.name!r} on {machine.host}:{machine.port}")  # noqa: T201
    uvicorn.run(
        create_app(config),
        host=machine.host,
        port=machine.port,
        log_level=log_level,
        access_log=access_log,
    )
