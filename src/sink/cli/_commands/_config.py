# pyright: reportUnusedCallResult=false
"""Config commands for viewing Sink configuration."""

from typing import Annotated

from cyclopts import App, Parameter

from sink.cli._context import CLIContext, OutputFormat
from sink.config import ConfigSourceName, discover_sources

from ._shared import format_json

app = App(name="config", help="View Sink configuration", help_on_error=True)


@app.command(name="show")
def show(
    *,
    output_format: Annotated[
        OutputFormat, Parameter(name=["--format", "-f"], help="Output format")
    ] = OutputFormat.TOML,
) -> None:
    """Show the effective merged configuration."""
    ctx = CLIContext.get_current()
    if output_format is OutputFormat.JSON:
        print(format_json(ctx.config.to_dict()))  # noqa: T201
    else:
        print(ctx.config.to_toml(), end="")  # noqa: T201


@app.command(name="sources")
def sources() -> None:
    """List configuration sources in precedence order, highest first."""
    ctx = CLIContext.get_current()
    for source in discover_sources(config_path=ctx.config_path):
        if source.name in (ConfigSourceName.CLI, ConfigSourceName.DEFAULT):
            location = "(built-in)" if source.name is ConfigSourceName.DEFAULT else "(flags)"
        elif source.path is not None:
            location = f"{source.path}{'' if source.exists else ' (missing)'}"
        else:
            location = "(environment)"
        print(f"{source.name.value:8} {location}")  # noqa: T201
