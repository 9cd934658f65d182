# pyright: reportExplicitAny=false
"""Shared CLI utilities for commands.

This module provides common utilities used across CLI command implementations:
- Standardized exit codes
- JSON output formatting
- Console utilities for error handling
- Resolving which node a command talks to
"""

from enum import IntEnum
from typing import Any, Never

import orjson
from rich.console import Console

from sink.config import SinkConfig

# Type alias for formattable data - uses Any to match library signatures
FormattableData = dict[str, Any] | list[Any]

_WILDCARD_HOSTS = frozenset({"", "0.0.0.0", "::"})  # noqa: S104


class ExitCode(IntEnum):
    """Standard exit codes for Sink CLI commands."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_FOUND = 3
    IO_ERROR = 4
    INTERNAL_ERROR = 5


def format_json(data: FormattableData, *, indent: bool = True) -> str:
    """Format data as JSON.

    Args:
        data: Dictionary or list to format as JSON.
        indent: Whether to pretty-print with indentation.

    Returns:
        JSON-formatted string representation.
    """
    options = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(data, option=options).decode("utf-8")


def get_error_console() -> Console:
    """Get a Rich console configured for error output to stderr."""
    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Print an error message and exit with the specified code.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    if console is None:
        console = get_error_console()
    console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(code)


def node_address(config: SinkConfig, host: str | None, port: int | None) -> tuple[str, int]:
    """Return the host and port a client command should connect to.

    Defaults to this machine's configured server. A wildcard bind address
    becomes the loopback address.
    """
    target_host = host or config.machine.host
    if target_host in _WILDCARD_HOSTS:
        target_host = "127.0.0.1"
    return target_host, port or config.machine.port
