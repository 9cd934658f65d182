"""Sink CLI commands."""

from cyclopts import App

from ._config import app as config_app
from ._repos import peers_app, repos_app
from ._serve import app as serve_app
from ._shared import ExitCode, exit_with_error, format_json, node_address
from ._watch import app as watch_app

__all__ = [
    "ExitCode",
    "config_app",
    "exit_with_error",
    "format_json",
    "node_address",
    "peers_app",
    "register_commands",
    "repos_app",
    "serve_app",
    "watch_app",
]


def register_commands(app: App) -> None:
    """Attach every command app to the root app."""
    app.command(serve_app)
    app.command(repos_app)
    app.command(peers_app)
    app.command(watch_app)
    app.command(config_app)
