"""The Sink command-line interface."""

from ._app import create_app, main
from ._context import CLIContext, OutputFormat

__all__ = ["CLIContext", "OutputFormat", "create_app", "main"]
