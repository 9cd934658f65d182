"""HTTP and WebSocket surface of a node."""

from ._app import create_app

__all__ = ["create_app"]
