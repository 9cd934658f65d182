"""Node orchestration."""

from ._node import SinkNode, advertised_host, default_transport

__all__ = ["SinkNode", "advertised_host", "default_transport"]
