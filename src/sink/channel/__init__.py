"""Live update channel between a node and its observers."""

from ._backoff import DEFAULT_RECONNECT_DELAY, FixedBackoff
from ._cache import RepositoryCache
from ._fake import LoopbackClientEnd, LoopbackConnector, LoopbackServerEnd
from ._frames import (
    ConnectedFrame,
    Frame,
    PingFrame,
    PongFrame,
    RepoChangedFrame,
    encode_frame,
    parse_frame,
)
from ._hub import DEFAULT_BUFFER_SIZE, Subscription, UpdateHub
from ._observer import (
    DEFAULT_PING_INTERVAL,
    Connector,
    ObserverLink,
    ObserverState,
    UpdateObserver,
    channel_url,
    websockets_connector,
)
from ._server import (
    SUBSCRIBER_DROPPED_CODE,
    UNKNOWN_MACHINE_CODE,
    ObserverConnection,
    serve_observer,
)

__all__ = [
    "DEFAULT_BUFFER_SIZE",
    "DEFAULT_PING_INTERVAL",
    "DEFAULT_RECONNECT_DELAY",
    "SUBSCRIBER_DROPPED_CODE",
    "UNKNOWN_MACHINE_CODE",
    "ConnectedFrame",
    "Connector",
    "FixedBackoff",
    "Frame",
    "LoopbackClientEnd",
    "LoopbackConnector",
    "LoopbackServerEnd",
    "ObserverConnection",
    "ObserverLink",
    "ObserverState",
    "PingFrame",
    "PongFrame",
    "RepoChangedFrame",
    "RepositoryCache",
    "Subscription",
    "UpdateHub",
    "UpdateObserver",
    "channel_url",
    "encode_frame",
    "parse_frame",
    "serve_observer",
    "websockets_connector",
]
