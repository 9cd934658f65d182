"""Update channel frames.

Frames are JSON objects discriminated by their ``type`` field. Snapshots
inside frames use the same camelCase shape as the HTTP API.
"""

from typing import Annotated, Literal

from pydantic import Field, TypeAdapter, ValidationError

from sink.repository._models import RepositorySnapshot, WireModel


class ConnectedFrame(WireModel):
    """Handshake sent by the server right after a connection opens."""

    type: Literal["connected"] = "connected"
    machine: str


class RepoChangedFrame(WireModel):
    """A refreshed snapshot of one repository."""

    type: Literal["repo-changed"] = "repo-changed"
    repo: RepositorySnapshot


class PingFrame(WireModel):
    """Keep-alive request from an observer."""

    type: Literal["ping"] = "ping"


class PongFrame(WireModel):
    """Keep-alive answer from the server."""

    type: Literal["pong"] = "pong"


type Frame = Annotated[
    ConnectedFrame | RepoChangedFrame | PingFrame | PongFrame,
    Field(discriminator="type"),
]

_FRAME: TypeAdapter[Frame] = TypeAdapter(Frame)


def parse_frame(data: str | bytes) -> Frame | None:
    """Decode a frame, or return None if it is malformed or unknown."""
    try:
        return _FRAME.validate_json(data)
    except ValidationError:
        return None


def encode_frame(frame: Frame) -> str:
    """Encode a frame as JSON text."""
    return frame.model_dump_json(by_alias=True)
