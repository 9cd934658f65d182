"""Request and response bodies of the HTTP API."""

from pydantic import Field

from sink.discovery import Peer
from sink.repository import RepositoryIdentity, WireModel


class ErrorResponse(WireModel):
    error: str


class HealthResponse(WireModel):
    status: str = "ok"
    name: str
    timestamp: int


class PeersResponse(WireModel):
    local: Peer = Field(alias="self")
    peers: tuple[Peer, ...]


class ScanResponse(WireModel):
    count: int
    repos: tuple[RepositoryIdentity, ...]


class DiffResponse(WireModel):
    diff: str


class BranchRequest(WireModel):
    branch: str = Field(min_length=1)


class RebaseRequest(WireModel):
    branch: str | None = None


class StashRequest(WireModel):
    message: str | None = None


class ResetRequest(WireModel):
    hard: bool = False


class CommitRequest(WireModel):
    message: str = Field(min_length=1)


class FileRequest(WireModel):
    file: str = Field(min_length=1)
