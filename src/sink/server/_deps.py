"""FastAPI dependencies."""

from pathlib import Path
from typing import Annotated, cast

from fastapi import Depends, Request

from sink.node import SinkNode
from sink.repository import RepositoryIdentity


def get_node(request: Request) -> SinkNode:
    """Return the node the application serves."""
    return cast("SinkNode", request.app.state.node)


NodeDep = Annotated[SinkNode, Depends(get_node)]


async def get_repository(repo_id: str, node: NodeDep) -> RepositoryIdentity:
    """Resolve a repository id from the path.

    Raises:
        RepositoryNotFoundError: If the id is unknown; mapped to 404.
    """
    await node.scanner.scan()
    return node.scanner.get(repo_id)


RepositoryDep = Annotated[RepositoryIdentity, Depends(get_repository)]


def repository_path(repository: RepositoryDep) -> Path:
    """Return the working copy root of the requested repository."""
    return Path(repository.path)


RepositoryPathDep = Annotated[Path, Depends(repository_path)]
