from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from sink.config import SinkConfig
from sink.node import SinkNode
from sink.repository import RepositoryIdentity
from sink.server import create_app


@pytest.fixture
def node(sink_config: SinkConfig) -> SinkNode:
    return SinkNode(sink_config, logger=MagicMock())


@pytest.fixture
def client(node: SinkNode) -> Iterator[TestClient]:
    with TestClient(create_app(node=node)) as test_client:
        yield test_client


@pytest.fixture
def alpha(code_dir: Path) -> RepositoryIdentity:
    return RepositoryIdentity.from_path((code_dir / "alpha").resolve())
