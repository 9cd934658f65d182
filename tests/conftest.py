"""Shared test fixtures for Sink tests."""

import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

from sink.config import SinkConfig
from sink.repository import RepositoryIdentity

GitRunner = Callable[..., str]


def run_git(cwd: Path, *args: str, env: dict[str, str] | None = None) -> str:
    """Run a git command in the given directory and return its output."""
    result = subprocess.run(  # noqa: S603 - Safe: running git with controlled args
        ["git", *args],  # noqa: S607
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=False,
        env=env,
    )
    if result.returncode != 0:
        msg = f"git {' '.join(args)} failed: {result.stderr}"
        raise RuntimeError(msg)
    return result.stdout


def init_repository(path: Path, *, commit: bool = True) -> Path:
    """Create a git repository, optionally with one commit."""
    path.mkdir(parents=True, exist_ok=True)
    run_git(path, "init", "--initial-branch=main")
    run_git(path, "config", "user.name", "Test User")
    run_git(path, "config", "user.email", "test@example.com")
    run_git(path, "config", "commit.gpgsign", "false")
    if commit:
        (path / "README.md").write_text("# Test Repository\n")
        run_git(path, "add", "README.md")
        run_git(path, "commit", "-m", "Initial commit")
    return path


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A real git repository with one commit on ``main``."""
    return init_repository(tmp_path / "project")


@pytest.fixture
def git_identity(git_repo: Path) -> RepositoryIdentity:
    return RepositoryIdentity.from_path(git_repo)


@pytest.fixture
def code_dir(tmp_path: Path) -> Path:
    """A scan root holding two repositories and some noise.

    Structure:
        code/
            alpha/.git
            group/beta/.git
            node_modules/ignored/.git
            .hidden/secret/.git
            notes/
    """
    root = tmp_path / "code"
    init_repository(root / "alpha")
    init_repository(root / "group" / "beta", commit=False)
    init_repository(root / "node_modules" / "ignored", commit=False)
    init_repository(root / ".hidden" / "secret", commit=False)
    (root / "notes").mkdir()
    return root


@pytest.fixture
def sink_config(code_dir: Path) -> SinkConfig:
    """A config scanning ``code_dir`` with discovery off."""
    return SinkConfig.model_validate(
        {
            "machine": {"name": "studio", "host": "127.0.0.1", "port": 3847},
            "scan": {"paths": [str(code_dir)], "cache_seconds": 0},
            "discovery": {"enabled": False},
            "watch": {"enabled": False},
        }
    )


@pytest.fixture
def make_repository() -> Callable[..., Path]:
    """Return the helper that creates a git repository at a path."""
    return init_repository


@pytest.fixture
def git() -> GitRunner:
    """Return a helper running git synchronously in a directory."""
    return run_git
