from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from sink.cli import create_app


@pytest.fixture
def console() -> Console:
    return Console(
        width=100,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """An explicit config file, with the environment kept out of the way."""
    for name in ("SINK_DEBUG", "SINK_STRICT_CONFIG", "SINK_MACHINE__PORT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("COLUMNS", "200")
    path = tmp_path / "sink.toml"
    path.write_text(
        '[machine]\nname = "studio"\nport = 4999\n\n'
        "[discovery]\nenabled = false\n\n"
        "[sync]\nfetch_timeout = 2.0\n"
    )
    return path


@pytest.fixture
def sink_cli(console: Console, config_file: Path) -> Callable[..., int]:
    """Run the CLI with the test config and return its exit code."""
    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        try:
            app.meta(["--config", str(config_file), *args])
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        return 0

    return _run
