"""Config path discovery utilities."""

from pathlib import Path
from typing import Any

import platformdirs

from ._defaults import DEFAULT_CONFIG
from ._models._common import ConfigSource, ConfigSourceName

PROJECT_CONFIG_NAME = "sink.toml"


def get_user_config_path() -> Path:
    r"""Get platform-specific user config file path.

    - Linux: ``~/.config/sink/config.toml``
    - macOS: ``~/Library/Application Support/sink/config.toml``
    - Windows: ``%APPDATA%\sink\config.toml``

    The path is returned regardless of whether the file exists.
    """
    return platformdirs.user_config_path("sink") / "config.toml"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """Return the path of the per-directory config file."""
    return (cwd or Path.cwd()) / PROJECT_CONFIG_NAME


def _file_exists(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def discover_sources(
    cwd: Path | None = None,
    *,
    config_path: Path | None = None,
    include_env: bool = True,
    cli_overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
) -> list[ConfigSource]:
    """Discover all configuration sources.

    Sources are returned in precedence order (highest first). File sources
    are checked for existence but not read.

    Args:
        cwd: Directory searched for ``sink.toml``. Defaults to the current
            working directory.
        config_path: Explicit config file replacing both user and project
            files.
        include_env: Include environment variables as a source.
        cli_overrides: Values set on the command line.

    Returns:
        List of ConfigSource objects. Missing files are included with
        exists=False.
    """
    sources: list[ConfigSource] = []

    if cli_overrides is not None:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.CLI,
                exists=bool(cli_overrides),
                values=cli_overrides,
            )
        )

    if include_env:
        sources.append(ConfigSource(name=ConfigSourceName.ENV, exists=True))

    if config_path is not None:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.PROJECT,
                path=config_path,
                exists=_file_exists(config_path),
            )
        )
    else:
        project_path = get_project_config_path(cwd)
        sources.append(
            ConfigSource(
                name=ConfigSourceName.PROJECT,
                path=project_path,
                exists=_file_exists(project_path),
            )
        )
        user_path = get_user_config_path()
        sources.append(
            ConfigSource(
                name=ConfigSourceName.USER,
                path=user_path,
                exists=_file_exists(user_path),
            )
        )

    sources.append(
        ConfigSource(name=ConfigSourceName.DEFAULT, exists=True, values=DEFAULT_CONFIG)
    )
    return sources
