"""Configuration loading entry points."""

import os
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from sink.exceptions import ConfigError, ConfigValidationError

from ._discovery import discover_sources
from ._loader import deep_merge, parse_env_vars, read_toml_file
from ._models import ConfigSource, ConfigSourceName, SinkConfig


def validate_config(
    data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    *,
    source: str | None = None,
) -> SinkConfig:
    """Validate merged configuration data.

    Args:
        data: The merged configuration dictionary.
        source: Where the data came from, for error messages.

    Returns:
        The validated configuration.

    Raises:
        ConfigValidationError: On the first invalid value.
    """
    try:
        return SinkConfig.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        key = ".".join(str(part) for part in error["loc"])
        msg = f"Invalid configuration value for '{key}': {error['msg']}"
        raise ConfigValidationError(
            msg,
            key=key,
            value=error.get("input"),
            expected=error["type"],
            source=source,
        ) from e


def _read_source(source: ConfigSource) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    if source.name is ConfigSourceName.ENV:
        return parse_env_vars()
    if source.path is not None:
        return read_toml_file(source.path) if source.exists else {}
    return source.values


def load_config(
    *,
    cwd: Path | None = None,
    config_path: Path | None = None,
    include_env: bool = True,
    cli_overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
) -> SinkConfig:
    """Load merged configuration from all sources.

    Merges defaults -> user -> project -> env -> cli, then validates.

    Raises:
        FileNotFoundError: If an explicit ``config_path`` does not exist.
        ConfigLoadError: If a config file cannot be parsed.
        ConfigValidationError: If the merged config fails validation.
    """
    if config_path is not None and not config_path.is_file():
        msg = f"Config file not found: {config_path}"
        raise FileNotFoundError(msg)

    sources = discover_sources(
        cwd,
        config_path=config_path,
        include_env=include_env,
        cli_overrides=cli_overrides,
    )

    merged: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for source in reversed(sources):
        merged = deep_merge(merged, _read_source(source))

    return validate_config(merged)


def safe_load_config(
    *,
    cwd: Path | None = None,
    config_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
) -> tuple[SinkConfig, str | None]:
    """Load configuration with error handling.

    Handles errors based on the SINK_STRICT_CONFIG environment variable:
    - If unset or "0": warn to stderr and return the default config
    - If "1": fail fast with sys.exit(1)

    An explicit ``config_path`` that does not exist always fails.

    Returns:
        Tuple of (SinkConfig, error_message). On success, error_message is
        None.
    """
    strict_mode = os.environ.get("SINK_STRICT_CONFIG", "0") == "1"

    try:
        config = load_config(
            cwd=cwd,
            config_path=config_path,
            cli_overrides=cli_overrides,
        )
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)  # noqa: T201
        sys.exit(1)
    except (ConfigError, OSError) as e:
        error_msg = str(e)
        if strict_mode:
            print(f"Error: {error_msg}", file=sys.stderr)  # noqa: T201
            sys.exit(1)
        print(  # noqa: T201
            f"Warning: Failed to load config: {error_msg}",
            file=sys.stderr,
        )
        return SinkConfig(), error_msg
    else:
        return config, None
