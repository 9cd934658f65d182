"""Default configuration values.

DEFAULT_CONFIG is a plain dict so it can be fed straight into deep_merge.
It mirrors the model defaults and is the lowest-precedence source.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "machine": {
        "name": "",
        "host": "0.0.0.0",  # noqa: S104
        "port": 3847,
    },
    "scan": {
        "paths": ["~/Code"],
        "ignore": ["node_modules", "vendor", "dist", "build", "target"],
        "manual_repos": [],
        "max_depth": 4,
        "cache_seconds": 30.0,
    },
    "peers": [],
    "discovery": {
        "enabled": True,
        "service_type": "_sink-git._tcp.local.",
    },
    "sync": {
        "fetch_timeout": 5.0,
        "poll_interval": 30.0,
    },
    "watch": {
        "enabled": True,
        "debounce_ms": 300,
    },
    "channel": {
        "ping_interval": 30.0,
        "reconnect_delay": 3.0,
        "buffer_size": 64,
    },
    "logging": {
        "level": "info",
        "format": "json",
        "file": "",
    },
}
