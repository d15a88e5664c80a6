"""Config file discovery.

Walk-up finder locates ``viamail.toml``, similar to how git finds .git/.
Supports the ``VIAMAIL_CONFIG`` env var and the ``--config`` CLI flag.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "viamail.toml"
CONFIG_ENV_VAR = "VIAMAIL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for viamail.toml.

    Returns the path to the config file, or None if not found.
    Checks VIAMAIL_CONFIG env var first.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        explicit = Path(env_path)
        return explicit if explicit.is_file() else None

    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
