"""Config file discovery and loading.

Walk-up finder locates stategraft.toml, similar to how git finds .git/.
Supports the STATEGRAFT_CONFIG env var and the --config CLI flag.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from stategraft.config.models import GraftConfig

CONFIG_FILENAME = "stategraft.toml"
CONFIG_ENV_VAR = "STATEGRAFT_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for stategraft.toml.

    Returns the path to the config file, or None if not found.
    Checks STATEGRAFT_CONFIG first.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if current.parent == current:
            return None
        current = current.parent


def load_config(path: Path | None = None, cwd: Path | None = None) -> GraftConfig:
    """Load and validate config from a TOML file.

    Falls back to discovery from *cwd*, then to defaults.
    """
    if path is None:
        path = find_config(cwd)
    if path is None:
        return GraftConfig()
    data: dict[str, Any] = tomllib.loads(path.read_text(encoding="utf-8"))
    return GraftConfig.model_validate(data)
