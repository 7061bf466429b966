from __future__ import annotations

import os
from pathlib import Path

_REPO_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


def resolve_config_file(filename: str) -> Path:
    """Return the first existing ``filename`` from the known config directories.

    ``SEREN_CONFIG_DIR`` wins when set, then the ``config/`` directory shipped
    with the package, then ``./config``. When none exists the shipped path is
    returned so callers can report where the file was expected.
    """
    candidates: list[Path] = []
    env_config_dir = os.getenv("SEREN_CONFIG_DIR")
    if env_config_dir:
        candidates.append(Path(env_config_dir) / filename)
    candidates.extend([_REPO_CONFIG_DIR / filename, Path.cwd() / "config" / filename])

    for path in candidates:
        if path.exists():
            return path
    return _REPO_CONFIG_DIR / filename
