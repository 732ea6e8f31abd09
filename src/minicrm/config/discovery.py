"""Config file discovery.

``minicrm.toml`` is found by walking up from the working directory, the
way git finds ``.git/``. ``MINICRM_CONFIG`` names a file explicitly and
disables the walk.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "minicrm.toml"
CONFIG_ENV_VAR = "MINICRM_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Locate the config file for a run started in *start* (default: cwd).

    Returns None when ``MINICRM_CONFIG`` points at a missing file or no
    ``minicrm.toml`` exists in *start* or any parent.
    """
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        path = Path(explicit)
        return path if path.is_file() else None

    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
