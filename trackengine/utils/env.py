"""
Environment variable utilities for engine configuration overrides.

TRACKENGINE_CONFIG_DIR and TRACKENGINE_LOW_PERFORMANCE are read through
these helpers so that parsing is consistent across the engine.
"""
import os
from pathlib import Path
from typing import Optional

_TRUE = {"1", "true", "t", "yes", "y", "on"}

def env_bool(name: str, default: bool = False) -> bool:
    """Parse environment variable as boolean; unset keeps the default."""
    v = os.getenv(name)
    return default if v is None else str(v).strip().lower() in _TRUE

def env_path(name: str, default: Optional[Path] = None) -> Optional[Path]:
    """
    Get environment variable as a Path.

    Empty values are treated as unset so that ``FOO=`` in a shell does not
    resolve to the current working directory.
    """
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return Path(v.strip()).expanduser()
