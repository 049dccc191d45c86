"""
Configuration Loader

Loads the vehicle mode table (modes.yml) and engine settings (engine.yml).
The files ship inside the package; TRACKENGINE_CONFIG_DIR points the loader
at another directory holding files of the same names.

Configuration problems are startup errors and always propagate.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from trackengine.core.models import Mode
from trackengine.utils.constants import (
    DEFAULT_LINE_MODE,
    DEFAULT_TRACK_THICKNESS,
    FRAME_INTERVAL_SECONDS,
    GREAT_CIRCLE_POINTS,
    GREAT_CIRCLE_THRESHOLD_MILES,
    VEHICLE_SET_SWAP_DELAY_SECONDS,
)
from trackengine.utils.env import env_bool, env_path
from trackengine.utils.error_handling import handle_specific_exceptions

logger = logging.getLogger(__name__)

PACKAGE_CONFIG_DIR = Path(__file__).resolve().parent
MODES_FILE = "modes.yml"
ENGINE_FILE = "engine.yml"
REQUIRED_MODE_FIELDS = ("speed", "acceleration", "pause")


class ConfigError(Exception):
    """Raised when a configuration file parses but is not usable."""


@dataclass(frozen=True)
class EngineSettings:
    """
    Engine-wide settings.

    Attributes:
        track_thickness: Screen pixels between parallel interline tracks
        great_circle_threshold_miles: Pairs at least this far apart follow a great circle
        great_circle_points: Vertices per great-circle path
        frame_interval_s: Delay between animation frames
        vehicle_swap_delay_s: How long a replaced vehicle layer stays on screen
        ignore_icon: Render every line solid
        low_performance: Do not animate vehicles
    """
    track_thickness: float = DEFAULT_TRACK_THICKNESS
    great_circle_threshold_miles: float = GREAT_CIRCLE_THRESHOLD_MILES
    great_circle_points: int = GREAT_CIRCLE_POINTS
    frame_interval_s: float = FRAME_INTERVAL_SECONDS
    vehicle_swap_delay_s: float = VEHICLE_SET_SWAP_DELAY_SECONDS
    ignore_icon: bool = False
    low_performance: bool = False


def config_dir() -> Path:
    return env_path("TRACKENGINE_CONFIG_DIR", PACKAGE_CONFIG_DIR)


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.error(f"{path.name} not found at {path.absolute()}")
        raise FileNotFoundError(
            f"{path.name} not found at {path}. "
            f"Set TRACKENGINE_CONFIG_DIR to a directory with the required YAML files."
        )

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ConfigError(f"{path.name} must contain a mapping, got {type(data).__name__}")
    return data


def _parse_mode(key: str, raw: Any) -> Mode:
    if not isinstance(raw, dict):
        raise ConfigError(f"Mode '{key}' must be a mapping")

    missing = [name for name in REQUIRED_MODE_FIELDS if raw.get(name) is None]
    if missing:
        raise ConfigError(f"Mode '{key}' is missing required fields: {', '.join(missing)}")

    try:
        mode = Mode(
            key=key,
            label=str(raw.get("label", "")),
            speed=float(raw["speed"]),
            acceleration=float(raw["acceleration"]),
            pause=float(raw["pause"]),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Mode '{key}' has a non-numeric field: {e}")

    if mode.speed <= 0 or mode.acceleration <= 0 or mode.pause < 0:
        raise ConfigError(f"Mode '{key}' needs positive speed and acceleration and a non-negative pause")
    return mode


@handle_specific_exceptions((FileNotFoundError, yaml.YAMLError, ConfigError), error_context="Loading modes")
def load_modes(path: Optional[Path] = None) -> Dict[str, Mode]:
    """
    Load the vehicle mode table.

    Args:
        path: modes.yml to read; defaults to the configured directory

    Returns:
        Mode key → Mode

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If YAML parsing fails
        ConfigError: If a mode is incomplete or the default mode is not defined
    """
    path = path or config_dir() / MODES_FILE
    data = _read_yaml(path)

    raw_modes = data.get("modes")
    if not isinstance(raw_modes, dict) or not raw_modes:
        raise ConfigError(f"{path.name} must define a non-empty 'modes' mapping")

    modes = {key: _parse_mode(key, raw) for key, raw in raw_modes.items()}

    if DEFAULT_LINE_MODE not in modes:
        raise ConfigError(f"Default mode '{DEFAULT_LINE_MODE}' is not defined in {path.name}")

    logger.info(f"Loaded {len(modes)} modes from {path} (version {data.get('version', 'unknown')})")
    return modes


def get_mode(modes: Dict[str, Mode], key: Optional[str]) -> Mode:
    """Mode for a key, falling back to the default mode for unknown or missing keys."""
    if key and key in modes:
        return modes[key]
    return modes[DEFAULT_LINE_MODE]


@handle_specific_exceptions((FileNotFoundError, yaml.YAMLError, ConfigError), error_context="Loading engine settings")
def load_engine_settings(path: Optional[Path] = None) -> EngineSettings:
    """
    Load engine settings, applying the TRACKENGINE_LOW_PERFORMANCE override.

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If YAML parsing fails
        ConfigError: If a value has the wrong type
    """
    path = path or config_dir() / ENGINE_FILE
    data = _read_yaml(path)

    rendering = data.get("rendering") or {}
    projection = data.get("projection") or {}
    animation = data.get("animation") or {}

    try:
        settings = EngineSettings(
            track_thickness=float(rendering.get("track_thickness", DEFAULT_TRACK_THICKNESS)),
            ignore_icon=bool(rendering.get("ignore_icon", False)),
            great_circle_threshold_miles=float(
                projection.get("great_circle_threshold_miles", GREAT_CIRCLE_THRESHOLD_MILES)
            ),
            great_circle_points=int(projection.get("great_circle_points", GREAT_CIRCLE_POINTS)),
            frame_interval_s=float(animation.get("frame_interval_s", FRAME_INTERVAL_SECONDS)),
            vehicle_swap_delay_s=float(animation.get("vehicle_swap_delay_s", VEHICLE_SET_SWAP_DELAY_SECONDS)),
            low_performance=env_bool("TRACKENGINE_LOW_PERFORMANCE", bool(animation.get("low_performance", False))),
        )
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigError(f"Invalid value in {path.name}: {e}")

    logger.debug(f"Engine settings: {settings}")
    return settings
