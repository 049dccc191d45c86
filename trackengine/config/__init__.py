from trackengine.config.loader import (
    ConfigError,
    EngineSettings,
    get_mode,
    load_engine_settings,
    load_modes,
)

__all__ = [
    "ConfigError",
    "EngineSettings",
    "get_mode",
    "load_engine_settings",
    "load_modes",
]
