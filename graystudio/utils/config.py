"""graystudio.utils.config – user paths and TOML config loader"""

from __future__ import annotations

import copy
import os
import pathlib
import tomllib
from functools import lru_cache
from typing import Any, Dict

DEFAULT_CONFIG_DIR = pathlib.Path.home() / ".config" / "graystudio"
CONFIG_DIR = pathlib.Path(os.getenv("GRAYSTUDIO_CONFIG_DIR", str(DEFAULT_CONFIG_DIR))).expanduser()
CONFIG_FILE = CONFIG_DIR / "config.toml"


def get_config_path() -> pathlib.Path:
    """Return config file path honoring environment variables."""
    env_file = os.getenv("GRAYSTUDIO_CONFIG_FILE")
    if env_file:
        return pathlib.Path(env_file).expanduser()
    env_dir = os.getenv("GRAYSTUDIO_CONFIG_DIR")
    if env_dir:
        return pathlib.Path(env_dir).expanduser() / "config.toml"
    return CONFIG_FILE


DEFAULTS: Dict[str, Any] = {
    "limits": {
        # Callers reject anything larger before it reaches the core
        "max_dimension": 4096,
        "max_layers": 6,
        "history_limit": 50,
    },
    "canvas": {
        "default_width": 800,
        "default_height": 600,
    },
    "export": {
        "jpeg_quality": 92,
    },
    "logging": {
        "level": "INFO",
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@lru_cache(maxsize=1)
def load_config() -> Dict[str, Any]:
    """Load the user config merged over DEFAULTS.

    A missing file is not an error. A file that is not valid TOML raises
    ``tomllib.TOMLDecodeError`` so that a typo is noticed instead of
    silently ignored.
    """
    path = get_config_path()
    if not path.exists():
        return copy.deepcopy(DEFAULTS)
    with path.open("rb") as fp:
        user_data = tomllib.load(fp)
    return _merge(DEFAULTS, user_data)


def _section(name: str) -> Dict[str, Any]:
    return load_config().get(name, {})


def get_max_dimension() -> int:
    return int(_section("limits").get("max_dimension", DEFAULTS["limits"]["max_dimension"]))


def get_max_layers() -> int:
    return int(_section("limits").get("max_layers", DEFAULTS["limits"]["max_layers"]))


def get_history_limit() -> int:
    return int(_section("limits").get("history_limit", DEFAULTS["limits"]["history_limit"]))


def get_default_canvas_size() -> tuple[int, int]:
    """(width, height) used when the base layer carries no image."""
    canvas = _section("canvas")
    return (
        int(canvas.get("default_width", DEFAULTS["canvas"]["default_width"])),
        int(canvas.get("default_height", DEFAULTS["canvas"]["default_height"])),
    )


def get_jpeg_quality() -> int:
    return int(_section("export").get("jpeg_quality", DEFAULTS["export"]["jpeg_quality"]))


def get_logging_level() -> str:
    return str(_section("logging").get("level", DEFAULTS["logging"]["level"]))
