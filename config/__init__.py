# PATH: config/__init__.py
"""
Configuration loading utilities for CHAINZ.

Tunables live in config/defaults.yaml. The user's chain registry is a
separate JSON document handled by config/store.py.
"""

from pathlib import Path
from typing import Any, Dict

import yaml

from core.constants import (
    CONFIG_FILE_NAME,
    DEFAULT_ENV_PREFIX,
    DEFAULT_PROBE_TIMEOUT_SECONDS,
)


CONFIG_DIR = Path(__file__).parent

_DEFAULTS_FALLBACK: Dict[str, Any] = {
    "env_prefix": DEFAULT_ENV_PREFIX,
    "config_file": CONFIG_FILE_NAME,
    "probe_timeout_seconds": DEFAULT_PROBE_TIMEOUT_SECONDS,
    "latency_tie_tolerance_ms": 0,
    "keychain_service": "chainz",
    "onepassword_timeout_seconds": 30,
}


def load_yaml(filename: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of file in config directory

    Returns:
        Parsed YAML as dict
    """
    filepath = CONFIG_DIR / filename
    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_defaults() -> Dict[str, Any]:
    """Load defaults.yaml merged over built-in fallbacks."""
    try:
        loaded = load_yaml("defaults.yaml")
    except FileNotFoundError:
        loaded = {}
    return {**_DEFAULTS_FALLBACK, **loaded}
