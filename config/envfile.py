# PATH: config/envfile.py
"""
config/envfile.py - Shell-sourceable export of an activated chain.

Renders `export KEY='value'` lines that both `source .env` and
python-dotenv understand. Files written here start with EXPORT_HEADER so
the CLI can tell them apart from a hand-written .env and never load its
own exports back as ${VAR} values.
"""

import os
import shlex
from pathlib import Path
from typing import Mapping

from dotenv import dotenv_values

from core.constants import DOT_ENV

EXPORT_HEADER = "# Generated by `chainz use`; do not edit."


def render_env(env: Mapping[str, str], export: bool = True) -> str:
    """One assignment per line, values shell-quoted."""
    prefix = "export " if export else ""
    return "".join(f"{prefix}{key}={shlex.quote(value)}\n" for key, value in env.items())


def write_env(env: Mapping[str, str], path: Path | str = DOT_ENV) -> Path:
    """Write the assignments to path (mode 0600, it holds a private key)."""
    path = Path(path)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        # O_CREAT's mode only applies to new files
        os.fchmod(f.fileno(), 0o600)
        f.write(f"{EXPORT_HEADER}\n")
        f.write(render_env(env))
    return path


def is_export_file(path: Path | str) -> bool:
    """True if path was written by write_env()."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.readline().rstrip("\n") == EXPORT_HEADER
    except FileNotFoundError:
        return False


def read_env(path: Path | str = DOT_ENV) -> dict[str, str]:
    """Parse a previously written env file."""
    return {k: v for k, v in dotenv_values(path).items() if v is not None}
