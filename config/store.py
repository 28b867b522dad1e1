# PATH: config/store.py
"""
config/store.py - Persistent registry document.

One JSON document per user (~/.chainz.json by default, CHAINZ_CONFIG
overrides). save() is atomic: write a temp file beside the target,
then os.replace() it, so an interrupted run never leaves half a file.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from core.constants import CONFIG_PATH_ENV_VAR
from core.exceptions import FormatError
from core.logging import get_logger
from chains.registry import ChainRegistry
from config import load_defaults

logger = get_logger("chainz.config")


def default_config_path() -> Path:
    """Path of the registry document."""
    override = os.getenv(CONFIG_PATH_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / load_defaults()["config_file"]


class ConfigStore:
    """Loads and saves a ChainRegistry as JSON."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else default_config_path()

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> ChainRegistry:
        """
        Load the registry; an absent file yields an empty registry.

        Raises:
            FormatError: the document is not valid JSON or has bad entries
        """
        if not self.path.exists():
            logger.debug("No config document, starting empty", extra={"context": {"path": str(self.path)}})
            return ChainRegistry(env_prefix=load_defaults()["env_prefix"])

        with open(self.path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise FormatError(
                    f"Config document is not valid JSON: {e}",
                    {"path": str(self.path)},
                ) from e
        return ChainRegistry.from_dict(data)

    def save(self, registry: ChainRegistry) -> None:
        """Atomically replace the document (mode 0600, it may hold keys)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(registry.to_dict(), f, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug("Config saved", extra={"context": {"path": str(self.path)}})
