"""
Persistent configuration for Vicify.

The only durable fact is the name of the last active playback device, kept as
a hint for device selection. The file lives under the XDG config home:

    ~/.config/vicinae/extensions/vicify/Vicify.json
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from .config_schema import VicifyConfig, validate_config_dict

CONFIG_NAMESPACE = ("vicinae", "extensions", "vicify")
CONFIG_FILENAME = "Vicify.json"

logger = logging.getLogger("vicify.config")


def get_config_home() -> Path:
    """Return ``$XDG_CONFIG_HOME`` or ``~/.config`` when unset."""
    xdg_config_home = os.getenv("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home)
    return Path.home() / ".config"


def get_config_path(config_home: Optional[Path] = None) -> Path:
    """Return the absolute path of the Vicify configuration file."""
    home = Path(config_home) if config_home is not None else get_config_home()
    return home.joinpath(*CONFIG_NAMESPACE, CONFIG_FILENAME)


class ConfigStore:
    """Owns the on-disk configuration file.

    Reads tolerate a missing or corrupt file (treated as "no hint"); writes
    are best-effort and logged on failure. There is no inter-process lock:
    the last writer wins.
    """

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path) if path is not None else None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        # Resolved lazily so XDG_CONFIG_HOME changes before first use are honoured
        if self._path is None:
            self._path = get_config_path()
        return self._path

    def read_hint(self) -> Optional[str]:
        """Return the last used device name, or None."""
        with self._lock:
            config = self._load()
        return config.last_device_name

    def write_hint(self, name: str) -> None:
        """Remember ``name`` as the last active device."""
        with self._lock:
            config = self._load()
            if config.last_device_name == name:
                return
            config.last_device_name = name
            self._save(config)

    def clear_hint(self) -> None:
        """Forget the last used device, keeping every other field."""
        with self._lock:
            config = self._load()
            if config.last_device_name is None:
                return
            config.last_device_name = None
            self._save(config)

    def _read_raw(self) -> Dict[str, Any]:
        path = self.path
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.warning("config.read_failed", extra={"path": str(path), "error": str(exc)})
            return {}
        if not isinstance(data, dict):
            logger.warning("config.not_an_object", extra={"path": str(path)})
            return {}
        return data

    def _load(self) -> VicifyConfig:
        raw = self._read_raw()
        try:
            return validate_config_dict(raw)
        except ValueError as exc:
            logger.warning("config.invalid", extra={"error": str(exc)})
            # Keep unknown keys even when the managed field is malformed
            return VicifyConfig.model_validate(
                {k: v for k, v in raw.items() if k != "lastDeviceName"}
            )

    def _save(self, config: VicifyConfig) -> None:
        path = self.path
        tmp_path = path.with_suffix(".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(config.to_json_safe(), handle, indent=2)
            os.replace(tmp_path, path)
        except OSError as exc:
            logger.warning("config.write_failed", extra={"path": str(path), "error": str(exc)})
            if tmp_path.exists():
                tmp_path.unlink()
            return
        logger.debug("config.saved", extra={"path": str(path)})


_store: Optional[ConfigStore] = None
_store_lock = threading.Lock()


def get_config_store() -> ConfigStore:
    """Return the process-wide ConfigStore, creating it on first use."""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = ConfigStore()
    return _store


def set_config_store(store: Optional[ConfigStore]) -> None:
    """Override the process-wide store (primarily for testing)."""
    global _store
    with _store_lock:
        _store = store
