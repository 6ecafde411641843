from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Mapping, Optional, Protocol

import yaml

logger = logging.getLogger(__name__)


class PreferenceSource(Protocol):
    def get_bool(self, key: str, default: bool = False) -> bool: ...


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return default


class MappingPreferences:
    """In-memory preferences; hosts flip values with :meth:`set_bool`."""

    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(values or {})
        self._lock = Lock()

    def get_bool(self, key: str, default: bool = False) -> bool:
        with self._lock:
            if key not in self._values:
                return default
            return _coerce_bool(self._values[key], default)

    def set_bool(self, key: str, value: bool) -> None:
        with self._lock:
            self._values[key] = bool(value)


class YamlPreferences:
    """Preferences stored in a YAML mapping, re-read whenever the file changes."""

    def __init__(self, path: Path, defaults: Optional[Mapping[str, Any]] = None) -> None:
        self.path = Path(path).expanduser()
        self.defaults: Dict[str, Any] = dict(defaults or {})
        self._lock = Lock()
        self._mtime_ns: Optional[int] = None
        self._values: Dict[str, Any] = {}

    def get_bool(self, key: str, default: bool = False) -> bool:
        values = self._current()
        if key in values:
            return _coerce_bool(values[key], default)
        if key in self.defaults:
            return _coerce_bool(self.defaults[key], default)
        return default

    def _current(self) -> Dict[str, Any]:
        with self._lock:
            try:
                mtime_ns = self.path.stat().st_mtime_ns
            except FileNotFoundError:
                self._mtime_ns = None
                self._values = {}
                return self._values
            if mtime_ns != self._mtime_ns:
                self._values = self._load()
                self._mtime_ns = mtime_ns
            return self._values

    def _load(self) -> Dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh)
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Failed to read preferences %s: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            return {}
        return raw
