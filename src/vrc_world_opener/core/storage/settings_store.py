"""
Purpose: Persisted user toggles and login display name, with change notification.
Constraints: Storage only; no network calls or browser automation.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from vrc_world_opener.core.config_models import FeedSettings

SETTINGS_DEFAULT_PATH = "data/settings.json"
DISPLAY_NAME_KEY = "displayName"

logger = logging.getLogger(__name__)

SettingsListener = Callable[[FeedSettings], None]


def load_settings_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Unreadable settings file %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def save_settings_file(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False), encoding="utf-8")


class SettingsStore:
    """JSON-file key-value store; a missing toggle reads as True."""

    def __init__(self, path: Path | str = SETTINGS_DEFAULT_PATH):
        self.path = Path(path)
        self._listeners: List[SettingsListener] = []
        self._last_seen: Optional[FeedSettings] = None
        self._last_mtime: Optional[float] = None

    def read_settings(self) -> FeedSettings:
        data = load_settings_file(self.path)
        known = {key: data[key] for key in FeedSettings().to_storage() if key in data}
        try:
            return FeedSettings(**known)
        except ValidationError as exc:
            logger.warning("Invalid settings in %s, using defaults: %s", self.path, exc)
            return FeedSettings()

    def update_settings(self, **changes: bool) -> FeedSettings:
        """Persist changed toggles (field names) and broadcast the new value."""
        current = self.read_settings()
        updated = current.model_copy(update=changes)
        data = load_settings_file(self.path)
        data.update(updated.to_storage())
        save_settings_file(self.path, data)
        self._remember_mtime()
        if updated != current:
            self._broadcast(updated)
        return updated

    def subscribe(self, listener: SettingsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def poll_changes(self) -> Optional[FeedSettings]:
        """Pick up writes from another process; returns the new value when it changed."""
        mtime = self._mtime()
        if self._last_seen is None:
            self._last_seen = self.read_settings()
            self._last_mtime = mtime
            return None
        if mtime == self._last_mtime:
            return None
        self._last_mtime = mtime
        settings = self.read_settings()
        if settings == self._last_seen:
            return None
        self._broadcast(settings)
        return settings

    @property
    def display_name(self) -> Optional[str]:
        return load_settings_file(self.path).get(DISPLAY_NAME_KEY) or None

    def set_display_name(self, name: Optional[str]) -> None:
        data = load_settings_file(self.path)
        if name:
            data[DISPLAY_NAME_KEY] = name
        else:
            data.pop(DISPLAY_NAME_KEY, None)
        save_settings_file(self.path, data)

    def _broadcast(self, settings: FeedSettings) -> None:
        self._last_seen = settings
        for listener in list(self._listeners):
            listener(settings)

    def _mtime(self) -> Optional[float]:
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return None

    def _remember_mtime(self) -> None:
        self._last_mtime = self._mtime()
