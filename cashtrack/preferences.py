import json
import logging
from pathlib import Path
from typing import Any

from cashtrack.events import CATEGORY_ADDED, CATEGORY_REMOVED, DARK_MODE_CHANGED, Event, EventBus

logger = logging.getLogger(__name__)

CUSTOM_CATEGORIES_KEY = "mitcash_custom_categories"
DARK_MODE_KEY = "mitcash_dark_mode"


class Preferences:
    """Client-side settings kept outside the transaction store.

    Read once at startup and written back on every change. A missing or
    unreadable file means defaults.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._data: dict[str, Any] = self._read()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable preferences %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2)

    @property
    def custom_categories(self) -> dict[str, str]:
        customs = self._data.get(CUSTOM_CATEGORIES_KEY) or {}
        return {str(k): str(v) for k, v in customs.items()}

    def save_custom_categories(self, customs: dict[str, str]) -> None:
        self._data[CUSTOM_CATEGORIES_KEY] = dict(customs)
        self._write()

    @property
    def dark_mode(self) -> bool:
        return bool(self._data.get(DARK_MODE_KEY, False))

    def set_dark_mode(self, enabled: bool) -> None:
        self._data[DARK_MODE_KEY] = bool(enabled)
        self._write()

    def on_categories_changed(self, event: Event, payload: dict) -> dict:
        self.save_custom_categories(payload.get("customs", {}))
        return {"saved": CUSTOM_CATEGORIES_KEY}

    def on_dark_mode_changed(self, event: Event, payload: dict) -> dict:
        self.set_dark_mode(payload.get("enabled", False))
        return {"saved": DARK_MODE_KEY}

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(CATEGORY_ADDED, self.on_categories_changed)
        bus.subscribe(CATEGORY_REMOVED, self.on_categories_changed)
        bus.subscribe(DARK_MODE_CHANGED, self.on_dark_mode_changed)
