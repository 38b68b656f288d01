import json

import pytest

from cashtrack.categories import CategoryRegistry
from cashtrack.events import DARK_MODE_CHANGED, EventBus
from cashtrack.exceptions import ProtectedCategory
from cashtrack.preferences import CUSTOM_CATEGORIES_KEY, DARK_MODE_KEY, Preferences


def make_wired(path):
    bus = EventBus()
    prefs = Preferences(str(path))
    prefs.attach(bus)
    return bus, prefs, CategoryRegistry(prefs.custom_categories, bus=bus)


def test_defaults_when_missing(tmp_path):
    prefs = Preferences(str(tmp_path / "prefs.json"))
    assert prefs.custom_categories == {}
    assert prefs.dark_mode is False


def test_unreadable_file_means_defaults(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("{not json")
    assert Preferences(str(path)).custom_categories == {}


def test_category_changes_are_persisted(tmp_path):
    path = tmp_path / "prefs.json"
    _, _, registry = make_wired(path)

    registry.add("Pets", "#123456")
    assert json.loads(path.read_text())[CUSTOM_CATEGORIES_KEY] == {"Pets": "#123456"}

    # a fresh session sees the custom category
    _, _, reloaded = make_wired(path)
    assert "Pets" in reloaded.names()

    reloaded.remove("Pets")
    assert json.loads(path.read_text())[CUSTOM_CATEGORIES_KEY] == {}


def test_failed_remove_writes_nothing(tmp_path):
    path = tmp_path / "prefs.json"
    _, _, registry = make_wired(path)
    with pytest.raises(ProtectedCategory):
        registry.remove("Rent")
    assert not path.exists()


def test_dark_mode_event(tmp_path):
    path = tmp_path / "prefs.json"
    bus, prefs, _ = make_wired(path)
    bus.publish(DARK_MODE_CHANGED, {"enabled": True})
    assert prefs.dark_mode is True
    assert json.loads(path.read_text())[DARK_MODE_KEY] is True
    assert Preferences(str(path)).dark_mode is True
