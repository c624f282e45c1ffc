import json

import pytest

from adapters.preference_store import (
    InMemoryPreferenceStore,
    JsonFilePreferenceStore,
    PreferenceKeys,
    preference_store_for_device,
)
from common.exceptions import PreferenceStoreException
from config.config import settings
from dependencies import preferences_for_device


def test_in_memory_last_write_wins():
    store = InMemoryPreferenceStore()
    store.set(PreferenceKeys.INTEREST_TAGS, ["a"])
    store.set(PreferenceKeys.INTEREST_TAGS, ["b"])
    assert store.get(PreferenceKeys.INTEREST_TAGS) == ["b"]
    assert store.remove(PreferenceKeys.INTEREST_TAGS)
    assert store.get(PreferenceKeys.INTEREST_TAGS, "missing") == "missing"


def test_json_file_store_persists_across_instances(tmp_path):
    path = tmp_path / "prefs" / "device.json"
    JsonFilePreferenceStore(str(path)).set(PreferenceKeys.TOTAL_REPORTS, 3)

    reopened = JsonFilePreferenceStore(str(path))
    assert reopened.get(PreferenceKeys.TOTAL_REPORTS) == 3
    assert json.loads(path.read_text(encoding="utf-8")) == {"total_reports": 3}


def test_json_file_store_leaves_no_temp_files(tmp_path):
    store = JsonFilePreferenceStore(str(tmp_path / "device.json"))
    store.set("a", 1)
    store.set("b", 2)
    store.remove("a")
    assert [p.name for p in tmp_path.iterdir()] == ["device.json"]
    assert store.snapshot() == {"b": 2}


def test_corrupt_file_raises(tmp_path):
    path = tmp_path / "device.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(PreferenceStoreException):
        JsonFilePreferenceStore(str(path)).get("a")


def test_unserializable_value_keeps_previous_state(tmp_path):
    store = JsonFilePreferenceStore(str(tmp_path / "device.json"))
    store.set("a", 1)
    with pytest.raises(PreferenceStoreException):
        store.set("b", object())
    assert store.snapshot() == {"a": 1}


def test_store_for_device(tmp_path):
    assert isinstance(preference_store_for_device(str(tmp_path), None), InMemoryPreferenceStore)

    store = preference_store_for_device(str(tmp_path), "../weird/id")
    assert isinstance(store, JsonFilePreferenceStore)
    assert store.path.parent == tmp_path
    assert "/" not in store.path.name


def test_callers_without_device_do_not_share_preferences(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "preferences_dir", str(tmp_path))

    first = preferences_for_device(None)
    first.set(PreferenceKeys.INTEREST_TAGS, ["Jazz"])
    second = preferences_for_device(None)

    assert second is not first
    assert second.get(PreferenceKeys.INTEREST_TAGS) is None
    assert preferences_for_device("device-7") is preferences_for_device("device-7")
