"""Local key-value store, settings and saved sheets."""
from __future__ import annotations

import json
import threading

import pytest

from ruidai.core.storage import (
    KEY_API_KEY,
    KEY_SAVED_SHEETS,
    LocalStore,
    SheetStore,
    load_settings,
    save_settings,
)


@pytest.fixture
def store(tmp_path) -> LocalStore:
    return LocalStore(tmp_path / "ls" / "local_storage.json")


def test_get_set_remove(store):
    assert store.get("missing") is None
    assert store.get("missing", "d") == "d"
    store.set("k", "v")
    store.set("n", 3)
    assert store.get("k") == "v"
    assert store.get("n") == "3"
    store.remove("k")
    assert store.get("k") is None


def test_values_persist_across_instances(store):
    store.set("k", "日本語")
    again = LocalStore(store.path)
    assert again.get("k") == "日本語"


def test_corrupt_file_is_treated_as_empty(store):
    store.path.write_text("{not json", encoding="utf-8")
    assert store.get("k") is None
    store.set("k", "v")
    assert json.loads(store.path.read_text(encoding="utf-8")) == {"k": "v"}


def test_settings_roundtrip_and_default_model(store):
    assert load_settings(store, default_model="m0") == {
        "api_key": "", "model": "m0", "student": "", "instructor": "",
    }
    save_settings(store, api_key="KEY", student="Hanako", model=None)
    s = load_settings(store, default_model="m0")
    assert s["api_key"] == "KEY" and s["student"] == "Hanako" and s["model"] == "m0"
    assert store.get(KEY_API_KEY) == "KEY"


def test_save_settings_rejects_unknown_field(store):
    with pytest.raises(ValueError):
        save_settings(store, color="red")


def test_sheets_append_list_delete(store):
    sheets = SheetStore(store)
    assert sheets.list() == []
    a = sheets.add("A", "s", "i", "2026-10-18", "## 問題\nx")
    b = sheets.add("B", "", "", "", "y")
    assert a["id"] != b["id"]
    assert [s["title"] for s in sheets.list()] == ["A", "B"]
    assert sheets.get(a["id"])["result"] == "## 問題\nx"

    assert sheets.delete(a["id"]) is True
    assert sheets.delete(a["id"]) is False
    assert [s["id"] for s in sheets.list()] == [b["id"]]
    assert sheets.get(a["id"]) is None


def test_corrupt_sheet_list(store):
    store.set(KEY_SAVED_SHEETS, "[oops")
    assert SheetStore(store).list() == []


def test_concurrent_settings_and_sheet_writes_lose_nothing(store):
    sheets = SheetStore(store)
    save_settings(store, api_key="KEEP")
    errors = []

    def settings_writer(n):
        try:
            for i in range(50):
                save_settings(store, student=f"s{n}-{i}", instructor=f"i{n}-{i}", model="m")
        except Exception as e:
            errors.append(e)

    def sheet_writer(n):
        try:
            for i in range(10):
                sheets.add(f"t{n}-{i}", "", "", "", "r")
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=settings_writer, args=(n,)) for n in range(4)]
    threads += [threading.Thread(target=sheet_writer, args=(n,)) for n in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    s = load_settings(store)
    assert s["api_key"] == "KEEP" and s["model"] == "m"
    assert len(sheets.list()) == 20
    assert len({sh["id"] for sh in sheets.list()}) == 20
    # no temp files left behind
    assert [p.name for p in store.path.parent.iterdir()] == [store.path.name]


def test_save_settings_writes_all_fields_in_one_update(store, monkeypatch):
    dumps = []
    real_dump = store._dump
    monkeypatch.setattr(store, "_dump", lambda data: (dumps.append(dict(data)), real_dump(data)))
    save_settings(store, api_key="K", model="M", student="S", instructor="I")
    assert len(dumps) == 1
    assert load_settings(store) == {"api_key": "K", "model": "M", "student": "S", "instructor": "I"}
