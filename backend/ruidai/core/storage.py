# -*- coding: utf-8 -*-
"""
Local key-value store standing in for browser localStorage.

One JSON file of string keys → string values. The saved-sheet list is kept
JSON-encoded under a single key, the same way the page would keep it.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
from pathlib import Path
import json
import logging
import os
import tempfile
import threading
import time

logger = logging.getLogger(__name__)

KEY_API_KEY = "ruidai_api_key"
KEY_MODEL = "ruidai_model"
KEY_STUDENT = "ruidai_student"
KEY_INSTRUCTOR = "ruidai_instructor"
KEY_SAVED_SHEETS = "ruidai_saved_sheets"

SETTINGS_KEYS: Dict[str, str] = {
    "api_key": KEY_API_KEY,
    "model": KEY_MODEL,
    "student": KEY_STUDENT,
    "instructor": KEY_INSTRUCTOR,
}


class LocalStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # one lock per store; every read-modify-write runs under it
        self.lock = threading.RLock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError):
            logger.exception("Local store %s unreadable; starting empty", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _dump(self, data: Dict[str, str]) -> None:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=self.path.parent, prefix=self.path.name + ".", suffix=".tmp", delete=False
        ) as fh:
            json.dump(data, fh, ensure_ascii=False, indent=2)
            tmp = fh.name
        try:
            os.replace(tmp, self.path)
        except OSError:
            os.unlink(tmp)
            raise

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with self.lock:
            return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: Dict[str, Any]) -> None:
        """Write several keys in one load + dump."""
        with self.lock:
            data = self._load()
            for key, value in values.items():
                data[key] = "" if value is None else str(value)
            self._dump(data)

    def remove(self, key: str) -> None:
        with self.lock:
            data = self._load()
            if data.pop(key, None) is not None:
                self._dump(data)

    def snapshot(self) -> Dict[str, str]:
        with self.lock:
            return self._load()


# ---------------------------
# Settings
# ---------------------------
def load_settings(store: LocalStore, default_model: str = "") -> Dict[str, str]:
    data = store.snapshot()
    out = {name: data.get(key, "") or "" for name, key in SETTINGS_KEYS.items()}
    if not out["model"]:
        out["model"] = default_model
    return out


def save_settings(store: LocalStore, **fields: Optional[str]) -> None:
    """Persist the given settings; None leaves a field untouched."""
    unknown = [name for name in fields if name not in SETTINGS_KEYS]
    if unknown:
        raise ValueError(f"Unknown setting: {unknown[0]}")
    store.update({SETTINGS_KEYS[name]: value for name, value in fields.items() if value is not None})


# ---------------------------
# Saved sheets
# ---------------------------
class SheetStore:
    """Append / list / delete snapshots of generated sheets, keyed by creation time (ms)."""

    def __init__(self, store: LocalStore):
        self.store = store

    def list(self) -> List[Dict[str, Any]]:
        raw = self.store.get(KEY_SAVED_SHEETS, "[]") or "[]"
        try:
            sheets = json.loads(raw)
        except json.JSONDecodeError:
            logger.exception("Saved sheets list is corrupt; ignoring it")
            return []
        return [s for s in sheets if isinstance(s, dict)] if isinstance(sheets, list) else []

    def add(self, title: str, student: str, instructor: str, date: str, result: str) -> Dict[str, Any]:
        with self.store.lock:
            sheets = self.list()
            sheet_id = int(time.time() * 1000)
            # two saves in the same millisecond
            while any(s.get("id") == sheet_id for s in sheets):
                sheet_id += 1
            sheet = {
                "id": sheet_id,
                "title": title or "",
                "student": student or "",
                "instructor": instructor or "",
                "date": date or "",
                "result": result or "",
                "created_at": time.strftime("%Y-%m-%dT%H:%M:%S"),
            }
            sheets.append(sheet)
            self.store.set(KEY_SAVED_SHEETS, json.dumps(sheets, ensure_ascii=False))
        logger.info("Saved sheet %s (%s)", sheet_id, sheet["title"])
        return sheet

    def get(self, sheet_id: int) -> Optional[Dict[str, Any]]:
        for s in self.list():
            if s.get("id") == sheet_id:
                return s
        return None

    def delete(self, sheet_id: int) -> bool:
        with self.store.lock:
            sheets = self.list()
            keep = [s for s in sheets if s.get("id") != sheet_id]
            if len(keep) == len(sheets):
                return False
            self.store.set(KEY_SAVED_SHEETS, json.dumps(keep, ensure_ascii=False))
        return True
