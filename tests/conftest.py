from __future__ import annotations

import io
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from PIL import Image

SAMPLE_REPLY = """はい、作成しました。

## 問題

### 問題1
$2x + 3 = 7$ を解きなさい。

### 問題2
**次の式**を計算しなさい: $3 \\times 4$

---

## 解答・解説

### 問題1の解答
**答え:** $x = 2$
**解説:** 両辺から3を引いて2で割る。

---

## 講師向けガイド

### 指導のポイント
移項の意味を確認する。
"""


def make_png(size=(40, 30), color=(255, 0, 0)) -> bytes:
    bio = io.BytesIO()
    Image.new("RGB", size, color=color).save(bio, format="PNG")
    return bio.getvalue()


def make_jpeg(size=(20, 20)) -> bytes:
    bio = io.BytesIO()
    Image.new("RGB", size, color=(0, 0, 255)).save(bio, format="JPEG")
    return bio.getvalue()


class FakeModel:
    def __init__(self, recorder: dict[str, Any], reply: str):
        self.recorder = recorder
        self.reply = reply

    def generate_content(self, contents):
        self.recorder["contents"] = contents
        if isinstance(self.reply, Exception):
            raise self.reply
        return SimpleNamespace(text=self.reply)


class FakeGenai:
    """Stands in for the google.generativeai module returned by configure_gemini."""

    def __init__(self, reply: Any = SAMPLE_REPLY):
        self.calls: dict[str, Any] = {}
        self.reply = reply

    def GenerativeModel(self, model_name):
        self.calls["model_name"] = model_name
        return FakeModel(self.calls, self.reply)


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def fake_genai(monkeypatch) -> FakeGenai:
    from ruidai.core import gemini_gen

    fake = FakeGenai()

    def _configure(api_key=None):
        fake.calls["api_key"] = api_key
        return fake

    monkeypatch.setattr(gemini_gen, "configure_gemini", _configure)
    return fake


@pytest.fixture
def client(tmp_path: Path, monkeypatch):
    from fastapi.testclient import TestClient
    from ruidai import app as app_module

    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.setattr(app_module, "state", app_module.AppState(tmp_path))
    return TestClient(app_module.app)
