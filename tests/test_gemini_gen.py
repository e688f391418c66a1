"""Prompt building and the single Gemini request."""
from __future__ import annotations

import base64
from types import SimpleNamespace

import pytest

from ruidai.core import gemini_gen
from ruidai.core.gemini_gen import (
    build_generation_prompt,
    clamp_question_count,
    configure_gemini,
    generate_similar_problems,
    image_part,
)
from ruidai.core.pipeline import run_generation

from conftest import SAMPLE_REPLY


def test_prompt_has_count_format_and_optional_extra():
    p = build_generation_prompt(5, "途中式を詳しく書いて")
    assert "類似した5問の問題" in p
    assert "追加指示: 途中式を詳しく書いて" in p
    for heading in ("## 問題", "## 解答・解説", "## 講師向けガイド"):
        assert heading in p
    assert "追加指示" not in build_generation_prompt(3, "   ")


@pytest.mark.parametrize("given,expected", [(3, 3), (0, 3), ("7", 7), (None, 3), ("x", 3), (-2, 1), (50, 10)])
def test_clamp_question_count(given, expected):
    assert clamp_question_count(given) == expected


def test_image_part_is_base64_inline_data(png_bytes):
    part = image_part(png_bytes, "image/png")
    assert part["mime_type"] == "image/png"
    assert base64.b64decode(part["data"]) == png_bytes


def test_configure_gemini_key_precedence(monkeypatch):
    import google.generativeai as genai

    seen = []
    monkeypatch.setattr(genai, "configure", lambda api_key=None: seen.append(api_key))
    monkeypatch.setenv("GEMINI_API_KEY", "env-gemini")
    monkeypatch.setenv("GOOGLE_API_KEY", "env-google")
    configure_gemini("saved")
    configure_gemini(None)
    monkeypatch.delenv("GEMINI_API_KEY")
    configure_gemini(None)
    assert seen == ["saved", "env-gemini", "env-google"]


def test_configure_gemini_without_key_raises(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    with pytest.raises(RuntimeError):
        configure_gemini(None)


def test_generate_sends_prompt_then_images(fake_genai, png_bytes):
    text = generate_similar_problems(
        [(png_bytes, "image/png"), (b"\xff\xd8jpeg", "image/jpeg")],
        question_count=2,
        model_name="gemini-1.5-flash",
        api_key="KEY",
    )
    assert text == SAMPLE_REPLY
    contents = fake_genai.calls["contents"]
    assert isinstance(contents[0], str) and "類似した2問" in contents[0]
    assert [c["mime_type"] for c in contents[1:]] == ["image/png", "image/jpeg"]
    assert fake_genai.calls["model_name"] == "gemini-1.5-flash"
    assert fake_genai.calls["api_key"] == "KEY"


def test_generate_without_images_raises(fake_genai):
    with pytest.raises(ValueError):
        generate_similar_problems([], api_key="KEY")


def test_empty_reply_raises(fake_genai, png_bytes):
    fake_genai.reply = "   "
    with pytest.raises(RuntimeError):
        generate_similar_problems([(png_bytes, "image/png")], api_key="KEY")


def test_reply_text_falls_back_to_candidate_parts():
    class Blocked:
        @property
        def text(self):
            raise ValueError("no text")

        candidates = [SimpleNamespace(content=SimpleNamespace(parts=[SimpleNamespace(text="a"), SimpleNamespace(text="b")]))]

    assert gemini_gen._response_text(Blocked()) == "ab"


def test_run_generation_splits_sections(fake_genai, png_bytes):
    out = run_generation([(png_bytes, "image/png")], api_key="KEY")
    assert out["result"] == SAMPLE_REPLY
    assert out["sections"]["problems"].startswith("### 問題1")
    assert out["sections"]["guide"].startswith("### 指導のポイント")
