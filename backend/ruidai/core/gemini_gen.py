from typing import Any, Dict, List, Tuple, Optional
import os, base64, logging

logger = logging.getLogger(__name__)

GEMINI_DEFAULT_MODEL = "gemini-3-flash-preview"

AVAILABLE_MODELS: List[Dict[str, str]] = [
    {"value": "gemini-1.5-pro", "label": "Gemini 1.5 Pro"},
    {"value": "gemini-1.5-flash", "label": "Gemini 1.5 Flash"},
    {"value": "gemini-2.0-flash-exp", "label": "Gemini 2.0 Flash"},
    {"value": "gemini-3-flash-preview", "label": "Gemini 3 Flash Preview"},
]

PRESETS: List[Dict[str, str]] = [
    {"label": "難しめ", "value": "難易度を少し上げて"},
    {"label": "計算重視", "value": "途中式を詳しく書いて"},
    {"label": "解説重視", "value": "解説を詳しくして"},
]

MIN_QUESTIONS = 1
MAX_QUESTIONS = 10
DEFAULT_QUESTIONS = 3


# ------------------------------------------------------------
# Gemini configuration (settings key first, then env)
# ------------------------------------------------------------
def configure_gemini(api_key: Optional[str] = None):
    """
    Configure google-generativeai with a required API key.

    Precedence:
      1) function arg `api_key` (the key saved in settings)
      2) env var GEMINI_API_KEY
      3) env var GOOGLE_API_KEY

    If none is set, raises a clear error.
    """
    key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
    if not key:
        raise RuntimeError(
            "APIキーを入力してください (Gemini API key not found; save it in settings "
            "or set GEMINI_API_KEY on the server)."
        )
    import google.generativeai as genai
    genai.configure(api_key=key)
    return genai


# ------------------------------------------------------------
# Prompting
# ------------------------------------------------------------
GEN_SYSTEM = "あなたは教育のプロフェッショナルです。"

OUTPUT_FORMAT = """以下の形式で出力してください：

## 問題

### 問題1
[問題文]

### 問題2
[問題文]

(以下同様)

---

## 解答・解説

### 問題1の解答
**答え:** [答え]
**解説:** [解説]

### 問題2の解答
**答え:** [答え]
**解説:** [解説]

(以下同様)

---

## 講師向けガイド

### 指導のポイント
[この問題を教える際の重要ポイント]

### つまずきやすいポイント
[生徒がつまずきやすい箇所と対策]
"""


def clamp_question_count(n: Any) -> int:
    try:
        n = int(n)
    except (TypeError, ValueError):
        return DEFAULT_QUESTIONS
    if n < MIN_QUESTIONS:
        return DEFAULT_QUESTIONS if n == 0 else MIN_QUESTIONS
    return min(n, MAX_QUESTIONS)


def build_generation_prompt(question_count: int = DEFAULT_QUESTIONS, custom_instructions: str = "") -> str:
    n = clamp_question_count(question_count)
    extra = (custom_instructions or "").strip()
    extra_line = f"追加指示: {extra}" if extra else ""
    return f"""{GEN_SYSTEM}添付された問題画像を分析し、類似した{n}問の問題を作成してください。

{extra_line}

{OUTPUT_FORMAT}"""


def image_part(data: bytes, mime_type: str = "image/png") -> Dict[str, str]:
    """Inline image part in the shape generate_content accepts."""
    return {
        "mime_type": mime_type or "image/png",
        "data": base64.b64encode(data).decode("utf-8"),
    }


def _response_text(resp) -> str:
    # .text raises ValueError when the reply has no usable part
    try:
        text = resp.text
    except (ValueError, AttributeError):
        text = None
    if text:
        return text
    candidates = getattr(resp, "candidates", None) or []
    for c in candidates:
        parts = getattr(getattr(c, "content", None), "parts", None) or []
        joined = "".join(getattr(p, "text", "") or "" for p in parts)
        if joined:
            return joined
    return ""


# ------------------------------------------------------------
# Public helpers
# ------------------------------------------------------------
def generate_similar_problems(
    images: List[Tuple[bytes, str]],
    question_count: int = DEFAULT_QUESTIONS,
    custom_instructions: str = "",
    model_name: str = GEMINI_DEFAULT_MODEL,
    api_key: Optional[str] = None,
) -> str:
    """
    Send the instruction prompt plus every image in one request and return the reply text.

    images: list of (bytes, mime_type) in display order.
    """
    if not images:
        raise ValueError("No problem images to send.")

    genai = configure_gemini(api_key)
    model = genai.GenerativeModel(model_name or GEMINI_DEFAULT_MODEL)

    prompt = build_generation_prompt(question_count, custom_instructions)
    parts = [image_part(data, mime) for data, mime in images]

    logger.info("Requesting %d similar problems from %s with %d image(s)",
                clamp_question_count(question_count), model_name, len(parts))
    resp = model.generate_content([prompt, *parts])
    text = _response_text(resp)
    if not text.strip():
        raise RuntimeError("The model returned an empty reply.")
    return text
