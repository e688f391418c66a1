# -*- coding: utf-8 -*-
"""
Split the model's markdown reply into its three named sections.

The reply is expected to look like

    ## 問題
    ### 問題1 ...
    ---
    ## 解答・解説
    ...
    ---
    ## 講師向けガイド
    ...

Parsing is best effort: a missing heading gives an empty section and nothing
here ever raises on odd input.
"""

from typing import Dict, Optional
import re

SECTION_HEADINGS: Dict[str, str] = {
    "problems": "問題",
    "solutions": "解答・解説",
    "guide": "講師向けガイド",
}

# level-2 heading only; "### 問題1" must not match "## 問題"
_HEADING_RE = {
    key: re.compile(r"^##(?!#)[ \t]*" + re.escape(label) + r"[ \t]*$", re.M)
    for key, label in SECTION_HEADINGS.items()
}
# next level-2 heading or a horizontal rule line
_END_RE = re.compile(r"^(?:##(?!#)|[ \t]*(?:-{3,}|\*{3,}|_{3,})[ \t]*$)", re.M)
_SUBHEADING_RE = re.compile(r"^###(?!#)", re.M)


def extract_section(text: Optional[str], key: str) -> str:
    """Return the body under the `key` heading, trimmed; '' when absent."""
    if not text or key not in _HEADING_RE:
        return ""
    text = text.replace("\r\n", "\n")
    m = _HEADING_RE[key].search(text)
    if not m:
        return ""
    start = m.end()
    end_m = _END_RE.search(text, start + 1 if start < len(text) else start)
    body = text[start:end_m.start()] if end_m else text[start:]

    # drop stray preamble before the first sub-heading
    sub = _SUBHEADING_RE.search(body)
    if sub and body[:sub.start()].strip():
        body = body[sub.start():]
    return body.strip()


def extract_problems(text: Optional[str]) -> str:
    return extract_section(text, "problems")


def extract_solutions(text: Optional[str]) -> str:
    return extract_section(text, "solutions")


def extract_guide(text: Optional[str]) -> str:
    return extract_section(text, "guide")


def split_sections(text: Optional[str]) -> Dict[str, str]:
    """
    Returns:
        {"problems": str, "solutions": str, "guide": str}
    """
    return {key: extract_section(text, key) for key in SECTION_HEADINGS}
