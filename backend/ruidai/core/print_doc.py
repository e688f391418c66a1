# -*- coding: utf-8 -*-
from typing import Dict, List, Optional, Tuple
import html
import time

from .print_md import render_print_markdown
from .sections import split_sections

A4_HEIGHT_MM = 297
PAGE_MARGIN_MM = 12
# usable A4 height at 96 dpi inside the @page margins (~1031px), less slack for borders
PAGE_HEIGHT_PX = int((A4_HEIGHT_MM - 2 * PAGE_MARGIN_MM) * 96 / 25.4) - 10

ACCENT_Q = "#2563eb"   # blue
ACCENT_A = "#10b981"   # green
ACCENT_X = "#eab308"   # amber
FONT_SANS = '"Hiragino Kaku Gothic ProN", "Noto Sans JP", "Meiryo", sans-serif'

SECTION_TITLES: Dict[str, Tuple[str, str]] = {
    "problems": ("問題", ACCENT_Q),
    "solutions": ("解答・解説", ACCENT_A),
    "guide": ("講師向けガイド", ACCENT_X),
}

PRINT_MODES: Dict[str, List[str]] = {
    "problems": ["problems"],
    "answers": ["solutions"],
    "guide": ["guide"],
    "answers_guide": ["solutions", "guide"],
    "all": ["problems", "solutions", "guide"],
}

DEFAULT_TITLE = "類題プリント"


# ---------------------------
# Fragments
# ---------------------------
def _header_html(title: str, student: str, instructor: str, date: str) -> str:
    fields = []
    if date:
        fields.append(f'<span class="field">日付: {html.escape(date)}</span>')
    if student:
        fields.append(f'<span class="field">生徒: {html.escape(student)}</span>')
    if instructor:
        fields.append(f'<span class="field">講師: {html.escape(instructor)}</span>')
    return (
        '<header class="sheet-header">'
        f"<h1>{html.escape(title)}</h1>"
        f'<div class="fields">{"".join(fields)}</div>'
        "</header>"
    )


def _section_html(key: str, body_md: str) -> str:
    label, color = SECTION_TITLES[key]
    body = render_print_markdown(body_md) or '<p class="empty">(なし)</p>'
    return (
        f'<section class="section section-{key}">'
        f'<h2 style="border-color:{color};color:{color}">{label}</h2>'
        f'<div class="body">{body}</div>'
        "</section>"
    )


_STYLE = """
@page { size: A4; margin: %(margin)dmm; }
* { box-sizing: border-box; }
body { margin: 0; font-family: %(font)s; color: #111; background: #fff; }
.page { width: 100%%; transform-origin: top left; }
.sheet-header { border-bottom: 2px solid #111; margin-bottom: 12px; padding-bottom: 6px; }
.sheet-header h1 { font-size: 20px; margin: 0 0 4px; }
.fields { display: flex; gap: 24px; font-size: 13px; }
.field { min-width: 140px; border-bottom: 1px solid #999; }
.section { margin-bottom: 16px; }
.section h2 { font-size: 16px; border-left: 5px solid; padding-left: 8px; margin: 0 0 8px; }
.section h3 { font-size: 14px; margin: 10px 0 4px; }
.body { font-size: 13px; line-height: 1.7; }
.empty { color: #888; }
@media print { .no-print { display: none; } }
"""

# scale .page down (never up) so the whole sheet fits one page
_FIT_SCRIPT = """
(function () {
  var PAGE_HEIGHT = %(page_height)d;
  function fit() {
    var page = document.querySelector('.page');
    if (!page) return;
    page.style.transform = '';
    var h = page.scrollHeight;
    if (h > PAGE_HEIGHT) {
      var s = PAGE_HEIGHT / h;
      page.style.transform = 'scale(' + s + ')';
      page.style.width = (100 / s) + '%%';
    }
  }
  window.addEventListener('load', fit);
  window.addEventListener('beforeprint', fit);
})();
"""


# ---------------------------
# Public API
# ---------------------------
def sections_for_mode(mode: str) -> List[str]:
    try:
        return PRINT_MODES[mode]
    except KeyError:
        raise ValueError(f"Unknown print mode: {mode!r}. Use one of {', '.join(PRINT_MODES)}")


def build_print_document(
    result: str,
    mode: str = "problems",
    student: str = "",
    instructor: str = "",
    date: Optional[str] = None,
    title: str = DEFAULT_TITLE,
    page_height: int = PAGE_HEIGHT_PX,
) -> str:
    """
    Standalone, printable HTML for the chosen sections of a generation result.

    date: defaults to today (YYYY-MM-DD); pass "" to leave it off the header.
    """
    keys = sections_for_mode(mode)
    sections = split_sections(result)
    if date is None:
        date = time.strftime("%Y-%m-%d")

    body = "".join(_section_html(k, sections[k]) for k in keys)
    return f"""<!doctype html>
<html lang="ja">
<head>
<meta charset="utf-8" />
<title>{html.escape(title or DEFAULT_TITLE)}</title>
<style>{_STYLE % {"font": FONT_SANS, "margin": PAGE_MARGIN_MM}}</style>
</head>
<body>
<div class="page">
{_header_html(title or DEFAULT_TITLE, student or "", instructor or "", date)}
{body}
</div>
<button class="no-print" onclick="window.print()">印刷</button>
<script>{_FIT_SCRIPT % {"page_height": int(page_height)}}</script>
</body>
</html>"""
