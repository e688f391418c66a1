# -*- coding: utf-8 -*-
"""
Minimal markdown → HTML for the print document.

Only ### headings, **bold**, *italic* and line breaks are handled. The
on-screen view renders the full reply client-side (marked + MathJax), so the
two outputs can differ for the same text.
"""

import html
import re

# applied in order; bold must run before italic
_SUBSTITUTIONS = [
    (re.compile(r"^###[ \t]+(.+?)[ \t]*$", re.M), r"<h3>\1</h3>"),
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.+?)\*"), r"<em>\1</em>"),
]
_BREAK_RE = re.compile(r"\r?\n")


def render_print_markdown(md: str) -> str:
    if not md:
        return ""
    out = html.escape(md, quote=False)
    for pattern, repl in _SUBSTITUTIONS:
        out = pattern.sub(repl, out)
    # no <br> straight after a heading block
    out = re.sub(r"(</h3>)\r?\n", r"\1", out)
    return _BREAK_RE.sub("<br>", out)
