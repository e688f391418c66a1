"""Main screen and result page markup."""
from __future__ import annotations

import pytest

from ruidai.core.pages import index_page, result_page
from ruidai.core.print_doc import PRINT_MODES


@pytest.fixture(params=["index", "result"])
def page(request) -> str:
    if request.param == "index":
        return index_page()
    return result_page("## 問題\n$x_1 + y_1$", "t")


def test_math_is_tokenized_before_markdown(page):
    assert "name: 'math'" in page
    assert "mangle: false" in page
    # inline $...$ as well as the delimited forms
    assert r"/^\$(?!\s)([^$\n]+?)(?<!\s)\$/" in page
    assert "math-inline" in page and "math-block" in page


def test_every_print_mode_has_a_button():
    html = index_page()
    for mode in PRINT_MODES:
        assert f'data-mode="{mode}"' in html


def test_saved_sheet_labels_are_text_not_html():
    html = index_page()
    assert ".textContent = `${s.title} (${s.date})`" in html
    assert "innerHTML = `${s.title}" not in html


def test_result_page_escapes_script_close():
    html = result_page("a </script><script>alert(1)</script>", "t")
    assert "</script><script>alert(1)" not in html
