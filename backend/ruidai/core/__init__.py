# backend/ruidai/core/__init__.py

# ---- Gemini generation ----
from .gemini_gen import (
    GEMINI_DEFAULT_MODEL,
    AVAILABLE_MODELS,
    PRESETS,
    configure_gemini,
    clamp_question_count,
    build_generation_prompt,
    image_part,
    generate_similar_problems,
)

# ---- Reply parsing ----
from .sections import (
    SECTION_HEADINGS,
    extract_section,
    extract_problems,
    extract_solutions,
    extract_guide,
    split_sections,
)

# ---- Printing ----
from .print_md import render_print_markdown
from .print_doc import PAGE_HEIGHT_PX, PRINT_MODES, build_print_document, sections_for_mode

# ---- Pages ----
from .pages import index_page, result_page

# ---- Images / local storage ----
from .images import ImageSession, decode_data_url, encode_data_url, sniff_mime
from .storage import LocalStore, SheetStore, load_settings, save_settings

# ---- Orchestration ----
from .pipeline import run_generation


__all__ = [
    # gemini
    "GEMINI_DEFAULT_MODEL", "AVAILABLE_MODELS", "PRESETS", "configure_gemini",
    "clamp_question_count", "build_generation_prompt", "image_part",
    "generate_similar_problems",
    # sections
    "SECTION_HEADINGS", "extract_section", "extract_problems",
    "extract_solutions", "extract_guide", "split_sections",
    # print
    "render_print_markdown", "PAGE_HEIGHT_PX", "PRINT_MODES",
    "build_print_document", "sections_for_mode",
    # pages
    "index_page", "result_page",
    # images / storage
    "ImageSession", "decode_data_url", "encode_data_url", "sniff_mime",
    "LocalStore", "SheetStore", "load_settings", "save_settings",
    # pipeline
    "run_generation",
]
