from typing import Any, Dict, List, Tuple, Optional
import logging

from .gemini_gen import GEMINI_DEFAULT_MODEL, generate_similar_problems
from .sections import split_sections

logger = logging.getLogger(__name__)


def run_generation(
    images: List[Tuple[bytes, str]],
    question_count: int = 3,
    custom_instructions: str = "",
    model_name: str = GEMINI_DEFAULT_MODEL,
    api_key: Optional[str] = None,
) -> Dict[str, Any]:
    """
    images → one Gemini request → reply text split into its sections.

    Returns:
        {"result": str, "sections": {"problems", "solutions", "guide"}}
    """
    if not images:
        raise ValueError("問題画像がありません。Add at least one image first.")

    text = generate_similar_problems(
        images,
        question_count=question_count,
        custom_instructions=custom_instructions,
        model_name=model_name or GEMINI_DEFAULT_MODEL,
        api_key=api_key,
    )
    sections = split_sections(text)
    missing = [k for k, v in sections.items() if not v]
    if missing:
        logger.warning("Reply is missing section(s): %s", ", ".join(missing))
    return {"result": text, "sections": sections}
