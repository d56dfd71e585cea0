from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from .config import ResponsePolicy

# Package-relative prompts directory
PROMPT_ROOT = Path(__file__).resolve().parents[1] / "prompts"

DEFAULT_QUESTION = "這個東西多少錢？哪裡可以買到？"

_POLICY_TO_PROMPT: Dict[ResponsePolicy, str] = {
    ResponsePolicy.SCHEMA: "appraiser_schema",
    ResponsePolicy.FREETEXT: "appraiser_freetext",
}


@lru_cache(maxsize=32)
def load_prompt(name: str, version: str = "v1") -> str:
    """
    Load the prompt template for a given prompt name and version.

    File layout (flat):
        prompts/{name}_{version}.md

    Examples:
        load_prompt("appraiser_schema") -> prompts/appraiser_schema_v1.md
        load_prompt("appraiser_freetext", "v2") -> prompts/appraiser_freetext_v2.md
    """
    filename = f"{name}_{version}.md"
    path = PROMPT_ROOT / filename

    if not path.exists():
        raise FileNotFoundError(f"Prompt file not found: {path}")

    return path.read_text(encoding="utf-8")


def render_prompt(template: str, question: str, language: str) -> str:
    # Templates contain literal JSON braces, so str.format is not usable here.
    return template.replace("{{language}}", language).replace("{{question}}", question)


def build_analysis_prompt(
    policy: ResponsePolicy,
    question: Optional[str],
    language: str,
    version: str = "v1",
) -> str:
    """
    Render the instruction text sent alongside the image.

    A blank or missing question falls back to DEFAULT_QUESTION.
    """
    template = load_prompt(_POLICY_TO_PROMPT[policy], version)
    effective_question = (question or "").strip() or DEFAULT_QUESTION
    return render_prompt(template, effective_question, language)
