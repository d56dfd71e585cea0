from __future__ import annotations

import json
import re
from typing import Any, Dict

from pydantic import ValidationError

from ..core.errors import MalformedModelOutput
from ..observability.logging import get_logger
from ..schemas.analysis import AnalysisResult, default_online_links

logger = get_logger("services.structured")

_OPENING_FENCE_RE = re.compile(r"^```[A-Za-z]*")
_CLOSING_FENCE_RE = re.compile(r"```$")


def _strip_code_fences(raw: str) -> str:
    # ```json ... ``` or ``` ... ```, on one line or several
    text = _OPENING_FENCE_RE.sub("", raw.strip(), count=1)
    return _CLOSING_FENCE_RE.sub("", text, count=1).strip()


def parse_model_json(raw: str) -> Dict[str, Any]:
    """
    Parse the model reply into a JSON object.

    Raises MalformedModelOutput when the reply is not JSON or not an object.
    """
    text = _strip_code_fences(raw)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.error("Vision model returned non-JSON content", extra={"preview": raw[:300]})
        raise MalformedModelOutput(f"JSON parse error: {exc}") from exc

    if not isinstance(payload, dict):
        raise MalformedModelOutput(
            f"Expected a JSON object, got {type(payload).__name__}"
        )
    return payload


def _drop_nulls(payload: Dict[str, Any]) -> Dict[str, Any]:
    # A null means "missing", so the model's default placeholder applies.
    return {key: value for key, value in payload.items() if value is not None}


def normalize_result(payload: Dict[str, Any]) -> AnalysisResult:
    """
    Validate a model-produced object against the AnalysisResult schema.

    Omitted or null fields take their placeholders; a missing online link
    list defaults to the known platforms searched by the item name.
    """
    cleaned = _drop_nulls(payload)

    links = cleaned.get("purchaseLinks")
    if isinstance(links, dict):
        links = _drop_nulls(links)
        cleaned["purchaseLinks"] = links

    try:
        result = AnalysisResult.model_validate(cleaned)
    except ValidationError as exc:
        logger.error(
            "Vision model JSON does not match the analysis schema",
            extra={"error_count": exc.error_count()},
        )
        raise MalformedModelOutput(f"Schema validation failed: {exc}") from exc

    if not isinstance(links, dict) or "online" not in links:
        result = result.model_copy(
            update={
                "purchase_links": result.purchase_links.model_copy(
                    update={"online": default_online_links(result.name)}
                )
            }
        )
    return result


def shape_structured(raw: str) -> AnalysisResult:
    return normalize_result(parse_model_json(raw))
