from __future__ import annotations

import re
from typing import Dict, Optional, Tuple

from ..observability.logging import get_logger
from ..schemas.analysis import AnalysisResult, default_analysis_result, default_online_links

logger = get_logger("services.freetext")

# field name on AnalysisResult -> labels searched for (case-insensitive substring)
LABELS: Dict[str, Tuple[str, ...]] = {
    "name": ("item name", "物品名稱"),
    "price": ("estimated price", "估計價格"),
    "availability": ("purchase channel", "購買管道"),
    "description": ("item description", "物品描述"),
    "origin": ("historical origin", "歷史由來"),
}

# ASCII or full-width colon, whichever comes first on the line.
_COLON_RE = re.compile("[:：]")


def _value_after_colon(line: str) -> Optional[str]:
    match = _COLON_RE.search(line)
    if match is None:
        return None
    value = line[match.end():].strip()
    return value or None


def _match_field(line: str) -> Optional[str]:
    lowered = line.lower()
    for field, labels in LABELS.items():
        if any(label in lowered for label in labels):
            return field
    return None


def parse_freetext(text: str) -> AnalysisResult:
    """
    Legacy parser for free-text model replies.

    Each line is checked for one of the labels in LABELS; the text after the
    first colon on that line becomes the field value. The first non-empty
    value per field wins and any field without a match keeps its default
    placeholder. An extracted name is also used as the search term for
    every online platform.
    """
    extracted: Dict[str, str] = {}

    for line in text.splitlines():
        field = _match_field(line)
        if field is None or field in extracted:
            continue
        value = _value_after_colon(line)
        if value is not None:
            extracted[field] = value

    missing = [field for field in LABELS if field not in extracted]
    if missing:
        logger.info(
            "Free-text reply missing labels; using placeholders",
            extra={"missing_fields": ",".join(missing)},
        )

    if not extracted:
        return default_analysis_result()

    update: Dict[str, object] = dict(extracted)
    if "name" in extracted:
        defaults = default_analysis_result()
        update["purchase_links"] = defaults.purchase_links.model_copy(
            update={"online": default_online_links(extracted["name"])}
        )
    return AnalysisResult(**update)
