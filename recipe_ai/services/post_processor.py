"""Post-processing of model output: parse leniently and derive estimatedTimeMinutes."""

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from recipe_ai.utils.gemini_parsing import safe_json_loads
from recipe_ai.utils.time_parsing import parse_minutes, parse_minutes_field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostProcessed:
    """Parsed recipe tree, or ``data=None`` with the untouched model text."""

    data: Optional[Dict[str, Any]]
    raw: str

    @property
    def parsed(self) -> bool:
        return self.data is not None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _whole_minutes(value: Any) -> Optional[int]:
    if not _is_number(value) or not math.isfinite(value):
        return None
    return max(0, int(value))


def derive_total_minutes(recipe: Dict[str, Any]) -> Optional[int]:
    """
    Total minutes for a recipe tree.

    An existing numeric estimatedTimeMinutes wins (truncated, clamped at
    zero), then estimatedTime text, then prep + cook. Prep alone never
    produces a total. Text left in estimatedTimeMinutes is parsed last.
    """
    existing = recipe.get("estimatedTimeMinutes")
    numeric = _whole_minutes(existing)
    if numeric is not None:
        return numeric

    from_estimate = parse_minutes_field(recipe, "estimatedTime")
    if from_estimate is not None:
        return from_estimate

    cook = parse_minutes_field(recipe, "cookTime")
    if cook is not None and cook > 0:
        prep = parse_minutes_field(recipe, "prepTime") or 0
        return prep + cook

    if isinstance(existing, str):
        return parse_minutes(existing)
    return None


def enrich(text: str) -> PostProcessed:
    try:
        data = safe_json_loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Model output is not valid JSON, returning raw text: {e}")
        return PostProcessed(data=None, raw=text)

    if not isinstance(data, dict):
        logger.warning(f"Model output is JSON but not an object ({type(data).__name__}), returning raw text")
        return PostProcessed(data=None, raw=text)

    original = data.get("estimatedTimeMinutes")
    minutes = derive_total_minutes(data)
    if minutes is not None:
        data["estimatedTimeMinutes"] = minutes
        if minutes != original or not _is_number(original):
            logger.debug(f"Derived estimatedTimeMinutes={minutes} (model gave {original!r})")
    elif "estimatedTimeMinutes" in data:
        logger.warning(f"Dropping unusable estimatedTimeMinutes={original!r}")
        del data["estimatedTimeMinutes"]

    return PostProcessed(data=data, raw=text)


def serialize(data: Dict[str, Any]) -> str:
    return json.dumps(data, ensure_ascii=False)
