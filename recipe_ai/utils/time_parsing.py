"""Minute extraction from free-text recipe times ("1 hour 30 minutes", "about 20-30 mins")."""

import logging
import re
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

# A range such as "20-30" or "20 to 30" counts as its lower bound
_RANGE = r"(\d+)(?:\s*(?:-|–|to)\s*\d+)?"
# Hours may be fractional: "1.5 hours"
_HOURS = re.compile(r"(\d+(?:\.\d+)?)(?:\s*(?:-|–|to)\s*\d+(?:\.\d+)?)?\s*(?:hours?|hrs?)\b")
_MINUTES = re.compile(_RANGE + r"\s*(?:minutes?|mins?)\b")
_BARE_NUMBER = re.compile(r"(\d+)")


def parse_minutes(text: Optional[str]) -> Optional[int]:
    """
    Extract a minute count from a human time description.

    Hours and minutes are summed across all matches; when neither unit
    appears, the first bare integer is taken as minutes.

    Returns:
        Minutes, or None when the text holds no digits
    """
    if text is None:
        return None

    low = str(text).lower()
    hours = [float(m.group(1)) for m in _HOURS.finditer(low)]
    minutes = [int(m.group(1)) for m in _MINUTES.finditer(low)]

    if hours or minutes:
        return int(round(sum(hours) * 60)) + sum(minutes)

    bare = _BARE_NUMBER.search(low)
    if bare:
        return int(bare.group(1))
    return None


def parse_minutes_field(obj: Optional[Mapping[str, Any]], key: str) -> Optional[int]:
    """Read a minute value from a field holding either a number or a time string."""
    if not obj or not key:
        return None

    value = obj.get(key)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        return parse_minutes(value)

    logger.debug("Ignoring non-scalar time field %s=%r", key, value)
    return None
