"""Time constraint checks on generated recipes."""

from typing import Any, List, Mapping, Optional

from recipe_ai.utils.time_parsing import parse_minutes_field

TIME_CONSTRAINT_MESSAGE = "Generated recipe violates requested time constraints."


def check_time_constraint(recipe: Mapping[str, Any], max_total_minutes: Optional[int]) -> List[str]:
    """
    Compare a recipe tree against a maximum total time.

    estimatedTimeMinutes is preferred; without it the prepTime text is used.
    Returns a list of violation messages, empty when the recipe fits or no
    maximum was given.
    """
    if max_total_minutes is None:
        return []

    violations: List[str] = []
    estimated = parse_minutes_field(recipe, "estimatedTimeMinutes")
    if estimated is not None:
        if estimated > max_total_minutes:
            violations.append(
                f"Estimated total time {estimated} minutes exceeds maximum allowed {max_total_minutes} minutes"
            )
        return violations

    prep = parse_minutes_field(recipe, "prepTime")
    if prep is not None and prep > max_total_minutes:
        violations.append(f"Parsed prepTime {prep} minutes exceeds maximum allowed {max_total_minutes} minutes")
    return violations
