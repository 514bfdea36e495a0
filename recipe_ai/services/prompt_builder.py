"""Prompt construction for recipe generation."""

from typing import List, Optional

from recipe_ai.models.recipe import RecipeRequest, Units

_UNIT_INSTRUCTIONS = {
    Units.METRIC: "Use metric units (grams, liters, Celsius).",
    Units.IMPERIAL: "Use imperial units (ounces, cups, Fahrenheit).",
}


def _non_blank(items: Optional[List[str]]) -> List[str]:
    return [i.strip() for i in (items or []) if i and i.strip()]


def build_recipe_prompt(request: RecipeRequest) -> str:
    """
    Compose the user-turn prompt.

    Order is fixed: pantry, units, dietary preferences, allergies, and the
    caller's own words last so they have the final say.
    """
    clauses: List[str] = []

    pantry = _non_blank(request.pantryItems)
    if pantry:
        clauses.append(
            f"Prioritize using these available ingredients: [{', '.join(pantry)}]. "
            "You may also include common pantry staples like salt, pepper, oil, butter, "
            "sugar, flour, and spices as needed."
        )

    clauses.append(_UNIT_INSTRUCTIONS[request.units])

    dietary = _non_blank(request.dietaryPreferences)
    if dietary:
        clauses.append(
            f"Ensure the recipe conforms to the following dietary preferences: {', '.join(dietary)}."
        )

    allergies = _non_blank(request.allergies)
    if allergies:
        clauses.append(f"Avoid any ingredients or common substitutes that contain: {', '.join(allergies)}.")

    if request.prompt and request.prompt.strip():
        clauses.append(request.prompt.strip())

    return " ".join(clauses)
