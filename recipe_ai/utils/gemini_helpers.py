"""Shared Gemini API helper utilities."""

from functools import lru_cache
from typing import Any, Dict

# Keys Gemini's responseSchema rejects, or pydantic metadata it has no use for
_DROPPED_KEYS = ("additionalProperties", "additional_properties", "title", "default",
                 "examples", "example", "$defs")


def clean_schema_for_gemini(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Clean Pydantic JSON schema for Gemini responseSchema format.
    - Resolves $ref references to their definitions (Gemini doesn't support $ref)
    - Removes 'additionalProperties', 'default' and Pydantic metadata (title, examples, $defs)
    - Collapses anyOf for Optional fields into the non-null type marked nullable
    - Leaves property names alone (a property may legitimately be called 'title' or 'description')
    """
    defs = schema.get("$defs", {})

    def resolve_ref(ref: str) -> Dict[str, Any]:
        if ref.startswith("#/$defs/"):
            return defs.get(ref[len("#/$defs/"):], {})
        return {}

    def clean(s: Any) -> Any:
        if not isinstance(s, dict):
            return s

        if "$ref" in s:
            merged = dict(resolve_ref(s["$ref"]))
            # Field-level description wins over the referenced model's docstring
            merged.update({k: v for k, v in s.items() if k != "$ref"})
            return clean(merged)

        result: Dict[str, Any] = {}
        for key, value in s.items():
            if key in _DROPPED_KEYS:
                continue
            if key == "properties" and isinstance(value, dict):
                result[key] = {name: clean(prop) for name, prop in value.items()}
            elif isinstance(value, dict):
                result[key] = clean(value)
            elif isinstance(value, list):
                result[key] = [clean(item) for item in value]
            else:
                result[key] = value

        if "anyOf" in result:
            options = result.pop("anyOf")
            if any(isinstance(o, dict) and o.get("type") == "null" for o in options):
                result["nullable"] = True
            for option in options:
                if isinstance(option, dict) and option.get("type") != "null":
                    for k, v in option.items():
                        result.setdefault(k, v)
                    break

        return result

    return clean(schema)


@lru_cache(maxsize=1)
def get_recipe_response_schema() -> Dict[str, Any]:
    """Return the GeneratedRecipe JSON schema cleaned for Gemini, cached."""
    from recipe_ai.models.recipe import GeneratedRecipe
    return clean_schema_for_gemini(GeneratedRecipe.model_json_schema())
