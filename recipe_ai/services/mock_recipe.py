"""Deterministic local recipe used when Gemini cannot or should not be called."""

from typing import Any, Dict, List, Optional

from recipe_ai.models.recipe import ImageGenerationStatus, ImageSource
from recipe_ai.services.image_service import placeholder_data_url

MOCK_RECIPE_NAME = "Simple Toast"
IMAGE_DISABLED = "image_generation_disabled"


def create_mock_recipe(pantry_items: Optional[List[str]] = None, images_enabled: bool = False) -> Dict[str, Any]:
    items = [p.strip() for p in (pantry_items or []) if p and p.strip()]
    recipe: Dict[str, Any] = {
        "recipeName": MOCK_RECIPE_NAME,
        "description": "A quick and tasty toast using available pantry items.",
        "ingredients": [f"1 x {item}" for item in items] if items else ["bread", "butter"],
        "instructions": ["Toast the bread.", "Spread butter on the toast.", "Serve immediately."],
        "prepTime": "5 minutes",
        "servings": "1",
    }

    if images_enabled:
        recipe["imageUrl"] = placeholder_data_url(MOCK_RECIPE_NAME)
        recipe["imageGeneration"] = {
            "status": ImageGenerationStatus.MOCK_PLACEHOLDER.value,
            "source": ImageSource.PLACEHOLDER.value,
        }
    else:
        recipe["imageGeneration"] = {
            "status": ImageGenerationStatus.SKIPPED.value,
            "source": ImageSource.EMPTY.value,
            "errorMessage": IMAGE_DISABLED,
        }
    return recipe
