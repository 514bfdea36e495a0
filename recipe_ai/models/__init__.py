"""Pydantic models."""

from recipe_ai.models.recipe import (
    ConstraintViolationResponse,
    GeneratedRecipe,
    ImageGenerationMeta,
    ImageGenerationRequest,
    ImageGenerationResponse,
    ImageGenerationStatus,
    ImageSource,
    NutritionalInfo,
    NutritionValues,
    RecipeContext,
    RecipeRequest,
    RecipeResult,
    RecipeTips,
    Units,
)

__all__ = [
    "ConstraintViolationResponse",
    "GeneratedRecipe",
    "ImageGenerationMeta",
    "ImageGenerationRequest",
    "ImageGenerationResponse",
    "ImageGenerationStatus",
    "ImageSource",
    "NutritionalInfo",
    "NutritionValues",
    "RecipeContext",
    "RecipeRequest",
    "RecipeResult",
    "RecipeTips",
    "Units",
]
