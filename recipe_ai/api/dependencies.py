"""Shared API dependencies."""

from recipe_ai.services.recipe_service import RecipeService


def get_recipe_service() -> RecipeService:
    """Get recipe service instance."""
    return RecipeService()
