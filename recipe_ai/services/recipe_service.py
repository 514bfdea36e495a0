"""
Recipe generation pipeline.

prompt -> credential -> Gemini text call -> envelope -> time derivation ->
time constraint -> safety check -> image -> result

No credential short-circuits to the local mock recipe. A 403 from Gemini
yields the mock only when dev fallback is on. Image problems never fail
the recipe; they are recorded in ``imageGeneration``.
"""

import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from recipe_ai.config import Settings, settings as default_settings
from recipe_ai.models.recipe import (
    ImageGenerationRequest,
    ImageGenerationResponse,
    ImageGenerationStatus,
    ImageSource,
    RecipeContext,
    RecipeRequest,
    RecipeResult,
)
from recipe_ai.services.credentials import CredentialResolver, is_valid_api_key
from recipe_ai.services.gemini_client import GeminiTextClient
from recipe_ai.services.image_service import NO_IMAGE_RETURNED, ImageService, placeholder_data_url
from recipe_ai.services.mock_recipe import IMAGE_DISABLED, create_mock_recipe
from recipe_ai.services.post_processor import enrich, serialize
from recipe_ai.services.prompt_builder import build_recipe_prompt
from recipe_ai.services.safety import SAFETY_CONSTRAINT_MESSAGE, check_recipe_safety
from recipe_ai.services.transport import Forbidden, Success
from recipe_ai.services.validators import TIME_CONSTRAINT_MESSAGE, check_time_constraint
from recipe_ai.utils.exceptions import ConstraintViolationError, GeminiError, RecipeParseError
from recipe_ai.utils.gemini_parsing import get_response_text

logger = logging.getLogger(__name__)

RecipePayload = Union[Dict[str, Any], str, None]
RECIPE_LOG_PREVIEW_CHARS = 1000


def _image_context(recipe: Dict[str, Any]) -> RecipeContext:
    name = recipe.get("recipeName")
    description = recipe.get("description")
    ingredients = recipe.get("ingredients")
    return RecipeContext(
        recipeName=name if isinstance(name, str) else None,
        description=description if isinstance(description, str) else None,
        ingredients=[i for i in ingredients if isinstance(i, str)] if isinstance(ingredients, list) else [],
    )


class RecipeService:
    """Orchestrates recipe and image generation."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        credentials: Optional[CredentialResolver] = None,
        text_client: Optional[GeminiTextClient] = None,
        image_service: Optional[ImageService] = None,
    ) -> None:
        self.settings = settings or default_settings
        self.credentials = credentials or CredentialResolver(self.settings)
        self.text_client = text_client or GeminiTextClient(self.settings)
        self.image_service = image_service or ImageService(self.settings, credentials=self.credentials)

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------

    async def generate_recipe_payload(self, request: RecipeRequest) -> RecipePayload:
        """
        Run the pipeline and return the enriched recipe tree.

        Returns:
            dict with the recipe (or the mock), the raw model text when it
            could not be parsed, or None on a terminal failure

        Raises:
            ConstraintViolationError: the recipe breaks a requested constraint
        """
        prompt = build_recipe_prompt(request)
        api_key = self.credentials.resolve()

        if not is_valid_api_key(api_key):
            logger.warning("No valid Gemini API key configured; returning mock recipe")
            return self._mock(request)

        try:
            return await self._generate_live(request, prompt, api_key)
        except ConstraintViolationError:
            raise
        except Exception as e:
            logger.error(f"Recipe pipeline failed unexpectedly: {e}", exc_info=True)
            if self.settings.gemini_dev_fallback:
                return self._mock(request)
            return None

    async def generate_recipe(self, request: RecipeRequest) -> RecipeResult:
        """
        Typed wrapper around ``generate_recipe_payload``.

        Raises:
            GeminiError: generation failed terminally
            RecipeParseError: model output is not a usable recipe
            ConstraintViolationError: the recipe breaks a requested constraint
        """
        payload = await self.generate_recipe_payload(request)

        if payload is None:
            raise GeminiError("Failed to generate a recipe from Gemini")
        if isinstance(payload, str):
            logger.error(f"Unparseable model output ({len(payload)} chars)")
            raise RecipeParseError("Gemini returned a recipe that could not be parsed as JSON")

        try:
            return RecipeResult.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Generated recipe failed validation: {e}")
            raise RecipeParseError(
                f"Generated recipe does not match the expected format ({e.error_count()} error(s))"
            ) from e

    async def generate_image(
        self, request: Optional[ImageGenerationRequest], force_blocking: bool = False
    ) -> ImageGenerationResponse:
        return await self.image_service.generate_image_from_request(request, force_blocking=force_blocking)

    # ---------------------------------------------------------------------
    # Pipeline steps
    # ---------------------------------------------------------------------

    def _mock(self, request: RecipeRequest) -> Dict[str, Any]:
        return create_mock_recipe(request.pantryItems, images_enabled=self.image_service.enabled)

    async def _generate_live(self, request: RecipeRequest, prompt: str, api_key: str) -> RecipePayload:
        outcome = await self.text_client.generate(prompt, api_key)

        if isinstance(outcome, Forbidden):
            if self.settings.gemini_dev_fallback:
                logger.warning("Gemini returned 403; dev fallback enabled, returning mock recipe")
                return self._mock(request)
            logger.error("Gemini returned 403 and dev fallback is disabled")
            return None

        if not isinstance(outcome, Success):
            logger.error(f"Gemini text generation failed: {outcome}")
            return None

        text = get_response_text(outcome.text)
        if text is None:
            logger.error("Gemini response has no candidate text")
            return None

        processed = enrich(text)
        if not processed.parsed:
            return processed.raw
        recipe = processed.data
        logger.debug(f"Enriched recipe: {serialize(recipe)[:RECIPE_LOG_PREVIEW_CHARS]}")

        violations = check_time_constraint(recipe, request.maxTotalMinutes)
        if violations:
            logger.warning(f"Recipe rejected by time constraint: {violations}")
            raise ConstraintViolationError(TIME_CONSTRAINT_MESSAGE, violations)

        self._check_safety(recipe, request)
        await self._attach_image(recipe)
        return recipe

    def _check_safety(self, recipe: Dict[str, Any], request: RecipeRequest) -> None:
        if not request.allergies and not request.dietaryPreferences:
            return

        violations = check_recipe_safety(recipe, request.allergies, request.dietaryPreferences)
        if not violations:
            return

        logger.warning(f"Safety check flagged recipe: {violations}")
        if self.settings.enforce_safety_checks:
            raise ConstraintViolationError(SAFETY_CONSTRAINT_MESSAGE, violations)

    async def _attach_image(self, recipe: Dict[str, Any]) -> None:
        if recipe.get("imageUrl"):
            recipe.setdefault(
                "imageGeneration",
                {"status": ImageGenerationStatus.NOT_ATTEMPTED.value, "source": ImageSource.EMPTY.value},
            )
            return

        if not self.image_service.enabled:
            recipe["imageGeneration"] = {
                "status": ImageGenerationStatus.SKIPPED.value,
                "source": ImageSource.EMPTY.value,
                "errorMessage": IMAGE_DISABLED,
            }
            return

        image = await self.image_service.generate_image_from_request(
            ImageGenerationRequest(recipe=_image_context(recipe))
        )
        if image.status == ImageGenerationStatus.SUCCESS and image.imageUrl:
            recipe["imageUrl"] = image.imageUrl
            recipe["imageGeneration"] = {"status": image.status.value, "source": image.source.value}
            return

        name = recipe.get("recipeName")
        recipe["imageUrl"] = placeholder_data_url(name if isinstance(name, str) else None)
        recipe["imageGeneration"] = {
            "status": ImageGenerationStatus.FAILED.value,
            "source": ImageSource.PLACEHOLDER.value,
            "errorMessage": image.errorMessage or NO_IMAGE_RETURNED,
        }
