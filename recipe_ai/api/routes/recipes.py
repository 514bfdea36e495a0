"""Recipe generation endpoints."""

import logging

from fastapi import APIRouter, Body, Depends, Query, Request

from recipe_ai.api.dependencies import get_recipe_service
from recipe_ai.middleware.rate_limit import rate_limit_dependency
from recipe_ai.models.recipe import (
    ConstraintViolationResponse,
    ImageGenerationRequest,
    ImageGenerationResponse,
    RecipeRequest,
    RecipeResult,
)
from recipe_ai.services.recipe_service import RecipeService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/recipes", tags=["recipes"])


@router.post(
    "/generate",
    response_model=RecipeResult,
    response_model_exclude_none=True,
    responses={422: {"model": ConstraintViolationResponse, "description": "Recipe violates a constraint"}},
)
async def generate_recipe(
    request: Request,
    recipe_request: RecipeRequest = Body(...),
    _: None = Depends(rate_limit_dependency),
    recipe_service: RecipeService = Depends(get_recipe_service),
) -> RecipeResult:
    """
    Generate a recipe from a prompt, pantry items and dietary constraints.

    - **prompt**: what the user wants to cook
    - **pantryItems**: ingredients to prioritize
    - **units**: `metric` (default) or `imperial`
    - **dietaryPreferences** / **allergies**: constraints passed to the model
    - **maxTotalMinutes**: reject recipes that take longer
    """
    logger.info(
        "Route /recipes/generate called",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "route": "/recipes/generate",
            "params": {
                "prompt_chars": len(recipe_request.prompt),
                "pantry_count": len(recipe_request.pantryItems),
                "units": recipe_request.units.value,
                "max_total_minutes": recipe_request.maxTotalMinutes,
            },
        },
    )
    return await recipe_service.generate_recipe(recipe_request)


@router.post("/image/generate", response_model=ImageGenerationResponse, response_model_exclude_none=True)
async def generate_image(
    request: Request,
    image_request: ImageGenerationRequest = Body(...),
    force_curl: bool = Query(False, alias="forceCurl", description="Use the blocking HTTP client directly"),
    _: None = Depends(rate_limit_dependency),
    recipe_service: RecipeService = Depends(get_recipe_service),
) -> ImageGenerationResponse:
    """
    Generate a dish image from a recipe context or a bare prompt.

    Failures are reported in the body (`status: failed`), not as HTTP errors.
    """
    logger.info(
        "Route /recipes/image/generate called",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "route": "/recipes/image/generate",
            "params": {
                "has_recipe": image_request.recipe is not None,
                "has_prompt": bool(image_request.prompt),
                "force_curl": force_curl,
            },
        },
    )
    return await recipe_service.generate_image(image_request, force_blocking=force_curl)
