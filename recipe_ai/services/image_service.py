"""Dish image generation through Gemini's image model."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

from recipe_ai.config import Settings, settings as default_settings
from recipe_ai.models.recipe import (
    ImageGenerationRequest,
    ImageGenerationResponse,
    ImageGenerationStatus,
    ImageSource,
    RecipeContext,
)
from recipe_ai.services.credentials import CredentialResolver, is_valid_api_key
from recipe_ai.services.transport import (
    EmptyBody,
    ExhaustedRetries,
    Forbidden,
    GenerationOutcome,
    HttpxTransport,
    RequestsTransport,
    RetryPolicy,
    Success,
    Transport,
    TransportResponse,
    send_once,
    send_with_retries,
)
from recipe_ai.utils.exceptions import ImageGenerationError
from recipe_ai.utils.gemini_parsing import NotFound, extract_image, sanitize_response_for_debug

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
NO_IMAGE_RETURNED = "no_image_returned"
NO_PROMPT_MESSAGE = "No prompt or recipe context provided"

PHOTO_STYLE = (
    "Style: professional food photography, well-lit, appetizing presentation, "
    "garnished and plated beautifully, shallow depth of field, natural lighting, "
    "rustic wooden table or clean white background"
)
MAX_PROMPT_INGREDIENTS = 6
MAX_INGREDIENT_WORDS = 3

_UNICODE_FRACTIONS = "¼½¾⅓⅔⅛⅜⅝⅞"
# "2", "1.5", "1/2", "1 1/2", "2-3", "2 to 3", "½", "1½"
_LEADING_QUANTITY = re.compile(
    r"^\s*(?:\d+\s+\d+/\d+|\d+/\d+|\d+(?:\.\d+)?(?:\s*(?:-|–|to)\s*\d+(?:\.\d+)?)?)?"
    rf"[{_UNICODE_FRACTIONS}]?\s*"
)
_UNIT_WORDS = re.compile(
    r"\b(?:cups?|tablespoons?|tbsp|teaspoons?|tsp|ounces?|oz|pounds?|lbs?|grams?|g|"
    r"kilograms?|kg|milliliters?|ml|liters?|l|pinch|dash|handful|bunch)\b\.?",
    re.IGNORECASE,
)
_LEADING_OF = re.compile(r"^of\s+", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_MODELS_MARKER = "/models/"

_PLACEHOLDER_SVG = (
    "<svg xmlns='http://www.w3.org/2000/svg' width='640' height='400'>"
    "<defs><linearGradient id='g' x1='0' x2='1'>"
    "<stop offset='0' stop-color='#f59e0b'/><stop offset='1' stop-color='#f97316'/>"
    "</linearGradient></defs>"
    "<rect width='100%' height='100%' fill='url(#g)'/>"
    "<text x='50%' y='50%' dominant-baseline='middle' text-anchor='middle' "
    "font-family='Arial' font-size='36' fill='white'>{title}</text>"
    "</svg>"
)


def extract_ingredient_name(line: Optional[str]) -> Optional[str]:
    """
    Reduce an ingredient line to its name: "2 cups flour" -> "flour".

    Leading quantities and unit words are dropped and at most three words
    are kept. If nothing is left the original line is returned.
    """
    if line is None or not line.strip():
        return line

    cleaned = _LEADING_QUANTITY.sub("", line, count=1)
    cleaned = _UNIT_WORDS.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    cleaned = _LEADING_OF.sub("", cleaned)

    if not cleaned:
        return line
    words = cleaned.split(" ")
    return " ".join(words[:MAX_INGREDIENT_WORDS])


def _recipe_prompt(recipe: RecipeContext) -> str:
    name = recipe.recipeName.strip() if recipe.recipeName and recipe.recipeName.strip() else "a delicious dish"
    prompt = f"Create a professional, appetizing food photography image of {name}"
    if recipe.description and recipe.description.strip():
        prompt += f": {recipe.description.strip()}"
    prompt += ". "

    names: List[str] = []
    for line in recipe.ingredients[:MAX_PROMPT_INGREDIENTS]:
        item = extract_ingredient_name(line)
        if item and item.strip():
            names.append(item.strip())
    if names:
        prompt += f"The dish prominently features: {', '.join(names)}. "

    return prompt + PHOTO_STYLE


def build_image_prompt(request: Optional[ImageGenerationRequest]) -> Optional[str]:
    """Recipe context wins over a bare prompt; None when neither is usable."""
    if request is None:
        return None
    if request.recipe is not None:
        return _recipe_prompt(request.recipe)
    if request.prompt and request.prompt.strip():
        return f"Create a professional food photography image: {request.prompt.strip()}. {PHOTO_STYLE}"
    return None


def build_image_payload(prompt: str) -> Dict[str, Any]:
    return {
        "contents": [{"parts": [{"text": f"Generate image for: {prompt}"}]}],
        "generationConfig": {"responseModalities": ["Image"]},
    }


def derive_image_endpoint(text_url: str, image_model: Optional[str] = None) -> str:
    """Swap the model segment of a ``.../models/<model>:generateContent`` URL."""
    model = image_model if image_model and image_model.strip() else DEFAULT_IMAGE_MODEL
    marker = text_url.find(_MODELS_MARKER)
    if marker < 0:
        return text_url
    start = marker + len(_MODELS_MARKER)
    colon = text_url.find(":", start)
    if colon <= start:
        return text_url
    return text_url[:start] + model + text_url[colon:]


def placeholder_data_url(title: Optional[str]) -> str:
    """SVG data URI with the recipe title on an orange gradient."""
    safe = re.sub(r"[<>]", "", title) if title is not None else "Recipe"
    return "data:image/svg+xml;utf8," + quote_plus(_PLACEHOLDER_SVG.format(title=safe))


def _log_image_response(response: TransportResponse, attempt: int) -> None:
    if not response.text.strip():
        logger.warning(f"Image endpoint returned HTTP {response.status_code} with empty body on attempt {attempt}")
        return
    logger.info(
        f"Image response HTTP {response.status_code} on attempt {attempt} (sanitized): "
        f"{sanitize_response_for_debug(response.text)}"
    )


class ImageService:
    """Builds image prompts, calls the image model and turns the response into a URL."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        credentials: Optional[CredentialResolver] = None,
        transport: Optional[Transport] = None,
        fallback_transport: Optional[Transport] = None,
        policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.settings = settings or default_settings
        self.credentials = credentials or CredentialResolver(self.settings)
        self.transport = transport or HttpxTransport(timeout=self.settings.image_http_timeout)
        self.fallback_transport = fallback_transport or RequestsTransport(timeout=self.settings.image_http_timeout)
        self.policy = policy or RetryPolicy(
            max_attempts=self.settings.gemini_max_attempts,
            backoff_unit=self.settings.gemini_image_backoff_ms / 1000.0,
        )

    @property
    def enabled(self) -> bool:
        return self.settings.gemini_image_enabled

    def resolve_endpoint(self) -> str:
        if self.settings.gemini_image_url and self.settings.gemini_image_url.strip():
            return self.settings.gemini_image_url.strip()
        return derive_image_endpoint(self.settings.gemini_api_url, self.settings.gemini_image_model)

    async def fetch_image_url(self, prompt: str, force_blocking: bool = False) -> str:
        """
        Call the image model and return a data URI or external URL.

        Raises:
            ImageGenerationError: no credential, refused, or no image in the response
        """
        api_key = self.credentials.resolve()
        if not is_valid_api_key(api_key):
            raise ImageGenerationError("missing_api_key")

        endpoint = self.resolve_endpoint()
        payload = build_image_payload(prompt)
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-goog-api-key": api_key,
        }

        if force_blocking:
            logger.info("Image generation forced onto the blocking transport")
            outcome = await send_once(
                self.fallback_transport, endpoint, payload, headers, on_response=_log_image_response
            )
        else:
            outcome = await send_with_retries(
                self.transport,
                endpoint,
                payload,
                headers,
                self.policy,
                label="gemini-image",
                on_response=_log_image_response,
            )
            if isinstance(outcome, (EmptyBody, ExhaustedRetries)):
                logger.warning(f"Primary image transport gave no body ({type(outcome).__name__}); trying fallback")
                outcome = await send_once(
                    self.fallback_transport, endpoint, payload, headers, on_response=_log_image_response
                )

        return self._image_url_from(outcome)

    def _image_url_from(self, outcome: GenerationOutcome) -> str:
        if isinstance(outcome, Forbidden):
            raise ImageGenerationError("image_request_forbidden")
        if not isinstance(outcome, Success):
            reason = getattr(outcome, "reason", None) or getattr(outcome, "last_error", None)
            raise ImageGenerationError(f"image_request_failed: {reason}" if reason else NO_IMAGE_RETURNED)

        try:
            response = json.loads(outcome.text)
        except json.JSONDecodeError as e:
            raise ImageGenerationError(f"image_response_not_json: {e.msg}") from e

        found = extract_image(response)
        if isinstance(found, NotFound):
            logger.warning(f"No image in response: {sanitize_response_for_debug(outcome.text)}")
            raise ImageGenerationError(NO_IMAGE_RETURNED)
        return found.to_url()

    async def generate_image_for_prompt(self, prompt: str, force_blocking: bool = False) -> ImageGenerationResponse:
        try:
            url = await self.fetch_image_url(prompt, force_blocking=force_blocking)
        except ImageGenerationError as e:
            logger.warning(f"Image generation failed: {e}")
            return ImageGenerationResponse.failed(str(e))

        source = ImageSource.INLINE if url.startswith("data:") else ImageSource.EXTERNAL
        logger.info(f"Image generated (source={source.value}, chars={len(url)})")
        return ImageGenerationResponse(status=ImageGenerationStatus.SUCCESS, imageUrl=url, source=source)

    async def generate_image_from_request(
        self, request: Optional[ImageGenerationRequest], force_blocking: bool = False
    ) -> ImageGenerationResponse:
        prompt = build_image_prompt(request)
        if prompt is None:
            logger.warning("Image request has neither recipe context nor prompt")
            return ImageGenerationResponse.failed(NO_PROMPT_MESSAGE)
        logger.debug(f"Image prompt: {prompt}")
        return await self.generate_image_for_prompt(prompt, force_blocking=force_blocking)
