"""Tests for dish image generation."""

import json
from urllib.parse import unquote_plus

import pytest

from helpers import FakeTransport, http_status, image_envelope, ok
from recipe_ai.models.recipe import (
    ImageGenerationRequest,
    ImageGenerationStatus,
    ImageSource,
    RecipeContext,
)
from recipe_ai.services.image_service import (
    PHOTO_STYLE,
    ImageService,
    build_image_prompt,
    derive_image_endpoint,
    extract_ingredient_name,
    placeholder_data_url,
)
from recipe_ai.services.transport import RetryPolicy
from recipe_ai.utils.exceptions import TransportError

TEXT_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent"


@pytest.fixture
def image_settings(make_settings):
    return make_settings(gemini_api_key="test-key", gemini_image_enabled=True)


def _service(settings, sleeper, primary, fallback=None):
    return ImageService(
        settings,
        transport=primary,
        fallback_transport=fallback or FakeTransport(ok("")),
        policy=RetryPolicy(max_attempts=3, backoff_unit=0.5, sleep=sleeper),
    )


@pytest.mark.parametrize(
    "line,expected",
    [
        ("2 cups flour", "flour"),
        ("1/2 tsp salt", "salt"),
        ("1 1/2 cups whole milk", "whole milk"),
        ("3-4 ripe tomatoes", "ripe tomatoes"),
        ("1.5 kg chicken thighs", "chicken thighs"),
        ("½ cup heavy cream", "heavy cream"),
        ("200 g dark chocolate", "dark chocolate"),
        ("1 bunch fresh cilantro leaves chopped", "fresh cilantro leaves"),
        ("2 cups of rice", "rice"),
        ("basil", "basil"),
        ("2 cups", "2 cups"),
    ],
)
def test_extract_ingredient_name(line, expected):
    assert extract_ingredient_name(line) == expected


def test_recipe_context_prompt():
    request = ImageGenerationRequest(
        recipe=RecipeContext(
            recipeName="Lemon Risotto",
            description="Creamy and bright",
            ingredients=["300 g arborio rice", "1 lemon", "2 tbsp butter", "1 cup parmesan",
                         "1 onion", "1 l stock", "salt"],
        )
    )

    assert build_image_prompt(request) == (
        "Create a professional, appetizing food photography image of Lemon Risotto: Creamy and bright. "
        "The dish prominently features: arborio rice, lemon, butter, parmesan, onion, stock. "
        + PHOTO_STYLE
    )


def test_recipe_context_without_name_or_ingredients():
    prompt = build_image_prompt(ImageGenerationRequest(recipe=RecipeContext(), prompt="ignored"))
    assert prompt == "Create a professional, appetizing food photography image of a delicious dish. " + PHOTO_STYLE


def test_bare_prompt_gets_style_suffix():
    prompt = build_image_prompt(ImageGenerationRequest(prompt="tomato soup"))
    assert prompt == f"Create a professional food photography image: tomato soup. {PHOTO_STYLE}"


def test_no_prompt_material():
    assert build_image_prompt(None) is None
    assert build_image_prompt(ImageGenerationRequest()) is None
    assert build_image_prompt(ImageGenerationRequest(prompt="   ")) is None


def test_derive_image_endpoint():
    assert derive_image_endpoint(TEXT_URL, "gemini-2.5-flash-image") == (
        "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash-image:generateContent"
    )
    assert derive_image_endpoint(TEXT_URL, "") == derive_image_endpoint(TEXT_URL, "gemini-2.5-flash-image")
    assert derive_image_endpoint("https://proxy.local/generate", "m") == "https://proxy.local/generate"


def test_explicit_image_url_wins(make_settings):
    service = ImageService(make_settings(gemini_image_url="https://images.local/v1:generate"))
    assert service.resolve_endpoint() == "https://images.local/v1:generate"
    assert ImageService(make_settings()).resolve_endpoint().endswith("/models/gemini-2.5-flash-image:generateContent")


def test_placeholder_data_url():
    url = placeholder_data_url("Mac <b>& Cheese</b>")

    assert url.startswith("data:image/svg+xml;utf8,")
    svg = unquote_plus(url[len("data:image/svg+xml;utf8,"):])
    assert "width='640' height='400'" in svg
    assert "#f59e0b" in svg and "#f97316" in svg
    assert ">Mac b& Cheese/b</text>" in svg
    assert ">Recipe</text>" in unquote_plus(placeholder_data_url(None))


@pytest.mark.asyncio
async def test_inline_image_success(image_settings, sleeper):
    primary = FakeTransport(ok(image_envelope(mime="image/jpeg")))
    service = _service(image_settings, sleeper, primary)

    result = await service.generate_image_from_request(ImageGenerationRequest(prompt="pancakes"))

    assert result.status == ImageGenerationStatus.SUCCESS
    assert result.source == ImageSource.INLINE
    assert result.imageUrl == "data:image/jpeg;base64,iVBORw0KGgoAAAANSUhEUg"
    call = primary.calls[0]
    assert call["url"].endswith("/models/gemini-2.5-flash-image:generateContent")
    assert call["headers"]["x-goog-api-key"] == "test-key"
    assert call["payload"]["generationConfig"] == {"responseModalities": ["Image"]}
    assert call["payload"]["contents"][0]["parts"][0]["text"].startswith(
        "Generate image for: Create a professional food photography image: pancakes."
    )


@pytest.mark.asyncio
async def test_external_image_success(image_settings, sleeper):
    body = json.dumps({"candidates": [{"content": {"parts": [{"imageUrl": "https://cdn.example.com/p.png"}]}}]})
    service = _service(image_settings, sleeper, FakeTransport(ok(body)))

    result = await service.generate_image_for_prompt("pancakes")

    assert result.status == ImageGenerationStatus.SUCCESS
    assert result.source == ImageSource.EXTERNAL
    assert result.imageUrl == "https://cdn.example.com/p.png"


@pytest.mark.asyncio
async def test_empty_primary_bodies_fall_back_to_blocking_transport(image_settings, sleeper):
    primary = FakeTransport(ok(""))
    fallback = FakeTransport(ok(image_envelope()))
    service = _service(image_settings, sleeper, primary, fallback)

    result = await service.generate_image_for_prompt("pancakes")

    assert result.status == ImageGenerationStatus.SUCCESS
    assert len(primary.calls) == 3
    assert sleeper.delays == [pytest.approx(0.5), pytest.approx(1.0)]
    assert len(fallback.calls) == 1
    assert fallback.calls[0]["payload"] == primary.calls[0]["payload"]


@pytest.mark.asyncio
async def test_transport_errors_also_fall_back(image_settings, sleeper):
    primary = FakeTransport(TransportError("timed out"))
    fallback = FakeTransport(ok(image_envelope()))

    result = await _service(image_settings, sleeper, primary, fallback).generate_image_for_prompt("x")

    assert result.status == ImageGenerationStatus.SUCCESS
    assert len(fallback.calls) == 1


@pytest.mark.asyncio
async def test_force_blocking_skips_primary(image_settings, sleeper):
    primary = FakeTransport(ok(image_envelope()))
    fallback = FakeTransport(ok(image_envelope(mime="image/webp")))
    service = _service(image_settings, sleeper, primary, fallback)

    result = await service.generate_image_for_prompt("pancakes", force_blocking=True)

    assert result.imageUrl.startswith("data:image/webp;base64,")
    assert primary.calls == []
    assert len(fallback.calls) == 1


@pytest.mark.asyncio
async def test_missing_key_fails_without_calling_out(make_settings, sleeper):
    primary = FakeTransport(ok(image_envelope()))
    service = _service(make_settings(gemini_image_enabled=True), sleeper, primary)

    result = await service.generate_image_for_prompt("pancakes")

    assert result.status == ImageGenerationStatus.FAILED
    assert result.errorMessage == "missing_api_key"
    assert primary.calls == []


@pytest.mark.asyncio
async def test_forbidden_does_not_fall_back(image_settings, sleeper):
    fallback = FakeTransport(ok(image_envelope()))
    service = _service(image_settings, sleeper, FakeTransport(http_status(403)), fallback)

    result = await service.generate_image_for_prompt("pancakes")

    assert result.status == ImageGenerationStatus.FAILED
    assert result.errorMessage == "image_request_forbidden"
    assert fallback.calls == []


@pytest.mark.asyncio
async def test_response_without_image(image_settings, sleeper):
    body = json.dumps({"candidates": [{"content": {"parts": [{"text": "I can't draw that."}]}}]})
    result = await _service(image_settings, sleeper, FakeTransport(ok(body))).generate_image_for_prompt("x")

    assert result.status == ImageGenerationStatus.FAILED
    assert result.errorMessage == "no_image_returned"
    assert result.imageUrl is None


@pytest.mark.asyncio
async def test_request_without_prompt_or_recipe(image_settings, sleeper):
    primary = FakeTransport(ok(image_envelope()))
    result = await _service(image_settings, sleeper, primary).generate_image_from_request(ImageGenerationRequest())

    assert result.status == ImageGenerationStatus.FAILED
    assert result.errorMessage == "No prompt or recipe context provided"
    assert primary.calls == []
