"""Fakes and canned Gemini responses shared by the tests."""

import json
from typing import Any, Dict, List, Union

from recipe_ai.services.transport import Transport, TransportResponse


class FakeTransport(Transport):
    """Replays canned responses; the last one repeats once the list runs out."""

    name = "fake"

    def __init__(self, *responses: Union[TransportResponse, Exception]) -> None:
        self.responses: List[Union[TransportResponse, Exception]] = list(responses)
        self.calls: List[Dict[str, Any]] = []

    async def post_json(self, url: str, payload: Dict[str, Any], headers: Dict[str, str]) -> TransportResponse:
        self.calls.append({"url": url, "payload": payload, "headers": headers})
        item = self.responses[min(len(self.calls), len(self.responses)) - 1]
        if isinstance(item, Exception):
            raise item
        return item


class SleepRecorder:
    """Stand-in for asyncio.sleep that records the requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def ok(body: str) -> TransportResponse:
    return TransportResponse(status_code=200, text=body)


def http_status(code: int, body: str = "") -> TransportResponse:
    return TransportResponse(status_code=code, text=body)


def envelope(text: str) -> str:
    """generateContent response body carrying ``text`` as the first candidate part."""
    return json.dumps({"candidates": [{"content": {"parts": [{"text": text}]}}]})


def recipe_envelope(**overrides: Any) -> str:
    recipe: Dict[str, Any] = {
        "recipeName": "Garlic Butter Pasta",
        "description": "Weeknight pasta in a glossy garlic butter sauce.",
        "ingredients": ["200 g spaghetti", "3 cloves garlic", "2 tbsp butter"],
        "instructions": ["Boil the pasta.", "Melt butter with garlic.", "Toss and serve."],
        "prepTime": "10 minutes",
        "cookTime": "15 minutes",
        "servings": "2",
    }
    recipe.update(overrides)
    return envelope(json.dumps(recipe))


def image_envelope(data: str = "iVBORw0KGgoAAAANSUhEUg", mime: str = "image/png") -> str:
    return json.dumps(
        {
            "candidates": [
                {
                    "content": {
                        "parts": [
                            {"text": "Here is your image"},
                            {"inlineData": {"mimeType": mime, "data": data}},
                        ]
                    }
                }
            ]
        }
    )
