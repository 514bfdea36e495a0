"""Gemini REST client for recipe text generation."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from recipe_ai.config import Settings, settings as default_settings
from recipe_ai.services.transport import (
    GenerationOutcome,
    HttpxTransport,
    RetryPolicy,
    Transport,
    send_with_retries,
)
from recipe_ai.utils.gemini_helpers import get_recipe_response_schema

logger = logging.getLogger(__name__)


def build_text_payload(prompt: str, system_prompt: str, schema: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """generateContent request body asking for schema-guided JSON."""
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "systemInstruction": {"parts": [{"text": system_prompt}]},
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": schema if schema is not None else get_recipe_response_schema(),
        },
    }


class GeminiTextClient:
    """Sends the recipe prompt to Gemini and classifies the result."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[Transport] = None,
        policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.settings = settings or default_settings
        self.transport = transport or HttpxTransport(timeout=self.settings.http_timeout)
        self.policy = policy or RetryPolicy(
            max_attempts=self.settings.gemini_max_attempts,
            backoff_unit=self.settings.gemini_retry_backoff_ms / 1000.0,
        )

    async def generate(self, prompt: str, api_key: str) -> GenerationOutcome:
        """
        Run the text call with retries.

        Returns Success with the raw envelope body, or a failure outcome.
        Never raises for HTTP or transport problems.
        """
        payload = build_text_payload(prompt, self.settings.gemini_system_prompt)
        headers = {"Content-Type": "application/json", "x-goog-api-key": api_key}

        logger.info(f"Calling Gemini text endpoint (prompt_chars={len(prompt)}, transport={self.transport.name})")
        outcome = await send_with_retries(
            self.transport,
            self.settings.gemini_api_url,
            payload,
            headers,
            self.policy,
            label="gemini-text",
        )
        logger.info(f"Gemini text call finished: {type(outcome).__name__}")
        return outcome
