"""Gemini API key resolution."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv.parser import parse_stream

from recipe_ai.config import PLACEHOLDER_API_KEY, Settings, settings as default_settings

logger = logging.getLogger(__name__)

API_KEY_NAME = "GEMINI_API_KEY"


class CredentialResolver:
    """
    Resolves the Gemini API key from layered sources, first non-blank wins:

    1. explicit runtime override
    2. GEMINI_API_KEY in the process environment
    3. GEMINI_API_KEY in the local key file (.env by default)
    4. the configured settings value (a placeholder unless configured)

    Nothing is cached, so environment changes are picked up on the next call.
    """

    def __init__(self, settings: Optional[Settings] = None, override: Optional[str] = None) -> None:
        self.settings = settings or default_settings
        self.override = override

    def resolve(self) -> str:
        if self.override and self.override.strip():
            return self.override.strip()

        from_env = os.environ.get(API_KEY_NAME)
        if from_env and from_env.strip():
            return from_env.strip()

        from_file = self._read_key_file()
        if from_file:
            return from_file

        return self.settings.gemini_api_key

    def has_valid_credential(self) -> bool:
        return is_valid_api_key(self.resolve())

    def _read_key_file(self) -> Optional[str]:
        path = Path(self.settings.gemini_api_key_file)
        if not path.is_file():
            return None

        try:
            with path.open(encoding="utf-8") as stream:
                for binding in parse_stream(stream):
                    if binding.key != API_KEY_NAME or binding.value is None:
                        continue
                    value = binding.value.strip()
                    if value:
                        return value
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Failed to read {API_KEY_NAME} from {path}: {e}")
        return None


def is_valid_api_key(api_key: Optional[str]) -> bool:
    """A key is usable when it is non-blank and not the placeholder sentinel."""
    return bool(api_key and api_key.strip()) and PLACEHOLDER_API_KEY not in api_key
