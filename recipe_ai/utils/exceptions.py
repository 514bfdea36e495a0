"""Custom exception classes."""

from typing import Any, Dict, List, Optional


class RecipeAIException(Exception):
    """Base exception for the recipe generator application."""

    pass


class GeminiError(RecipeAIException):
    """Raised when the Gemini API call fails terminally."""

    pass


class TransportError(RecipeAIException):
    """Raised by a transport when no HTTP response could be obtained."""

    pass


class RecipeParseError(RecipeAIException):
    """Raised when model output cannot be turned into a recipe."""

    pass


class ImageGenerationError(RecipeAIException):
    """Raised when image generation cannot proceed."""

    pass


class ConstraintViolationError(RecipeAIException):
    """Raised when a generated recipe breaks a caller constraint."""

    def __init__(self, message: str, violations: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.violations = list(violations or [])

    def to_payload(self) -> Dict[str, Any]:
        return {
            "error": "constraint_violation",
            "message": self.message,
            "details": {"violations": self.violations},
        }
