"""Health check endpoints."""

from typing import Any, Dict

from fastapi import APIRouter

from recipe_ai.config import settings
from recipe_ai.services.credentials import CredentialResolver

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check() -> Dict[str, str]:
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check() -> Dict[str, Any]:
    """
    Readiness check for Cloud Run.

    The service stays ready without a Gemini key (it serves mock recipes), so
    the key state is reported rather than gating readiness.
    """
    return {
        "status": "ready",
        "geminiConfigured": CredentialResolver(settings).has_valid_credential(),
        "imageGenerationEnabled": settings.gemini_image_enabled,
    }
