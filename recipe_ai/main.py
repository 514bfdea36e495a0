"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from recipe_ai.api.routes import health, recipes
from recipe_ai.config import settings
from recipe_ai.core.request_id import get_request_id
from recipe_ai.middleware.logging import RequestLoggingMiddleware
from recipe_ai.middleware.rate_limit import get_rate_limit_exceeded_handler, limiter
from recipe_ai.services.credentials import CredentialResolver
from recipe_ai.utils.exceptions import (
    ConstraintViolationError,
    GeminiError,
    RecipeAIException,
    RecipeParseError,
)
from recipe_ai.utils.logging_config import setup_logging

APP_NAME = "Recipe AI Generator"
APP_VERSION = "1.0.0"

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{APP_NAME} starting up...")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Rate limit: {settings.rate_limit_per_hour} requests/hour")
    if not CredentialResolver(settings).has_valid_credential():
        logger.warning("GEMINI_API_KEY is not configured; /recipes/generate will serve mock recipes")
    logger.info(f"Image generation enabled: {settings.gemini_image_enabled}")
    yield
    logger.info(f"{APP_NAME} shutting down...")


app = FastAPI(
    title=APP_NAME,
    description="Recipe and dish image generation backed by Gemini",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, get_rate_limit_exceeded_handler())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with detailed messages."""
    request_id = get_request_id()

    logger.warning(
        f"Validation error: {exc}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "errors": exc.errors(),
        },
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation error",
            "detail": exc.errors(),
            "request_id": request_id,
            "message": "Request validation failed. Check the 'detail' field for specific errors.",
        },
    )


@app.exception_handler(ConstraintViolationError)
async def constraint_violation_handler(request: Request, exc: ConstraintViolationError) -> JSONResponse:
    """Return the structured constraint-violation payload."""
    logger.warning(
        f"Constraint violation: {exc.message}",
        extra={"request_id": get_request_id(), "violations": exc.violations},
    )
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=exc.to_payload())


@app.exception_handler(RecipeAIException)
async def recipe_ai_exception_handler(request: Request, exc: RecipeAIException) -> JSONResponse:
    """Handle custom application exceptions."""
    request_id = get_request_id()

    if isinstance(exc, GeminiError):
        error_message = "Recipe generation failed"
    elif isinstance(exc, RecipeParseError):
        error_message = "Recipe parsing failed"
    else:
        error_message = "Internal server error"

    logger.error(
        f"Exception: {error_message}",
        extra={"request_id": request_id, "exception": str(exc)},
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": error_message,
            "detail": str(exc),
            "request_id": request_id,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    request_id = get_request_id()

    logger.error(
        f"Unexpected exception: {exc}",
        extra={"request_id": request_id},
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": "An unexpected error occurred",
            "request_id": request_id,
        },
    )


app.add_middleware(RequestLoggingMiddleware)

app.include_router(health.router)
app.include_router(recipes.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("recipe_ai.main:app", host=settings.host, port=settings.port)
