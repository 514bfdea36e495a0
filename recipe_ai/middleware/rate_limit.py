"""Rate limiting using slowapi."""

from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address

from recipe_ai.config import settings


def get_client_key(request: Request) -> str:
    """
    Rate-limit bucket for a caller: X-API-Key, else the bearer token, else the client address.

    Authentication itself happens upstream; the credential only identifies the bucket.
    """
    api_key = request.headers.get("X-API-Key")
    if not api_key:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            api_key = auth_header[7:]
    return api_key or get_remote_address(request)


limiter = Limiter(
    key_func=get_client_key,
    default_limits=[f"{settings.rate_limit_per_hour}/hour"],
    storage_uri="memory://",
)


def get_rate_limit_exceeded_handler():
    return _rate_limit_exceeded_handler


def rate_limit_dependency(request: Request) -> None:
    """
    Apply the default limit to a route.

    Raises:
        RateLimitExceeded: If rate limit is exceeded
    """
    # The limiter is evaluated by hand because the slowapi middleware is not installed;
    # _check_request_limit raises RateLimitExceeded when the bucket is empty.
    limiter._check_request_limit(request, endpoint_func=None)
