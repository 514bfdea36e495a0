"""Request/response logging middleware."""

import json
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from recipe_ai.core.request_id import resolve_request_id, set_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_SENSITIVE_KEYS = ("api_key", "apikey", "password", "token", "secret", "auth")
_MAX_LOGGED_STRING = 500


def mask_sensitive_data(data: Any) -> Any:
    """Recursively mask credential-like fields and shorten long strings (image data URIs)."""
    if isinstance(data, dict):
        masked: Dict[str, Any] = {}
        for key, value in data.items():
            if any(sensitive in str(key).lower() for sensitive in _SENSITIVE_KEYS):
                masked[key] = "***"
            else:
                masked[key] = mask_sensitive_data(value)
        return masked
    if isinstance(data, list):
        return [mask_sensitive_data(item) for item in data]
    if isinstance(data, str) and len(data) > _MAX_LOGGED_STRING:
        return f"{data[:_MAX_LOGGED_STRING]}...({len(data)} chars)"
    return data


async def get_request_params(request: Request) -> Tuple[Dict[str, Any], Optional[bytes]]:
    """
    Query parameters plus the JSON body, if any.

    Returns the params and the body bytes so the body can be replayed to the route.
    """
    params: Dict[str, Any] = {}
    body_bytes: Optional[bytes] = None

    if request.query_params:
        params["query"] = dict(request.query_params)

    content_type = request.headers.get("content-type", "").lower()
    if "application/json" in content_type:
        body_bytes = await request.body()
        if body_bytes:
            try:
                params["body"] = json.loads(body_bytes)
            except (json.JSONDecodeError, UnicodeDecodeError):
                params["body"] = body_bytes.decode("utf-8", errors="ignore")[:_MAX_LOGGED_STRING]

    return params, body_bytes


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging requests and responses with timing."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        set_request_id(request_id)
        request.state.request_id = request_id

        start_time = time.time()
        method = request.method
        path = request.url.path

        request_params, body_bytes = await get_request_params(request)

        if body_bytes is not None:
            # Replay the consumed body once, then hand over to the real channel
            original_receive = request._receive
            body_sent = False

            async def receive():
                nonlocal body_sent
                if not body_sent:
                    body_sent = True
                    return {"type": "http.request", "body": body_bytes, "more_body": False}
                message = await original_receive()
                if message["type"] == "http.request" and not message.get("more_body"):
                    return {"type": "http.disconnect"}
                return message

            request._receive = receive

        logger.info(
            f"API Request: {method} {path}",
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "params": mask_sensitive_data(request_params),
                "client_ip": request.client.host if request.client else None,
                "user_agent": request.headers.get("user-agent", "Unknown"),
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"API Error: {method} {path} - {e}",
                extra={
                    "request_id": request_id,
                    "method": method,
                    "path": path,
                    "process_time_ms": round((time.time() - start_time) * 1000, 2),
                },
                exc_info=True,
            )
            raise

        logger.info(
            f"API Response: {method} {path} - {response.status_code}",
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "process_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
