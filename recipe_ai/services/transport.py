"""
Outbound HTTP transports and the shared retry loop.

Both Gemini calls (text and image) go through ``send_with_retries``; they only
differ in the transport and the retry policy they pass in. Failures are
returned as ``GenerationOutcome`` values, never raised.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
import requests

from recipe_ai.utils.exceptions import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    text: str


class Transport(ABC):
    """POSTs a JSON payload and returns the raw response."""

    name = "transport"

    @abstractmethod
    async def post_json(self, url: str, payload: Dict[str, Any], headers: Dict[str, str]) -> TransportResponse:
        """Raises TransportError when no HTTP response was received."""


class HttpxTransport(Transport):
    """Non-blocking transport: suspends the request task while waiting on I/O."""

    name = "httpx"

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.timeout = timeout
        self._transport = transport

    async def post_json(self, url: str, payload: Dict[str, Any], headers: Dict[str, str]) -> TransportResponse:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e
        return TransportResponse(status_code=response.status_code, text=response.text or "")


class RequestsTransport(Transport):
    """Blocking transport run on a worker thread; the fallback when httpx yields nothing."""

    name = "requests"

    def __init__(self, timeout: float = 30.0, session: Optional[requests.Session] = None) -> None:
        self.timeout = timeout
        self._session = session

    async def post_json(self, url: str, payload: Dict[str, Any], headers: Dict[str, str]) -> TransportResponse:
        poster = self._session or requests

        def _send() -> requests.Response:
            return poster.post(url, json=payload, headers=headers, timeout=self.timeout)

        try:
            response = await asyncio.to_thread(_send)
        except requests.RequestException as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e
        return TransportResponse(status_code=response.status_code, text=response.text or "")


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GenerationOutcome:
    """Base of the tagged outcome of an outbound Gemini call."""


@dataclass(frozen=True)
class Success(GenerationOutcome):
    text: str


@dataclass(frozen=True)
class Forbidden(GenerationOutcome):
    status_code: int = 403


@dataclass(frozen=True)
class RetryableError(GenerationOutcome):
    reason: str
    status_code: Optional[int] = None


@dataclass(frozen=True)
class ExhaustedRetries(GenerationOutcome):
    attempts: int
    last_error: str


@dataclass(frozen=True)
class EmptyBody(GenerationOutcome):
    attempts: int


SleepFn = Callable[[float], Awaitable[Any]]
ResponseHook = Callable[[TransportResponse, int], None]


@dataclass(frozen=True)
class RetryPolicy:
    """Linear backoff: wait ``attempt * backoff_unit`` seconds after a failed attempt."""

    max_attempts: int = 3
    backoff_unit: float = 0.3
    sleep: SleepFn = field(default=asyncio.sleep, compare=False, repr=False)

    def backoff_for(self, attempt: int) -> float:
        return attempt * self.backoff_unit


async def send_once(
    transport: Transport,
    url: str,
    payload: Dict[str, Any],
    headers: Dict[str, str],
    *,
    attempt: int = 1,
    on_response: Optional[ResponseHook] = None,
) -> GenerationOutcome:
    """Single attempt, classified into an outcome."""
    try:
        response = await transport.post_json(url, payload, headers)
    except TransportError as e:
        return RetryableError(reason=str(e))

    if on_response is not None:
        on_response(response, attempt)

    if response.status_code == 403:
        return Forbidden(status_code=403)
    if not 200 <= response.status_code < 300:
        return RetryableError(reason=f"HTTP {response.status_code}", status_code=response.status_code)
    if not response.text.strip():
        return EmptyBody(attempts=attempt)
    return Success(text=response.text)


async def send_with_retries(
    transport: Transport,
    url: str,
    payload: Dict[str, Any],
    headers: Dict[str, str],
    policy: RetryPolicy,
    *,
    label: str = "gemini",
    on_response: Optional[ResponseHook] = None,
) -> GenerationOutcome:
    """
    Run up to ``policy.max_attempts`` attempts.

    Success and Forbidden end the loop at once. Retryable errors and empty
    bodies back off and try again; when attempts run out the last failure
    decides between ExhaustedRetries and EmptyBody.
    """
    last: GenerationOutcome = EmptyBody(attempts=0)

    for attempt in range(1, policy.max_attempts + 1):
        outcome = await send_once(
            transport, url, payload, headers, attempt=attempt, on_response=on_response
        )

        if isinstance(outcome, Success):
            if attempt > 1:
                logger.info(f"[{label}] {transport.name} attempt {attempt} succeeded ({len(outcome.text)} bytes)")
            return outcome
        if isinstance(outcome, Forbidden):
            logger.warning(f"[{label}] {transport.name} attempt {attempt} returned HTTP 403; not retrying")
            return outcome

        last = outcome
        reason = outcome.reason if isinstance(outcome, RetryableError) else "empty body"
        if attempt < policy.max_attempts:
            delay = policy.backoff_for(attempt)
            logger.warning(
                f"[{label}] {transport.name} attempt {attempt}/{policy.max_attempts} failed ({reason}); "
                f"retrying after {int(delay * 1000)}ms"
            )
            await policy.sleep(delay)
        else:
            logger.error(f"[{label}] {transport.name} attempt {attempt}/{policy.max_attempts} failed ({reason})")

    if isinstance(last, RetryableError):
        return ExhaustedRetries(attempts=policy.max_attempts, last_error=last.reason)
    return EmptyBody(attempts=policy.max_attempts)
