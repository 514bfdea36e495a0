"""Request ID propagation for log correlation."""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

# Current request id, visible to every log call made while the request is handled
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_INBOUND_ID = re.compile(r"^[A-Za-z0-9._-]{8,128}$")


def resolve_request_id(inbound: Optional[str] = None) -> str:
    """Reuse a well-formed upstream X-Request-ID, otherwise mint a new uuid4."""
    if inbound and _INBOUND_ID.match(inbound.strip()):
        return inbound.strip()
    return str(uuid.uuid4())


def get_request_id() -> str:
    return request_id_var.get("")


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)
