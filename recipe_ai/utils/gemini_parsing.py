"""Shared helpers for Gemini responses: JSON repair, text extraction, image extraction and debugging."""

from __future__ import annotations

import base64
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/png"

_INLINE_KEYS = ("inlineData", "inline_data")
_MIME_KEYS = ("mimeType", "mime_type")
_URL_KEYS = ("imageUrl", "image_url")

_BASE64_CHARS = re.compile(r"^[A-Za-z0-9+/=\r\n]+$")
# PNG and JPEG magic bytes once base64 encoded
_IMAGE_MAGIC_PREFIXES = ("iVBOR", "/9j/")


# ---------------------------------------------------------------------------
# Text / JSON
# ---------------------------------------------------------------------------


def extract_first_json_value(text: str) -> str:
    """
    Best-effort extraction of a single JSON object/array from a model response.

    Handles:
    - markdown fences
    - leading/trailing prose
    - trailing garbage
    """
    t = (text or "").strip()
    if not t:
        return t

    t = re.sub(r"^```(?:json)?\s*", "", t, flags=re.IGNORECASE | re.MULTILINE)
    t = re.sub(r"\s*```\s*$", "", t, flags=re.MULTILINE).strip()

    if (t.startswith("{") and t.endswith("}")) or (t.startswith("[") and t.endswith("]")):
        return t

    first_obj = t.find("{")
    first_arr = t.find("[")
    if first_obj == -1 and first_arr == -1:
        return t

    start = first_obj
    if start == -1 or (first_arr != -1 and first_arr < start):
        start = first_arr

    end = max(t.rfind("}"), t.rfind("]"))
    if end > start:
        return t[start : end + 1].strip()

    return t


def _strip_trailing_commas(json_text: str) -> str:
    # {"a": 1,} -> {"a": 1} and [1,2,] -> [1,2]
    return re.sub(r",(\s*[}\]])", r"\1", json_text)


def safe_json_loads(text: str) -> Any:
    """
    Parse JSON with tolerant extraction and a tiny local "repair" (trailing commas).
    Raises json.JSONDecodeError if still invalid.
    """
    json_text = extract_first_json_value(text).strip()

    try:
        return json.loads(json_text)
    except json.JSONDecodeError:
        return json.loads(_strip_trailing_commas(json_text))


def _first_candidate_parts(response: Any) -> List[Any]:
    if not isinstance(response, dict):
        return []
    candidates = response.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return []
    first = candidates[0]
    if not isinstance(first, dict):
        return []
    content = first.get("content")
    if not isinstance(content, dict):
        return []
    parts = content.get("parts")
    return parts if isinstance(parts, list) else []


def get_candidate_text(response: Any) -> Optional[str]:
    """
    Text of ``candidates[0].content.parts[0]``.

    Returns None when the envelope does not have that shape; the text itself
    is schema-guided model output and may still not be valid JSON.
    """
    parts = _first_candidate_parts(response)
    if not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    return text if isinstance(text, str) else None


def get_response_text(body: str) -> Optional[str]:
    """Candidate text from a raw envelope body, or None if the body is not a usable envelope."""
    try:
        envelope = json.loads(body)
    except (TypeError, json.JSONDecodeError) as e:
        logger.warning(f"Gemini envelope is not valid JSON: {e}")
        return None
    return get_candidate_text(envelope)


# ---------------------------------------------------------------------------
# Image extraction
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ImageExtraction:
    """Base of the tagged result of an image extraction pass."""

    def to_url(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class InlineFound(ImageExtraction):
    payload: str
    mime: str = DEFAULT_IMAGE_MIME

    def to_url(self) -> str:
        return f"data:{self.mime};base64,{self.payload}"


@dataclass(frozen=True)
class ExternalFound(ImageExtraction):
    url: str

    def to_url(self) -> str:
        return self.url


@dataclass(frozen=True)
class NotFound(ImageExtraction):
    pass


def _first_key(obj: Dict[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if key in obj and obj[key] is not None:
            return obj[key]
    return None


def _payload_as_base64(data: Any) -> Optional[str]:
    if isinstance(data, str):
        return data if data.strip() else None
    # Some clients serialise bytes as a list of ints
    if isinstance(data, list) and data and all(isinstance(b, int) for b in data):
        try:
            return base64.b64encode(bytes(b & 0xFF for b in data)).decode("ascii")
        except ValueError:
            return None
    return None


def _inline_from_part(part: Any) -> Optional[InlineFound]:
    if not isinstance(part, dict):
        return None
    inline = _first_key(part, _INLINE_KEYS)
    if not isinstance(inline, dict):
        return None
    payload = _payload_as_base64(inline.get("data"))
    if not payload:
        return None
    mime = _first_key(inline, _MIME_KEYS)
    return InlineFound(payload=payload, mime=mime if isinstance(mime, str) and mime else DEFAULT_IMAGE_MIME)


def _external_from_part(part: Any) -> Optional[ExternalFound]:
    if not isinstance(part, dict):
        return None
    url = _first_key(part, _URL_KEYS)
    if isinstance(url, str) and url.strip():
        return ExternalFound(url=url.strip())
    return None


def looks_like_base64_image(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    if value.startswith(_IMAGE_MAGIC_PREFIXES):
        return True
    return len(value) > 500 and bool(_BASE64_CHARS.match(value))


def find_base64_image(node: Any, mime: str = DEFAULT_IMAGE_MIME) -> Optional[InlineFound]:
    """
    Depth-first walk for any string that looks like a base64 image.

    The mime type comes from the nearest ``mimeType``/``mime_type`` key: the
    object holding the string first, then its enclosing objects, else
    ``image/png``.
    """
    if isinstance(node, dict):
        own_mime = _first_key(node, _MIME_KEYS)
        if isinstance(own_mime, str) and own_mime:
            mime = own_mime
        for value in node.values():
            if looks_like_base64_image(value):
                return InlineFound(payload=value, mime=mime)
        for value in node.values():
            if isinstance(value, (dict, list)):
                found = find_base64_image(value, mime)
                if found is not None:
                    return found
    elif isinstance(node, list):
        for item in node:
            if looks_like_base64_image(item):
                return InlineFound(payload=item, mime=mime)
            if isinstance(item, (dict, list)):
                found = find_base64_image(item, mime)
                if found is not None:
                    return found
    return None


def extract_image(response: Any) -> ImageExtraction:
    """
    Locate an image in a Gemini generateContent response.

    Three passes, first hit wins:
    1. inline data on ``parts[1]`` (text part first, image second is the usual shape)
    2. inline data or an external URL on any part, trying index 1, then 0, then the rest
    3. recursive search of the whole tree for a base64 image string
    """
    parts = _first_candidate_parts(response)

    if len(parts) > 1:
        expected = _inline_from_part(parts[1])
        if expected is not None:
            return expected

    order = [i for i in (1, 0) if i < len(parts)] + list(range(2, len(parts)))
    for index in order:
        part = parts[index]
        found = _inline_from_part(part) or _external_from_part(part)
        if found is not None:
            logger.debug(f"Image found on part {index}")
            return found

    found = find_base64_image(response)
    if found is not None:
        logger.debug("Image found by recursive scan")
        return found

    return NotFound()


# ---------------------------------------------------------------------------
# Debugging
# ---------------------------------------------------------------------------


def _redact(node: Any) -> Any:
    if isinstance(node, dict):
        out: Dict[str, Any] = {}
        for key, value in node.items():
            if key in _INLINE_KEYS and isinstance(value, dict):
                inline = dict(value)
                data = inline.get("data")
                if isinstance(data, str):
                    inline["data"] = f"[base64:{len(data)}]"
                elif isinstance(data, list):
                    inline["data"] = f"[bytes:{len(data)}]"
                out[key] = _redact(inline)
            else:
                out[key] = _redact(value)
        return out
    if isinstance(node, list):
        return [_redact(item) for item in node]
    if isinstance(node, str) and len(node) > 200:
        return node[:200] + "..."
    return node


def sanitize_response_for_debug(body: str, limit: int = 1000) -> str:
    """Compact, loggable copy of a response body with binary payloads replaced by size markers."""
    try:
        dumped = json.dumps(_redact(json.loads(body)), ensure_ascii=False)
    except (TypeError, json.JSONDecodeError):
        dumped = body or ""
    if len(dumped) > limit:
        return dumped[:limit] + "...(truncated)"
    return dumped
