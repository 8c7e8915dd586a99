"""Request correlation helpers shared by the middleware and the dependencies."""
from __future__ import annotations
import uuid
from typing import Any, Mapping

REQUEST_ID_HEADER = "X-Request-ID"

def ensure_request_id(headers: Mapping[str, str]) -> str:
    """Incoming X-Request-ID, or a fresh uuid4 when the client sent none."""
    return headers.get(REQUEST_ID_HEADER, None) or str(uuid.uuid4())

def current_request_id(state: Any, headers: Mapping[str, str]) -> str:
    """Request id assigned by the middleware, falling back to the raw header."""
    return getattr(state, "request_id", None) or headers.get(REQUEST_ID_HEADER, "unknown")

__all__ = ["current_request_id", "ensure_request_id", "REQUEST_ID_HEADER"]
