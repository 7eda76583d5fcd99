"""Per-request context carried through every handler invocation."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from fastapi import Request

REQUEST_ID_HEADER = "x-request-id"


def generate_request_id() -> str:
    return uuid.uuid4().hex[:13]


@dataclass(frozen=True)
class RequestContext:
    """Correlation data for a single request.

    ``request_id`` is propagated from the inbound ``x-request-id`` header when
    the caller supplies one; otherwise a short random id is generated.
    """

    request_id: str = field(default_factory=generate_request_id)

    @classmethod
    def from_headers(cls, headers) -> "RequestContext":
        inbound = (headers.get(REQUEST_ID_HEADER) or "").strip()
        return cls(request_id=inbound) if inbound else cls()


def get_request_context(request: Request) -> RequestContext:
    """FastAPI dependency returning the context created by the middleware.

    Falls back to building one from the headers when the middleware did not
    run (e.g. a router mounted on a bare app in tests).
    """
    ctx = getattr(request.state, "context", None)
    if ctx is None:
        ctx = RequestContext.from_headers(request.headers)
        request.state.context = ctx
    return ctx


__all__ = ["REQUEST_ID_HEADER", "RequestContext", "generate_request_id", "get_request_context"]
