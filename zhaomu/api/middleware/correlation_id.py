"""Request correlation ID middleware.

Each request gets an ID taken from the client's ``X-Request-ID`` or
``X-Correlation-ID`` header, or a fresh UUID. The ID is stamped on every log
record written while the request is handled and echoed back in the response.
"""

import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar

from aiohttp import web

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client-supplied IDs longer than this are replaced to keep log lines bounded.
MAX_REQUEST_ID_LENGTH = 128


@web.middleware
async def correlation_id_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Extract or generate the correlation ID for the request.

    Priority:
    1. X-Request-ID from client
    2. X-Correlation-ID from client
    3. Generated UUID4

    Args:
        request: aiohttp request object
        handler: Next handler in middleware chain

    Returns:
        Response with ``X-Request-ID`` set
    """
    correlation_id = request.headers.get("X-Request-ID") or request.headers.get(
        "X-Correlation-ID"
    )
    if not correlation_id or len(correlation_id) > MAX_REQUEST_ID_LENGTH:
        correlation_id = str(uuid.uuid4())

    token = request_id_var.set(correlation_id)
    request["correlation_id"] = correlation_id
    try:
        response = await handler(request)
    finally:
        request_id_var.reset(token)

    response.headers["X-Request-ID"] = correlation_id
    return response


def get_request_id() -> str:
    """Get current request correlation ID from context.

    Returns:
        Current request correlation ID, or "no-request-id" outside a request
    """
    request_id = request_id_var.get()
    return request_id if request_id else "no-request-id"
