"""Map ``ZhaomuError`` subclasses to JSON error responses."""

import logging
from collections.abc import Awaitable, Callable

from aiohttp import web

from zhaomu.core.exceptions import ZhaomuError

logger = logging.getLogger(__name__)


@web.middleware
async def error_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Turn domain errors into ``{"error": message}`` with the mapped status.

    aiohttp's own HTTP exceptions (404 for unknown routes, 405, ...) pass
    through untouched. Anything else is logged and reported as a 500.
    """
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ZhaomuError as e:
        level = logging.ERROR if e.http_status >= 500 else logging.INFO
        logger.log(level, "%s %s -> %d: %s", request.method, request.path, e.http_status, e)
        return web.json_response({"error": str(e)}, status=e.http_status)
    except Exception:
        logger.exception("Unhandled error in %s %s", request.method, request.path)
        return web.json_response({"error": "服务器内部错误"}, status=500)
