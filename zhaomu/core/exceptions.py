"""Exception hierarchy for zhaomu.

Route handlers map each type to an HTTP status through ``http_status``;
anything not derived from ``ZhaomuError`` is treated as an internal error.
"""


class ZhaomuError(Exception):
    """Base exception for all zhaomu errors."""

    http_status = 500


class ConfigurationError(ZhaomuError):
    """A required setting (Supabase URL/key, API key) is missing.

    Should result in HTTP 503 Service Unavailable.
    """

    http_status = 503


class AuthenticationError(ZhaomuError):
    """Bearer token missing, malformed, or rejected by the identity provider.

    Should result in HTTP 401 Unauthorized.
    """

    http_status = 401


class RequestValidationError(ZhaomuError):
    """Request body or query parameters failed validation.

    Should result in HTTP 400 Bad Request.
    """

    http_status = 400


class UpstreamError(ZhaomuError):
    """A remote service (Supabase, weather, calendar, media feed) failed.

    Attributes:
        reason: short machine-readable reason ("upstream_error", "parse_error", ...)
        payload: optional upstream body kept for diagnostics
    """

    http_status = 502

    def __init__(self, message: str, reason: str = "upstream_error", payload: object = None):
        super().__init__(message)
        self.reason = reason
        self.payload = payload


class UpstreamTimeoutError(UpstreamError):
    """A remote service did not answer within the configured timeout."""

    http_status = 504

    def __init__(self, message: str, payload: object = None):
        super().__init__(message, reason="timeout", payload=payload)


class CodeGenerationError(ZhaomuError):
    """The scannable code for a share card could not be generated."""


class NotFoundError(ZhaomuError):
    """The addressed row does not exist or belongs to another user.

    Should result in HTTP 404 Not Found.
    """

    http_status = 404
