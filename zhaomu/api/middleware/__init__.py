"""Middleware components for request processing.

Correlation ID tracking for log correlation and conversion of domain errors
into JSON responses.
"""

from .correlation_id import correlation_id_middleware, get_request_id
from .error_handling import error_middleware

__all__ = ["correlation_id_middleware", "error_middleware", "get_request_id"]
