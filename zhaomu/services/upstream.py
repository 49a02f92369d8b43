"""JSON GET helper shared by the weather, calendar and discover proxies."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

import httpx

from zhaomu.core.exceptions import UpstreamError, UpstreamTimeoutError
from zhaomu.core.http_client import record_client_error, record_client_success

logger = logging.getLogger(__name__)


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
    error_message_key: Optional[str] = None,
) -> Any:
    """GET ``url`` and decode the JSON body.

    Args:
        client: Shared client (carries the proxy setting)
        url: Endpoint to fetch
        params: Query parameters; values may contain API keys and are not logged
        timeout: Per-request timeout in seconds
        error_message_key: Body field holding the upstream error message on non-2xx

    Returns:
        Decoded JSON document

    Raises:
        UpstreamTimeoutError: request did not finish within ``timeout``
        UpstreamError: network failure (``network_error``), non-2xx status
            (``upstream_error``) or undecodable body (``parse_error``)
    """
    try:
        response = await client.get(
            url,
            params=params,
            timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            headers={"Accept": "application/json"},
        )
    except httpx.TimeoutException as e:
        logger.warning("Timeout fetching %s", url)
        await record_client_error(client)
        raise UpstreamTimeoutError(str(e) or "request timed out") from e
    except httpx.HTTPError as e:
        logger.warning("Network error fetching %s: %s", url, e)
        await record_client_error(client)
        raise UpstreamError(str(e) or type(e).__name__, reason="network_error") from e

    await record_client_success(client)
    if response.is_error:
        message = "upstream_error"
        body: Any = None
        try:
            body = response.json()
        except ValueError:
            pass
        if error_message_key and isinstance(body, dict) and body.get(error_message_key):
            message = str(body[error_message_key])
        logger.warning("Upstream %s returned HTTP %d", url, response.status_code)
        raise UpstreamError(message, reason="upstream_error", payload=body)

    try:
        return response.json()
    except ValueError as e:
        logger.warning("Upstream %s returned a non-JSON body", url)
        raise UpstreamError(str(e), reason="parse_error") from e
