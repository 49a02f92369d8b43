"""Shared HTTP client manager for upstream API calls.

One ``httpx.AsyncClient`` is kept per client id (normally one per proxy
setting) so connections to Supabase and the content APIs are reused across
requests. Clients that keep failing are recreated.
"""

import asyncio
import logging
import time
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_health: dict[str, dict[str, float]] = {}
_client_lock = asyncio.Lock()

DEFAULT_LIMITS = httpx.Limits(
    max_connections=10,
    max_keepalive_connections=5,
)

DEFAULT_TIMEOUT = httpx.Timeout(
    connect=5.0,
    read=12.0,
    write=5.0,
    pool=12.0,
)

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": "zhaomu/0.1 (+https://github.com/zhaomu)",
    "Accept": "application/json",
}

# Recreate a client after this many consecutive errors within the window.
HEALTH_ERROR_THRESHOLD = 3
HEALTH_TIMEOUT_SECONDS = 300


def client_id_for_proxy(proxy: Optional[str]) -> str:
    """Return the shared-client id used for ``proxy`` (or direct connections)."""
    return f"upstream:{proxy}" if proxy else "upstream:direct"


async def get_shared_client(
    client_id: str = "default",
    proxy: Optional[str] = None,
    limits: Optional[httpx.Limits] = None,
    timeout: Optional[httpx.Timeout] = None,
) -> httpx.AsyncClient:
    """Get or create a shared HTTP client with connection pooling.

    Args:
        client_id: Identifier for the client (allows multiple clients if needed)
        proxy: Optional proxy URL for all requests made through this client
        limits: Custom connection limits
        timeout: Custom timeout configuration

    Returns:
        Shared httpx.AsyncClient

    Raises:
        RuntimeError: If client creation fails
    """
    async with _client_lock:
        await _recreate_client_if_unhealthy(client_id)

        if client_id not in _shared_clients or _shared_clients[client_id].is_closed:
            effective_limits = limits or DEFAULT_LIMITS
            try:
                _shared_clients[client_id] = httpx.AsyncClient(
                    limits=effective_limits,
                    timeout=timeout or DEFAULT_TIMEOUT,
                    follow_redirects=True,
                    headers=DEFAULT_HEADERS,
                    proxy=proxy,
                )
            except Exception as e:
                logger.exception("Failed to create shared HTTP client '%s'", client_id)
                raise RuntimeError(f"Failed to create shared HTTP client: {e}") from e

            _client_health[client_id] = {
                "error_count": 0,
                "last_error_time": 0,
                "created_time": time.time(),
            }
            logger.info(
                "Created shared HTTP client '%s' (max_connections=%d, proxy=%s)",
                client_id,
                effective_limits.max_connections,
                "yes" if proxy else "no",
            )

        return _shared_clients[client_id]


async def close_all_clients() -> None:
    """Close all shared HTTP clients; called during application shutdown."""
    async with _client_lock:
        for client_id, client in _shared_clients.items():
            try:
                if not client.is_closed:
                    await client.aclose()
                    logger.debug("Closed shared HTTP client '%s'", client_id)
            except Exception as e:
                logger.warning("Error closing shared HTTP client '%s': %s", client_id, e)

        _shared_clients.clear()
        _client_health.clear()
        logger.info("All shared HTTP clients closed")


def _client_id_of(client: httpx.AsyncClient) -> Optional[str]:
    for client_id, shared in _shared_clients.items():
        if shared is client:
            return client_id
    return None


async def record_client_error(client: httpx.AsyncClient) -> None:
    """Record a transport error for health tracking.

    Clients not handed out by ``get_shared_client`` are ignored.

    Args:
        client: Client whose request failed before a response arrived
    """
    async with _client_lock:
        client_id = _client_id_of(client)
        if client_id is None:
            return
        health = _client_health.setdefault(
            client_id,
            {"error_count": 0, "last_error_time": 0, "created_time": time.time()},
        )
        health["error_count"] += 1
        health["last_error_time"] = time.time()
        logger.debug(
            "Recorded error for client '%s', total errors: %d",
            client_id,
            health["error_count"],
        )


async def record_client_success(client: httpx.AsyncClient) -> None:
    """Reset the error count of ``client`` after a response was received."""
    async with _client_lock:
        client_id = _client_id_of(client)
        if client_id is not None and client_id in _client_health:
            _client_health[client_id]["error_count"] = 0


def get_client_health(client_id: str) -> Optional[dict[str, float]]:
    """Return a copy of the health record for ``client_id`` (None if unknown)."""
    health = _client_health.get(client_id)
    return dict(health) if health is not None else None


async def _recreate_client_if_unhealthy(client_id: str) -> None:
    if client_id not in _client_health:
        return

    health = _client_health[client_id]
    should_recreate = (
        health["error_count"] >= HEALTH_ERROR_THRESHOLD
        and (time.time() - health["last_error_time"]) < HEALTH_TIMEOUT_SECONDS
    )

    if should_recreate and client_id in _shared_clients:
        logger.warning(
            "Recreating unhealthy client '%s' due to %d errors in last %d seconds",
            client_id,
            health["error_count"],
            HEALTH_TIMEOUT_SECONDS,
        )
        old_client = _shared_clients.pop(client_id)
        del _client_health[client_id]
        try:
            if not old_client.is_closed:
                await old_client.aclose()
        except Exception as e:
            logger.warning("Error closing unhealthy client '%s': %s", client_id, e)
