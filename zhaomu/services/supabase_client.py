"""Minimal Supabase REST client (GoTrue auth + PostgREST tables).

Every call carries the project's anon key and, when present, the user's
access token, so row-level security is enforced by Supabase itself.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Optional

import httpx

from zhaomu.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    UpstreamError,
    UpstreamTimeoutError,
)
from zhaomu.core.http_client import record_client_error, record_client_success

logger = logging.getLogger(__name__)

SUPABASE_TIMEOUT_SECONDS = 10.0

# PostgREST filter: (column, operator, value), e.g. ("created_at", "gte", "2024-05-01T00:00:00Z").
Filter = tuple[str, str, str]


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


class SupabaseClient:
    """Pass-through client bound to one project and (optionally) one user session.

    Args:
        http: Shared httpx client
        url: Project URL, e.g. ``https://xyz.supabase.co``
        anon_key: Public anon key
        access_token: User access token from the ``Authorization`` header
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        url: Optional[str],
        anon_key: Optional[str],
        access_token: Optional[str] = None,
        timeout: float = SUPABASE_TIMEOUT_SECONDS,
    ) -> None:
        if not url or not anon_key:
            raise ConfigurationError(
                "Supabase 未配置，请设置 SUPABASE_URL 与 SUPABASE_ANON_KEY"
            )
        self._http = http
        self._url = url.rstrip("/")
        self._anon_key = anon_key
        self._access_token = access_token
        self._timeout = timeout

    def _headers(self, prefer: Optional[str] = None) -> dict[str, str]:
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {self._access_token or self._anon_key}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _require_session(self) -> None:
        if not self._access_token:
            raise AuthenticationError("请先登录")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Sequence[tuple[str, str]]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> httpx.Response:
        try:
            response = await self._http.request(
                method,
                self._url + path,
                params=list(params) if params else None,
                json=json,
                headers=self._headers(prefer),
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning("Supabase %s %s timed out", method, path)
            await record_client_error(self._http)
            raise UpstreamTimeoutError("Supabase 请求超时") from e
        except httpx.HTTPError as e:
            logger.warning("Supabase %s %s failed: %s", method, path, e)
            await record_client_error(self._http)
            raise UpstreamError(f"Supabase 网络错误: {e}", reason="network_error") from e

        await record_client_success(self._http)
        if response.status_code in (401, 403):
            raise AuthenticationError(_error_message(response))
        if response.is_error:
            message = _error_message(response)
            logger.warning("Supabase %s %s returned %d: %s", method, path, response.status_code, message)
            raise UpstreamError(message)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError("Supabase 返回了无法解析的响应", reason="parse_error") from e

    # -- auth -------------------------------------------------------------

    async def get_user(self) -> dict[str, Any]:
        """Resolve the access token to the signed-in user.

        Raises:
            AuthenticationError: no token, or the token was rejected
        """
        self._require_session()
        user = self._json(await self._request("GET", "/auth/v1/user"))
        if not isinstance(user, dict) or not user.get("id"):
            raise AuthenticationError("无效的登录状态")
        return user

    async def send_magic_link(self, email: str, redirect_to: Optional[str] = None) -> None:
        """Ask Supabase to e-mail a one-time sign-in link."""
        params = [("redirect_to", redirect_to)] if redirect_to else None
        await self._request(
            "POST",
            "/auth/v1/otp",
            params=params,
            json={"email": email, "create_user": True},
        )
        logger.info("Magic link requested")

    async def sign_out(self) -> None:
        self._require_session()
        await self._request("POST", "/auth/v1/logout")

    # -- tables -----------------------------------------------------------

    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        params = [("select", "*")]
        params.extend((column, f"{op}.{value}") for column, op, value in filters)
        if order:
            params.append(("order", order))
        rows = self._json(await self._request("GET", f"/rest/v1/{table}", params=params))
        return rows if isinstance(rows, list) else []

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        rows = self._json(
            await self._request(
                "POST", f"/rest/v1/{table}", json=row, prefer="return=representation"
            )
        )
        if not isinstance(rows, list) or not rows:
            raise UpstreamError("Supabase 未返回新建的记录", reason="no_data")
        return rows[0]

    async def update(
        self, table: str, filters: Sequence[Filter], values: dict[str, Any]
    ) -> list[dict[str, Any]]:
        params = [(column, f"{op}.{value}") for column, op, value in filters]
        rows = self._json(
            await self._request(
                "PATCH",
                f"/rest/v1/{table}",
                params=params,
                json=values,
                prefer="return=representation",
            )
        )
        return rows if isinstance(rows, list) else []

    async def delete(self, table: str, filters: Sequence[Filter]) -> list[dict[str, Any]]:
        params = [(column, f"{op}.{value}") for column, op, value in filters]
        rows = self._json(
            await self._request(
                "DELETE", f"/rest/v1/{table}", params=params, prefer="return=representation"
            )
        )
        return rows if isinstance(rows, list) else []
